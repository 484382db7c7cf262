"""
Service layer for production scheduling.

Coordinates the calendar, the stage scheduler and the task classifier for
callers that work with payloads: it applies plan edits, builds plans from
stage templates, and always finishes an edit with a full recompute.
"""
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from app.datetime_utils import company_now, to_local_date
from app.logging_config import ScheduleContext, get_logger
from app.production.scheduling.calculator import StageScheduler
from app.production.scheduling.calendar import (
    DEFAULT_WORKING_WEEKDAYS,
    BusinessCalendar,
    HolidaySet,
    load_holiday_set,
)
from app.production.scheduling.classifier import TaskBuckets, TaskClassifier
from app.production.scheduling.models import (
    PlanValidationError,
    ProductionPlan,
    StageStatus,
    Task,
)
from app.production.scheduling.payloads import parse_bool, parse_duration, stage_from_dict

logger = get_logger(__name__)

EDITABLE_FIELDS = ('duration_days', 'use_business_days', 'status', 'start_date')
FIELD_ALIASES = {
    'durationDays': 'duration_days',
    'useBusinessDays': 'use_business_days',
    'startDate': 'start_date',
}
EDIT_ACTIONS = ('update', 'remove', 'add')


def build_calendar_from_config(config) -> BusinessCalendar:
    """
    Build the business calendar described by the application config.

    A missing holiday file is not fatal: the calendar falls back to
    weekends only and a warning is logged. A present but broken file raises.

    Raises:
        HolidayCalendarError: If the configured holiday file is invalid
    """
    working_weekdays = config.get('WORKING_WEEKDAYS') or DEFAULT_WORKING_WEEKDAYS
    holidays_file = config.get('HOLIDAYS_FILE')

    holidays = HolidaySet()
    if holidays_file and Path(holidays_file).exists():
        holidays = load_holiday_set(holidays_file, version=config.get('HOLIDAYS_VERSION'))
    elif holidays_file:
        logger.warning("Holiday file not found, scheduling with weekends only", path=holidays_file)

    return BusinessCalendar(holidays, working_weekdays=working_weekdays)


class ProductionScheduleService:
    """Payload-facing operations over the scheduling engine."""

    def __init__(self, calendar: Optional[BusinessCalendar] = None, tz_name: Optional[str] = None):
        self.calendar = calendar or BusinessCalendar()
        self.tz_name = tz_name
        self.scheduler = StageScheduler(self.calendar)
        self.classifier = TaskClassifier(tz_name)

    @classmethod
    def from_config(cls, config) -> 'ProductionScheduleService':
        return cls(build_calendar_from_config(config), tz_name=config.get('COMPANY_TIMEZONE'))

    def with_holidays(self, holidays: Iterable) -> 'ProductionScheduleService':
        """
        Copy of this service using a caller-supplied holiday list instead of
        the configured one.
        """
        parsed = []
        for value in holidays:
            d = to_local_date(value, self.tz_name)
            if d is None:
                raise PlanValidationError(f"Invalid holiday date: {value!r}")
            parsed.append(d)
        calendar = BusinessCalendar(
            HolidaySet.from_dates(parsed, version='request'),
            working_weekdays=self.calendar.working_weekdays,
        )
        return ProductionScheduleService(calendar, tz_name=self.tz_name)

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def recompute(self, plan: ProductionPlan) -> ProductionPlan:
        """Full recompute of a plan, warning when it runs past the holiday data."""
        with ScheduleContext('recompute'):
            result = self.scheduler.recompute(plan)
        self._warn_uncovered(result)
        return result

    def apply_edit(
        self,
        plan: ProductionPlan,
        stage_name: Optional[str],
        action: str = 'update',
        changes: Optional[Dict[str, Any]] = None,
        position: Optional[int] = None,
    ) -> ProductionPlan:
        """
        Apply one edit to a plan and recompute the whole plan.

        Actions:
            update: change duration, business-day flag, status, or (first
                    stage only) start date of ``stage_name``
            remove: drop ``stage_name``; its successor follows its predecessor
            add:    insert the stage described by ``changes`` at ``position``
                    (end of plan by default)

        Raises:
            PlanValidationError: If the action, stage or changes are invalid
        """
        changes = changes or {}
        if action not in EDIT_ACTIONS:
            raise PlanValidationError(
                f"action must be one of: {', '.join(EDIT_ACTIONS)}"
            )

        if action == 'remove':
            plan = plan.without_stage(self._require_name(stage_name))
            logger.info("Stage removed from plan", stage=stage_name, remaining=len(plan))
        elif action == 'add':
            stage = stage_from_dict(changes, self.tz_name)
            if position is not None:
                if not isinstance(position, int) or isinstance(position, bool) or not 0 <= position <= len(plan):
                    raise PlanValidationError(f"position must be between 0 and {len(plan)}")
            plan = plan.with_stage(stage, position)
            logger.info("Stage added to plan", stage=stage.name, position=position)
        else:
            name = self._require_name(stage_name)
            index = plan.index_of(name)
            updates = self._normalize_changes(changes, is_first=(index == 0))
            if updates:
                plan = plan.replace_stage(name, **updates)
            logger.info("Stage updated", stage=name, fields=sorted(updates))

        return self.recompute(plan)

    def plan_from_template(self, template: List[Dict[str, Any]], start_date=None) -> ProductionPlan:
        """
        Build and schedule a plan from a stage template.

        Template entries carry ``name``, ``order``, ``duration_days``,
        ``use_business_days`` and ``enabled``; disabled entries are skipped
        and the rest are sequenced by ``order``.

        Raises:
            PlanValidationError: If the template is not a list of named entries
        """
        if not isinstance(template, list):
            raise PlanValidationError("template must be a list")

        entries = []
        for position, entry in enumerate(template):
            if not isinstance(entry, dict):
                raise PlanValidationError("Each template entry must be an object")
            if not parse_bool(entry.get('enabled'), default=True):
                continue
            order = entry.get('order')
            try:
                order = float(order) if order is not None else float(position)
            except (ValueError, TypeError):
                raise PlanValidationError(f"Invalid template order: {order!r}")
            entries.append((order, position, entry))

        entries.sort(key=lambda e: (e[0], e[1]))
        anchor = to_local_date(start_date, self.tz_name)

        stages = []
        for index, (_, _, entry) in enumerate(entries):
            stage = stage_from_dict(
                {
                    'name': entry.get('name') or entry.get('stageName'),
                    'duration_days': entry.get('duration_days', entry.get('durationDays')),
                    'use_business_days': entry.get('use_business_days', entry.get('useBusinessDays')),
                },
                self.tz_name,
            )
            if index == 0 and anchor is not None:
                stage = replace(stage, start_date=anchor)
            stages.append(stage)

        return self.recompute(ProductionPlan.of(stages))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def reference_date(self, now=None) -> date:
        """Calendar day of ``now`` (company timezone); today when omitted."""
        if now is None or now == '':
            now = company_now(self.tz_name)
        today = to_local_date(now, self.tz_name)
        if today is None:
            raise PlanValidationError(f"Invalid reference time: {now!r}")
        return today

    def classify(self, tasks: Iterable[Task], now=None) -> TaskBuckets:
        today = self.reference_date(now)
        with ScheduleContext('classify'):
            buckets = self.classifier.classify(tasks, today)
        if buckets.unscheduled:
            logger.info("Unscheduled tasks omitted from buckets", count=len(buckets.unscheduled))
        return buckets

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_name(stage_name) -> str:
        if stage_name is None or not str(stage_name).strip():
            raise PlanValidationError("stage is required")
        return str(stage_name).strip()

    def _normalize_changes(self, changes: Dict[str, Any], is_first: bool) -> Dict[str, Any]:
        if not isinstance(changes, dict):
            raise PlanValidationError("changes must be an object")

        updates: Dict[str, Any] = {}
        for key, value in changes.items():
            field_name = FIELD_ALIASES.get(key, key)
            if field_name not in EDITABLE_FIELDS:
                raise PlanValidationError(f"Field cannot be edited: {key}")

            if field_name == 'duration_days':
                updates['duration_days'] = parse_duration(value)
            elif field_name == 'use_business_days':
                updates['use_business_days'] = parse_bool(value, default=True)
            elif field_name == 'status':
                updates['status'] = StageStatus.parse(value)
            elif field_name == 'start_date':
                if not is_first:
                    # Derived from the previous stage on every recompute
                    logger.debug("Ignoring start_date edit on a downstream stage")
                    continue
                parsed = to_local_date(value, self.tz_name)
                if value not in (None, '') and parsed is None:
                    raise PlanValidationError(f"Invalid start_date: {value!r}")
                updates['start_date'] = parsed
        return updates

    def _warn_uncovered(self, plan: ProductionPlan) -> None:
        uncovered = [
            stage.name for stage in plan
            if (stage.start_date and not self.calendar.covers(stage.start_date))
            or (stage.completed_date and not self.calendar.covers(stage.completed_date))
        ]
        if uncovered:
            logger.warning(
                "Plan dates fall outside the holiday calendar validity range",
                stages=uncovered,
                holidays_version=self.calendar.holidays.version,
                valid_from=self.calendar.holidays.valid_from.isoformat() if self.calendar.holidays.valid_from else None,
                valid_to=self.calendar.holidays.valid_to.isoformat() if self.calendar.holidays.valid_to else None,
            )
