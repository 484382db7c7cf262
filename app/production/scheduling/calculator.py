"""
Stage scheduling calculation module.

Computes start and completion dates for every stage of a production plan in
a single forward pass. Pure logic: no database, no Flask, no clock.
"""

import math
from dataclasses import replace
from datetime import date, timedelta
from typing import List, Optional

from app.logging_config import get_logger
from app.production.scheduling.calendar import BusinessCalendar
from app.production.scheduling.config import SchedulingConfig
from app.production.scheduling.models import ProductionPlan, ProductionStage

logger = get_logger(__name__)


def normalize_duration(duration_days) -> float:
    """
    Effort of a stage in working days, as the scheduler uses it.

    - Missing or unparseable → default duration (1 day)
    - Anything below the minimum granularity → clamped up to 0.125
    - Anything above the maximum → clamped down to 3650

    Args:
        duration_days: Raw duration value

    Returns:
        float: Duration in days (never below the minimum)
    """
    if duration_days is None or isinstance(duration_days, bool):
        value = SchedulingConfig.DEFAULT_DURATION_DAYS
    else:
        try:
            value = float(duration_days)
        except (ValueError, TypeError):
            value = SchedulingConfig.DEFAULT_DURATION_DAYS
        if math.isnan(value) or math.isinf(value):
            value = SchedulingConfig.DEFAULT_DURATION_DAYS

    return min(SchedulingConfig.MAX_DURATION_DAYS, max(SchedulingConfig.MIN_DURATION_DAYS, value))


class StageScheduler:
    """
    Cascading recompute of a production plan.

    Two running values are carried through the pass: ``cursor``, the last
    committed date, and ``carry``, the fractional working-day effort not yet
    turned into a whole day. Sub-day business-day stages finish on the day
    they start until their accumulated effort reaches a full day.
    """

    def __init__(self, calendar: Optional[BusinessCalendar] = None):
        self.calendar = calendar or BusinessCalendar()

    def recompute(self, plan: ProductionPlan) -> ProductionPlan:
        """
        Recompute every stage of the plan from stage 0 forward.

        Args:
            plan: Plan whose stage 0 may carry a user-set start date

        Returns:
            ProductionPlan: New plan with start/completion dates filled in, or
            cleared where they cannot be known yet
        """
        if len(plan) == 0:
            return plan

        anchor = plan[0].start_date
        if anchor is None:
            logger.debug("Plan has no anchor date, leaving it unscheduled", stages=len(plan))
            return ProductionPlan.of(stage.unscheduled() for stage in plan)

        scheduled: List[ProductionStage] = []
        cursor: Optional[date] = anchor
        carry = 0.0

        for index, stage in enumerate(plan):
            if index > 0 and cursor is None:
                scheduled.append(stage.unscheduled())
                continue

            duration = normalize_duration(stage.duration_days)
            try:
                start = anchor if index == 0 else self._next_start(stage, cursor)
                if not stage.use_business_days:
                    completed = start + timedelta(days=math.ceil(duration))
                    carry = 0.0
                else:
                    carry = duration if index == 0 else carry + duration
                    carry = round(carry, SchedulingConfig.CARRY_PRECISION)
                    if carry >= 1:
                        completed = self.calendar.add_business_days(start, math.ceil(carry))
                        carry = round(carry - math.floor(carry), SchedulingConfig.CARRY_PRECISION)
                    else:
                        completed = start
            except OverflowError:
                # Past the last representable date
                logger.debug("Stage runs past the supported date range", stage=stage.name)
                scheduled.append(replace(stage, completed_date=None) if index == 0 else stage.unscheduled())
                cursor = None
                continue

            cursor = completed
            scheduled.append(replace(stage, start_date=start, completed_date=completed))

        logger.debug(
            "Plan recomputed",
            stages=len(plan),
            anchor=anchor.isoformat(),
            finish=scheduled[-1].completed_date.isoformat() if scheduled[-1].completed_date else None,
            carry=carry,
        )
        return ProductionPlan.of(scheduled)

    def _next_start(self, stage: ProductionStage, cursor: date) -> date:
        if stage.use_business_days:
            return self.calendar.next_business_day(cursor)
        return cursor + timedelta(days=1)


def recompute_plan(plan: ProductionPlan, calendar: Optional[BusinessCalendar] = None) -> ProductionPlan:
    """Recompute a plan with a one-off scheduler."""
    return StageScheduler(calendar).recompute(plan)
