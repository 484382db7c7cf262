"""
Task classification for the production work queues.

Splits the incomplete stages of the whole order backlog into Overdue, Today
and Future, soonest deadline first.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional

from app.datetime_utils import to_local_date
from app.logging_config import get_logger
from app.production.scheduling.config import SchedulingConfig
from app.production.scheduling.models import StageStatus, Task

logger = get_logger(__name__)

BUCKETS = ('overdue', 'today', 'future')


def calculate_priority(delivery_date: Optional[date], today: date) -> str:
    """
    Priority of an order's work, from how close its delivery date is.

    Returns:
        str: 'urgente' (late), 'alta' (<= 3 days), 'media' (<= 7 days or no
        delivery date) or 'baixa'
    """
    if delivery_date is None:
        return 'media'

    days_until_delivery = (delivery_date - today).days
    if days_until_delivery < 0:
        return 'urgente'
    if days_until_delivery <= SchedulingConfig.PRIORITY_HIGH_DAYS:
        return 'alta'
    if days_until_delivery <= SchedulingConfig.PRIORITY_MEDIUM_DAYS:
        return 'media'
    return 'baixa'


def _date_key(value: Optional[date]):
    # nulls last
    return (value is None, value or date.min)


@dataclass
class TaskBuckets:
    """Result of one classification pass."""
    today_date: date
    overdue: List[Task] = field(default_factory=list)
    today: List[Task] = field(default_factory=list)
    future: List[Task] = field(default_factory=list)
    unscheduled: List[Task] = field(default_factory=list)

    def __getitem__(self, bucket: str) -> List[Task]:
        if bucket not in BUCKETS:
            raise KeyError(bucket)
        return getattr(self, bucket)

    def summary(self) -> Dict[str, int]:
        classified = self.overdue + self.today + self.future + self.unscheduled
        return {
            'total': len(classified),
            'pending': sum(1 for t in classified if t.status == StageStatus.PENDING),
            'in_progress': sum(1 for t in classified if t.status == StageStatus.IN_PROGRESS),
            'overdue': len(self.overdue),
            'today': len(self.today),
            'future': len(self.future),
            'unscheduled': len(self.unscheduled),
        }


class TaskClassifier:
    """Buckets incomplete tasks relative to the calendar day of ``now``."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name

    @staticmethod
    def bucket_for(task: Task, today: date) -> Optional[str]:
        """
        Bucket name for a single task, or None when it has no dates.

        Overdue wins over everything else. A task that has a start date but
        no due date is judged by its start date.
        """
        start = task.start_date
        due = task.completed_date

        if due is None and start is None:
            return None

        if due is not None:
            if due < today:
                return 'overdue'
        elif start < today:
            # No due date: a start day already gone counts as overdue
            return 'overdue'

        if due == today or start == today:
            return 'today'

        return 'future'

    def classify(self, tasks: Iterable[Task], now) -> TaskBuckets:
        """
        Partition tasks into overdue / today / future.

        Args:
            tasks: Task projections; completed ones are skipped
            now: Reference instant (date, datetime or ISO string)

        Returns:
            TaskBuckets: overdue and today sorted by due date, future by start
            date (nulls last, ties in input order)
        """
        today = to_local_date(now, self.tz_name)
        if today is None:
            raise ValueError(f"Invalid reference time: {now!r}")

        result = TaskBuckets(today_date=today)
        skipped = 0

        for task in tasks:
            if task.status == StageStatus.COMPLETED:
                skipped += 1
                continue

            bucket = self.bucket_for(task, today)
            if bucket is None:
                result.unscheduled.append(task)
                continue

            task = replace(task, is_overdue=(bucket == 'overdue'))
            result[bucket].append(task)

        result.overdue.sort(key=lambda t: _date_key(t.completed_date))
        result.today.sort(key=lambda t: _date_key(t.completed_date))
        result.future.sort(key=lambda t: _date_key(t.start_date))

        logger.debug(
            "Tasks classified",
            today=today.isoformat(),
            overdue=len(result.overdue),
            due_today=len(result.today),
            future=len(result.future),
            unscheduled=len(result.unscheduled),
            skipped_completed=skipped,
        )
        return result


def classify_tasks(tasks: Iterable[Task], now, tz_name: Optional[str] = None) -> TaskBuckets:
    """Classify tasks with a one-off classifier."""
    return TaskClassifier(tz_name).classify(tasks, now)
