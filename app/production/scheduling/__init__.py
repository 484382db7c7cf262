"""
Production stage scheduling module.

Business-day calendar arithmetic, cascading recompute of production plans
with fractional-day effort accumulation, and classification of outstanding
stages into Overdue / Today / Future work queues.
"""

from app.production.scheduling.config import SchedulingConfig
from app.production.scheduling.calendar import (
    BusinessCalendar,
    HolidayCalendarError,
    HolidaySet,
    load_holiday_set,
)
from app.production.scheduling.models import (
    PlanValidationError,
    ProductionPlan,
    ProductionStage,
    StageStatus,
    Task,
)
from app.production.scheduling.calculator import (
    StageScheduler,
    normalize_duration,
    recompute_plan,
)
from app.production.scheduling.classifier import (
    TaskBuckets,
    TaskClassifier,
    calculate_priority,
    classify_tasks,
)
from app.production.scheduling.service import (
    ProductionScheduleService,
    build_calendar_from_config,
)

__all__ = [
    'SchedulingConfig',
    'BusinessCalendar',
    'HolidayCalendarError',
    'HolidaySet',
    'load_holiday_set',
    'PlanValidationError',
    'ProductionPlan',
    'ProductionStage',
    'StageStatus',
    'Task',
    'StageScheduler',
    'normalize_duration',
    'recompute_plan',
    'TaskBuckets',
    'TaskClassifier',
    'calculate_priority',
    'classify_tasks',
    'ProductionScheduleService',
    'build_calendar_from_config',
]
