"""
Value objects for production plans and the tasks projected from them.

All types here are immutable: a recompute or an edit produces a new plan
rather than changing the stages it was given.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Tuple

from app.production.scheduling.config import SchedulingConfig


class PlanValidationError(ValueError):
    """Raised when a plan or an edit is structurally invalid."""


class StageStatus(str, Enum):
    PENDING = 'Pending'
    IN_PROGRESS = 'InProgress'
    COMPLETED = 'Completed'

    @classmethod
    def parse(cls, value) -> 'StageStatus':
        """Resolve a status label (canonical or alias) to a StageStatus."""
        if isinstance(value, cls):
            return value
        return cls(SchedulingConfig.get_status_value(value))


@dataclass(frozen=True)
class ProductionStage:
    """One step of a production plan."""
    name: str
    status: StageStatus = StageStatus.PENDING
    start_date: Optional[date] = None
    completed_date: Optional[date] = None
    duration_days: Optional[float] = None
    use_business_days: bool = True

    @property
    def is_scheduled(self) -> bool:
        return self.start_date is not None

    def unscheduled(self) -> 'ProductionStage':
        """Copy of this stage with both dates cleared."""
        return replace(self, start_date=None, completed_date=None)


@dataclass(frozen=True)
class ProductionPlan:
    """
    Ordered stages of one item. Stage i cannot start before stage i-1
    finishes; names are unique within the plan.
    """
    stages: Tuple[ProductionStage, ...] = ()

    def __post_init__(self):
        stages = tuple(self.stages)
        seen = set()
        for stage in stages:
            if not stage.name:
                raise PlanValidationError("Every stage needs a name")
            if stage.name in seen:
                raise PlanValidationError(f"Duplicate stage name: {stage.name}")
            seen.add(stage.name)
        object.__setattr__(self, 'stages', stages)

    @classmethod
    def of(cls, stages: Iterable[ProductionStage]) -> 'ProductionPlan':
        return cls(tuple(stages))

    def __len__(self):
        return len(self.stages)

    def __iter__(self):
        return iter(self.stages)

    def __getitem__(self, index):
        return self.stages[index]

    def index_of(self, name: str) -> int:
        """Position of the named stage; raises PlanValidationError if absent."""
        for index, stage in enumerate(self.stages):
            if stage.name == name:
                return index
        raise PlanValidationError(f"Stage not found: {name}")

    def get(self, name: str) -> ProductionStage:
        return self.stages[self.index_of(name)]

    def replace_stage(self, name: str, **changes) -> 'ProductionPlan':
        index = self.index_of(name)
        updated = replace(self.stages[index], **changes)
        return ProductionPlan(self.stages[:index] + (updated,) + self.stages[index + 1:])

    def without_stage(self, name: str) -> 'ProductionPlan':
        index = self.index_of(name)
        return ProductionPlan(self.stages[:index] + self.stages[index + 1:])

    def with_stage(self, stage: ProductionStage, position: Optional[int] = None) -> 'ProductionPlan':
        if position is None:
            position = len(self.stages)
        return ProductionPlan(self.stages[:position] + (stage,) + self.stages[position:])


@dataclass(frozen=True)
class Task:
    """
    Read-only projection of one incomplete stage and the order item owning it.
    Built per classification pass; never stored on its own.
    """
    id: str
    stage_name: str
    status: StageStatus = StageStatus.PENDING
    start_date: Optional[date] = None
    completed_date: Optional[date] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    customer: Optional[str] = None
    item_id: Optional[str] = None
    item_description: Optional[str] = None
    stage_index: Optional[int] = None
    delivery_date: Optional[date] = None
    responsible: Optional[str] = None
    priority: str = 'media'
    is_overdue: bool = False
    extra: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def due_date(self) -> Optional[date]:
        return self.completed_date

    @property
    def is_unscheduled(self) -> bool:
        return self.start_date is None and self.completed_date is None
