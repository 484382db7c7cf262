"""
Conversion between JSON-shaped payloads and scheduling value objects.

Stage and order payloads are accepted in snake_case as well as the camelCase
field names the order documents are stored with (``stageName``,
``durationDays``, ``productionPlan``...).
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from app.datetime_utils import format_date, to_local_date
from app.logging_config import get_logger
from app.production.scheduling.classifier import TaskBuckets, calculate_priority
from app.production.scheduling.config import SchedulingConfig
from app.production.scheduling.models import (
    PlanValidationError,
    ProductionPlan,
    ProductionStage,
    StageStatus,
    Task,
)

logger = get_logger(__name__)


def _pick(data: Dict[str, Any], *keys, default=None):
    """First present (non-None) value among several key spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def parse_bool(value, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('false', '0', 'no', 'n', 'off', ''):
            return False
        return True
    return bool(value)


def parse_duration(value) -> Optional[float]:
    """
    Raw duration as a float, or None when missing or unparseable.

    Raises:
        PlanValidationError: If the duration exceeds the largest plannable effort
    """
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        duration = float(value)
    except (ValueError, TypeError):
        logger.warning("Unparseable stage duration, using default", value=str(value))
        return None
    if duration > SchedulingConfig.MAX_DURATION_DAYS:
        raise PlanValidationError(
            f"duration_days cannot exceed {SchedulingConfig.MAX_DURATION_DAYS:g} days: {value!r}"
        )
    return duration


def stage_from_dict(data: Dict[str, Any], tz_name: Optional[str] = None) -> ProductionStage:
    """
    Build a ProductionStage from a payload dict.

    Raises:
        PlanValidationError: If the payload is not an object or has no name
    """
    if not isinstance(data, dict):
        raise PlanValidationError("Each stage must be an object")

    name = _pick(data, 'name', 'stage_name', 'stageName')
    if name is None or not str(name).strip():
        raise PlanValidationError("Each stage needs a name")

    return ProductionStage(
        name=str(name).strip(),
        status=StageStatus.parse(_pick(data, 'status')),
        start_date=to_local_date(_pick(data, 'start_date', 'startDate'), tz_name),
        completed_date=to_local_date(_pick(data, 'completed_date', 'completedDate'), tz_name),
        duration_days=parse_duration(_pick(data, 'duration_days', 'durationDays')),
        use_business_days=parse_bool(_pick(data, 'use_business_days', 'useBusinessDays'), default=True),
    )


def plan_from_payload(stages, tz_name: Optional[str] = None) -> ProductionPlan:
    """
    Build a ProductionPlan from a list of stage payloads.

    Raises:
        PlanValidationError: If stages is not a list, or stages are invalid
    """
    if not isinstance(stages, list):
        raise PlanValidationError("stages must be a list")
    return ProductionPlan.of(stage_from_dict(s, tz_name) for s in stages)


def stage_to_dict(stage: ProductionStage) -> Dict[str, Any]:
    return {
        'name': stage.name,
        'status': stage.status.value,
        'start_date': format_date(stage.start_date),
        'completed_date': format_date(stage.completed_date),
        'duration_days': stage.duration_days,
        'use_business_days': stage.use_business_days,
    }


def plan_to_dict(plan: ProductionPlan) -> List[Dict[str, Any]]:
    return [stage_to_dict(stage) for stage in plan]


def tasks_from_orders(
    orders: Iterable[Dict[str, Any]],
    today: date,
    tz_name: Optional[str] = None,
) -> List[Task]:
    """
    Flatten orders → items → production plan stages into Task projections.

    Closed (completed or cancelled) orders, completed stages and stages
    without a name produce no task. Task ids follow
    ``{order_id}-{item_index}-{stage_index}``.

    Raises:
        PlanValidationError: If orders is not a list of objects
    """
    if not isinstance(orders, list):
        raise PlanValidationError("orders must be a list")

    tasks: List[Task] = []
    for order_index, order in enumerate(orders):
        if not isinstance(order, dict):
            raise PlanValidationError("Each order must be an object")
        if SchedulingConfig.is_closed_order(order.get('status')):
            continue

        order_id = str(_pick(order, 'id', 'order_id', 'orderId', default=order_index))
        order_number = _pick(order, 'quotationNumber', 'order_number', 'orderNumber', default='N/A')
        customer = order.get('customer')
        if isinstance(customer, dict):
            customer = customer.get('name')
        customer = customer or _pick(order, 'customer_name', 'customerName')
        delivery_date = to_local_date(_pick(order, 'delivery_date', 'deliveryDate'), tz_name)
        priority = calculate_priority(delivery_date, today)

        for item_index, item in enumerate(order.get('items') or []):
            if not isinstance(item, dict):
                continue
            stages = _pick(item, 'production_plan', 'productionPlan', default=[])
            if not isinstance(stages, list):
                continue

            for stage_index, raw_stage in enumerate(stages):
                if not isinstance(raw_stage, dict):
                    continue
                try:
                    stage = stage_from_dict(raw_stage, tz_name)
                except PlanValidationError:
                    continue
                if stage.status == StageStatus.COMPLETED:
                    continue

                tasks.append(Task(
                    id=f"{order_id}-{item_index}-{stage_index}",
                    stage_name=stage.name,
                    status=stage.status,
                    start_date=stage.start_date,
                    completed_date=stage.completed_date,
                    order_id=order_id,
                    order_number=str(order_number),
                    customer=customer,
                    item_id=str(_pick(item, 'id', 'item_id', default=f"item-{item_index}")),
                    item_description=_pick(item, 'description', 'item_description'),
                    stage_index=stage_index,
                    delivery_date=delivery_date,
                    responsible=_pick(raw_stage, 'responsible', 'responsibleName', 'responsibleId'),
                    priority=priority,
                ))

    return tasks


def task_from_dict(data: Dict[str, Any], index: int, today: date, tz_name: Optional[str] = None) -> Task:
    """
    Build a Task from an already-flattened task payload.

    Raises:
        PlanValidationError: If the payload is not an object or has no stage name
    """
    if not isinstance(data, dict):
        raise PlanValidationError("Each task must be an object")

    stage_name = _pick(data, 'stage_name', 'stageName', 'name')
    if stage_name is None:
        raise PlanValidationError("Each task needs a stage_name")

    delivery_date = to_local_date(_pick(data, 'delivery_date', 'deliveryDate'), tz_name)
    known = {
        'id', 'stage_name', 'stageName', 'name', 'status', 'start_date', 'startDate',
        'completed_date', 'completedDate', 'due_date', 'dueDate', 'order_id', 'orderId',
        'order_number', 'orderNumber', 'customer', 'item_id', 'itemId', 'item_description',
        'itemDescription', 'stage_index', 'stageIndex', 'delivery_date', 'deliveryDate',
        'responsible',
    }
    return Task(
        id=str(_pick(data, 'id', default=index)),
        stage_name=str(stage_name),
        status=StageStatus.parse(data.get('status')),
        start_date=to_local_date(_pick(data, 'start_date', 'startDate'), tz_name),
        completed_date=to_local_date(
            _pick(data, 'completed_date', 'completedDate', 'due_date', 'dueDate'), tz_name
        ),
        order_id=_pick(data, 'order_id', 'orderId'),
        order_number=_pick(data, 'order_number', 'orderNumber'),
        customer=data.get('customer'),
        item_id=_pick(data, 'item_id', 'itemId'),
        item_description=_pick(data, 'item_description', 'itemDescription'),
        stage_index=_pick(data, 'stage_index', 'stageIndex'),
        delivery_date=delivery_date,
        responsible=data.get('responsible'),
        priority=calculate_priority(delivery_date, today),
        extra={k: v for k, v in data.items() if k not in known},
    )


def task_to_dict(task: Task) -> Dict[str, Any]:
    result = {
        'id': task.id,
        'order_id': task.order_id,
        'order_number': task.order_number,
        'customer': task.customer,
        'item_id': task.item_id,
        'item_description': task.item_description,
        'stage_index': task.stage_index,
        'stage_name': task.stage_name,
        'status': task.status.value,
        'start_date': format_date(task.start_date),
        'completed_date': format_date(task.completed_date),
        'delivery_date': format_date(task.delivery_date),
        'responsible': task.responsible,
        'priority': task.priority,
        'is_overdue': task.is_overdue,
    }
    # Caller metadata passes through untouched
    for key, value in task.extra.items():
        result.setdefault(key, value)
    return result


def buckets_to_dict(buckets: TaskBuckets) -> Dict[str, Any]:
    return {
        'today_date': format_date(buckets.today_date),
        'overdue': [task_to_dict(t) for t in buckets.overdue],
        'today': [task_to_dict(t) for t in buckets.today],
        'future': [task_to_dict(t) for t in buckets.future],
        'unscheduled': [task_to_dict(t) for t in buckets.unscheduled],
        'summary': buckets.summary(),
    }
