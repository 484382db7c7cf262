"""
Preview helpers to show a recomputed plan and the resulting work queues.

Reads a JSON document (a plan, orders, or both), runs the engine and prints
tables, without storing anything.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from app.logging_config import get_logger
from app.production.scheduling.models import PlanValidationError
from app.production.scheduling.payloads import (
    buckets_to_dict,
    plan_from_payload,
    plan_to_dict,
    tasks_from_orders,
)
from app.production.scheduling.service import ProductionScheduleService

logger = get_logger(__name__)

PLAN_COLUMNS = ['name', 'status', 'duration_days', 'use_business_days', 'start_date', 'completed_date']
TASK_COLUMNS = ['id', 'order_number', 'stage_name', 'status', 'start_date', 'completed_date', 'priority']


def plan_frame(stages) -> pd.DataFrame:
    """Stage dicts as a table; missing dates shown as 'to be defined'."""
    df = pd.DataFrame(stages, columns=PLAN_COLUMNS)
    for column in ('start_date', 'completed_date'):
        df[column] = df[column].fillna('to be defined')
    return df


def tasks_frame(tasks) -> pd.DataFrame:
    return pd.DataFrame(tasks, columns=TASK_COLUMNS)


def preview_schedule(
    document: Dict[str, Any],
    service: ProductionScheduleService,
    now: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Recompute the plan and/or classify the orders found in ``document``.

    Args:
        document: JSON document with ``stages`` and/or ``orders``
        service: Scheduling service to run
        now: Reference time for classification (defaults to now)

    Returns:
        dict: {'stages': [...]} and/or {'buckets': {...}}

    Raises:
        PlanValidationError: If the document holds neither stages nor orders
    """
    if document.get('holidays') is not None:
        service = service.with_holidays(document['holidays'])

    results: Dict[str, Any] = {}

    if document.get('stages') is not None:
        plan = plan_from_payload(document['stages'], service.tz_name)
        results['stages'] = plan_to_dict(service.recompute(plan))

    if document.get('orders') is not None:
        today = service.reference_date(now or document.get('now'))
        tasks = tasks_from_orders(document['orders'], today, service.tz_name)
        results['buckets'] = buckets_to_dict(service.classify(tasks, today))

    if not results:
        raise PlanValidationError("Document has neither 'stages' nor 'orders'")

    return results


def print_preview(results: Dict[str, Any]):
    """Print a formatted preview of the schedule and work queues."""
    stages = results.get('stages')
    buckets = results.get('buckets')

    if stages is not None:
        print("\n" + "=" * 80)
        print("PRODUCTION PLAN")
        print("=" * 80)
        if stages:
            print(plan_frame(stages).to_string(index=False))
        else:
            print("(no stages)")

    if buckets is not None:
        summary = buckets.get('summary', {})
        print("\n" + "=" * 80)
        print(f"WORK QUEUES - {buckets.get('today_date')}")
        print("=" * 80)
        print(f"Total: {summary.get('total', 0)} | Overdue: {summary.get('overdue', 0)} | "
              f"Today: {summary.get('today', 0)} | Future: {summary.get('future', 0)} | "
              f"Unscheduled: {summary.get('unscheduled', 0)}")

        for bucket, title in (('overdue', 'OVERDUE'), ('today', 'TODAY'), ('future', 'FUTURE')):
            print(f"\n{title}")
            print("-" * 80)
            tasks = buckets.get(bucket) or []
            if tasks:
                print(tasks_frame(tasks).to_string(index=False))
            else:
                print("(none)")

    print("\n" + "=" * 80)


def run_preview_script(
    path: str,
    config: Dict[str, Any],
    now: Optional[str] = None,
    as_json: bool = False,
):
    """
    Run the preview from the command line.

    Args:
        path: JSON document path
        config: Configuration mapping used to build the calendar
        now: Optional reference time (ISO date or datetime)
        as_json: Print raw JSON instead of tables
    """
    document = json.loads(Path(path).read_text(encoding='utf-8'))
    if isinstance(document, list):
        document = {'stages': document}

    service = ProductionScheduleService.from_config(config)

    try:
        results = preview_schedule(document, service, now=now)
    except Exception as e:
        logger.error(f"Error in preview script: {e}", exc_info=True)
        raise

    if as_json:
        print(json.dumps(results, indent=2, ensure_ascii=False))
    else:
        print_preview(results)

    return results
