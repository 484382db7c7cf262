"""
Route handlers for the production Blueprint.

Every endpoint takes a JSON body, runs one scheduling operation and returns
the computed result. Dates are ISO strings (YYYY-MM-DD); null means the date
cannot be known yet.
"""
from flask import current_app, jsonify, request

from app.datetime_utils import format_date, to_local_date
from app.logging_config import get_logger
from app.production import production_bp
from app.production.scheduling.models import PlanValidationError
from app.production.scheduling.payloads import (
    buckets_to_dict,
    plan_from_payload,
    plan_to_dict,
    task_from_dict,
    tasks_from_orders,
)
from app.production.scheduling.service import ProductionScheduleService

logger = get_logger(__name__)


def get_schedule_service(data=None) -> ProductionScheduleService:
    """
    The application's scheduling service, or a request-scoped copy when the
    body carries its own ``holidays`` list.
    """
    service = current_app.extensions.get('production_schedule')
    if service is None:
        service = ProductionScheduleService.from_config(current_app.config)
        current_app.extensions['production_schedule'] = service

    if data and data.get('holidays') is not None:
        holidays = data.get('holidays')
        if not isinstance(holidays, list):
            raise PlanValidationError("holidays must be a list of dates")
        service = service.with_holidays(holidays)
    return service


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PlanValidationError("Request body must be a JSON object")
    return data


@production_bp.route("/plans/recompute", methods=["POST"])
def recompute_plan():
    """Recompute start/completion dates for every stage of a plan."""
    try:
        data = _json_body()
        service = get_schedule_service(data)
        plan = plan_from_payload(data.get('stages'), service.tz_name)
        result = service.recompute(plan)
        return jsonify({"stages": plan_to_dict(result)}), 200
    except PlanValidationError as exc:
        return jsonify({"error": "Invalid production plan", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error recomputing production plan", error=str(exc), exc_info=True)
        return jsonify({"error": "Failed to recompute production plan", "details": str(exc)}), 500


@production_bp.route("/plans/edit", methods=["POST"])
def edit_plan():
    """Apply one stage edit (update, remove or add) and recompute the plan."""
    try:
        data = _json_body()
        service = get_schedule_service(data)
        plan = plan_from_payload(data.get('stages'), service.tz_name)
        result = service.apply_edit(
            plan,
            data.get('stage'),
            action=data.get('action') or 'update',
            changes=data.get('changes'),
            position=data.get('position'),
        )
        return jsonify({"stages": plan_to_dict(result)}), 200
    except PlanValidationError as exc:
        return jsonify({"error": "Invalid plan edit", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error editing production plan", error=str(exc), exc_info=True)
        return jsonify({"error": "Failed to edit production plan", "details": str(exc)}), 500


@production_bp.route("/plans/from-template", methods=["POST"])
def plan_from_template():
    """Build a plan from a stage template, anchored at start_date."""
    try:
        data = _json_body()
        service = get_schedule_service(data)
        result = service.plan_from_template(data.get('template'), data.get('start_date'))
        return jsonify({"stages": plan_to_dict(result)}), 200
    except PlanValidationError as exc:
        return jsonify({"error": "Invalid stage template", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error building plan from template", error=str(exc), exc_info=True)
        return jsonify({"error": "Failed to build production plan", "details": str(exc)}), 500


@production_bp.route("/tasks/classify", methods=["POST"])
def classify_tasks():
    """
    Split outstanding stages into overdue / today / future.

    Body: either ``orders`` (order documents with items and production plans)
    or ``tasks`` (already flattened), plus an optional ``now``.
    """
    try:
        data = _json_body()
        service = get_schedule_service()
        today = service.reference_date(data.get('now'))

        if data.get('orders') is not None:
            tasks = tasks_from_orders(data.get('orders'), today, service.tz_name)
        elif isinstance(data.get('tasks'), list):
            tasks = [
                task_from_dict(item, index, today, service.tz_name)
                for index, item in enumerate(data.get('tasks'))
            ]
        else:
            raise PlanValidationError("Either orders or tasks (list) is required")

        buckets = service.classify(tasks, today)
        return jsonify(buckets_to_dict(buckets)), 200
    except PlanValidationError as exc:
        return jsonify({"error": "Invalid classification request", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error classifying tasks", error=str(exc), exc_info=True)
        return jsonify({"error": "Failed to classify tasks", "details": str(exc)}), 500


@production_bp.route("/calendar/business-days")
def business_days():
    """Inclusive business-day count between ?start= and ?end=."""
    try:
        service = get_schedule_service()
        start = to_local_date(request.args.get('start'), service.tz_name)
        end = to_local_date(request.args.get('end'), service.tz_name)
        if start is None or end is None:
            return jsonify({"error": "start and end are required (YYYY-MM-DD)"}), 400

        calendar = service.calendar
        return jsonify({
            "start": format_date(start),
            "end": format_date(end),
            "business_days": calendar.count_business_days(start, end),
            "holidays_version": calendar.holidays.version,
            "covered": calendar.covers(start) and calendar.covers(end),
        }), 200
    except Exception as exc:
        logger.error("Error counting business days", error=str(exc), exc_info=True)
        return jsonify({"error": "Failed to count business days", "details": str(exc)}), 500
