# blueprints/planning/routes.py
from __future__ import annotations
import logging
from datetime import date

from flask import Blueprint, request
from pydantic import ValidationError

from blueprints.core.http import (
    bad_request, current_booking_config, current_clock, domain_error, error, ok,
)
from models import ServiceDay
from uow import UnitOfWork
from blueprints.slots.services import generate_time_slots
from .schemas import WeekPlanIn
from .services import DayPlan, GlobalConstraints, WeekPlanner

log = logging.getLogger(__name__)

api_bp = Blueprint("planning_api", __name__)


def _planner() -> WeekPlanner:
    return WeekPlanner(current_booking_config(), current_clock())


@api_bp.post("/admin/service-days/<int:service_day_id>/time-slots")
def generate_slots(service_day_id: int):
    cfg = current_booking_config()
    with UnitOfWork() as uow:
        day = uow.lock_for_update(ServiceDay, service_day_id)
        if day is None:
            return error("SERVICE_DAY_NOT_FOUND", "service day not found", 404, {"service_day_id": service_day_id})
        created = generate_time_slots(day, cfg.slot_duration, uow)
        uow.commit()
    return ok({"ok": True, "service_day_id": service_day_id, "created": created})


@api_bp.get("/admin/planning/week")
def week_get():
    raw = request.args.get("start")
    try:
        start = date.fromisoformat(raw) if raw else current_clock().today()
    except ValueError:
        return error("BAD_REQUEST", "start must be an ISO date", 400, {"field": "start"})
    return ok({"ok": True, **_planner().get_week_configuration(start)})


@api_bp.post("/admin/planning/week")
def week_save():
    try:
        data = WeekPlanIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(e)

    cfg = current_booking_config()
    mo = data.global_constraints.max_orders_per_slot
    if mo is not None and not cfg.min_max_orders <= mo <= cfg.max_max_orders:
        return error("VALIDATION_ERROR", "max_orders_per_slot out of range", 422, {
            "field": "max_orders_per_slot", "min": cfg.min_max_orders, "max": cfg.max_max_orders,
        })

    res = _planner().save_week_configuration(
        data.week_start,
        GlobalConstraints(**data.global_constraints.model_dump()),
        [DayPlan(date=d.date, is_active=d.is_active, start_time=d.start_time, end_time=d.end_time)
         for d in data.days],
    )
    if not res.ok:
        return domain_error(res.error)
    return ok({"ok": True, "report": res.value.to_dict()})
