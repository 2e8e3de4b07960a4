# blueprints/orders/routes.py
from __future__ import annotations
import logging
from datetime import date

from flask import Blueprint, request
from pydantic import ValidationError

from blueprints.core.http import (
    actor_id, bad_request, current_clock, domain_error, error, ok, unauthenticated,
)
from .catalog import SqlIngredientCatalog
from .schemas import OrderIn, OrderOut, OrderUpdateIn, StatusIn, TimeSlotOut
from .services import change_order_status, create_order, delete_order, list_time_slots, update_order
from .validators import validate_ingredient_selection

log = logging.getLogger(__name__)

api_bp = Blueprint("orders_api", __name__)


def _check_ingredients(ids, catalog):
    problems = validate_ingredient_selection(ids, catalog)
    if problems:
        return error("VALIDATION_ERROR", "invalid ingredient selection", 422,
                     {"errors": [{"code": p.code, **p.details} for p in problems]})
    return None


@api_bp.post("/orders")
def orders_create():
    uid = actor_id()
    if uid is None:
        return unauthenticated()
    try:
        data = OrderIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(e)

    catalog = SqlIngredientCatalog()
    resp = _check_ingredients(data.ingredients, catalog)
    if resp:
        return resp

    res = create_order(actor_id=uid, time_slot_id=data.time_slot_id,
                       ingredient_ids=data.ingredients, catalog=catalog)
    if not res.ok:
        return domain_error(res.error)
    return ok({"ok": True, "order": OrderOut.from_order(res.value).model_dump(mode="json")}, 201)


@api_bp.put("/orders/<int:order_id>")
def orders_update(order_id: int):
    uid = actor_id()
    if uid is None:
        return unauthenticated()
    try:
        data = OrderUpdateIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(e)

    catalog = SqlIngredientCatalog()
    resp = _check_ingredients(data.ingredients, catalog)
    if resp:
        return resp

    res = update_order(order_id=order_id, actor_id=uid, ingredient_ids=data.ingredients, catalog=catalog)
    if not res.ok:
        return domain_error(res.error)
    return ok({"ok": True, "order": OrderOut.from_order(res.value).model_dump(mode="json")})


@api_bp.delete("/orders/<int:order_id>")
def orders_delete(order_id: int):
    uid = actor_id()
    if uid is None:
        return unauthenticated()
    res = delete_order(order_id=order_id, actor_id=uid)
    if not res.ok:
        return domain_error(res.error)
    return "", 204


@api_bp.post("/admin/orders/<int:order_id>/status")
def orders_change_status(order_id: int):
    try:
        data = StatusIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(e)

    res = change_order_status(order_id=order_id, status=data.status)
    if not res.ok:
        return domain_error(res.error)
    return ok({"ok": True, "order": OrderOut.from_order(res.value).model_dump(mode="json")})


@api_bp.get("/time-slots")
def time_slots_list():
    raw = request.args.get("date")
    try:
        day = date.fromisoformat(raw) if raw else current_clock().today()
    except ValueError:
        return error("BAD_REQUEST", "date must be an ISO date", 400, {"field": "date"})
    slots = list_time_slots(day=day)
    return ok({
        "ok": True,
        "date": day.isoformat(),
        "time_slots": [TimeSlotOut.from_availability(a).model_dump(mode="json") for a in slots],
    })
