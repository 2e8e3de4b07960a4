from __future__ import annotations
from datetime import date, datetime, time, timedelta

import pytest

from app import create_app
from clock import FixedClock
from extensions import db
from models import Ingredient, Order, OrderStatus, ServiceDay, TimeSlot, User
from blueprints.orders import services as order_svc
from blueprints.planning.services import (
    DayPlan, GlobalConstraints, WeekPlanner, normalize_time, normalize_window, week_bounds,
)

MONDAY = date(2026, 3, 2)
SUNDAY_BEFORE = datetime(2026, 3, 1, 9, 0)


@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        db.session.add_all([User(email=f"p{i}@example.com") for i in range(1, 12)])
        db.session.add_all([
            Ingredient(code="PAN", name="Pane", category="bread"),
            Ingredient(code="MOZ", name="Mozzarella", category="cheese"),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


def _planner(app, at=SUNDAY_BEFORE):
    return WeekPlanner(app.extensions["booking"], FixedClock(at))


def _week(active=range(5), start=time(12, 0), end=time(14, 0)):
    return [DayPlan(date=MONDAY + timedelta(days=i), is_active=i in active, start_time=start, end_time=end)
            for i in range(7)]


def _order(user_id, slot_id):
    ing = [i.id for i in Ingredient.query.order_by(Ingredient.id)]
    res = order_svc.create_order(actor_id=user_id, time_slot_id=slot_id, ingredient_ids=ing)
    assert res.ok, res.error
    return res.value.id


def _slots(d):
    sd = ServiceDay.query.filter_by(day=d).one()
    return TimeSlot.query.filter_by(service_day_id=sd.id).order_by(TimeSlot.start_time).all()


# ---------- normalisation ----------
def test_week_bounds():
    assert week_bounds(date(2026, 3, 5)) == (MONDAY, date(2026, 3, 8))
    assert week_bounds(MONDAY) == (MONDAY, date(2026, 3, 8))


def test_normalize_rounds_to_nearest_slot():
    assert normalize_window(time(12, 7), time(13, 53), 15) == (time(12, 0), time(14, 0))
    assert normalize_window(time(12, 8), time(13, 0), 15) == (time(12, 15), time(13, 0))
    # половина округляется вверх
    assert normalize_time(time(12, 5), 10) == 12 * 60 + 10


def test_normalize_pushes_end_forward():
    assert normalize_window(time(12, 0), time(12, 5), 15) == (time(12, 0), time(12, 15))
    assert normalize_window(time(13, 0), time(12, 0), 15) == (time(13, 0), time(13, 15))


def test_normalize_end_of_day():
    assert normalize_window(time(23, 55), time(23, 59), 15) == (time(23, 30), time(23, 45))


# ---------- create / idempotence ----------
def test_creates_active_days_with_slots(app_ctx):
    res = _planner(app_ctx).save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=4), _week())
    assert res.ok
    r = res.value
    assert r.days_created == 5
    assert r.time_slots_generated == 5 * 8
    assert r.days_unchanged == 2
    assert ServiceDay.query.count() == 5
    sd = ServiceDay.query.filter_by(day=MONDAY).one()
    assert (sd.start_time, sd.end_time, sd.max_orders, sd.max_time) == (time(12, 0), time(14, 0), 4, 30)
    assert sd.location == app_ctx.config["DEFAULT_LOCATION"]


def test_second_identical_save_changes_nothing(app_ctx):
    planner = _planner(app_ctx)
    gc = GlobalConstraints(max_orders_per_slot=4, max_pending_time=20, location="Atrio")
    assert planner.save_week_configuration(MONDAY, gc, _week()).value.changed
    slot_ids = sorted(s.id for s in TimeSlot.query)

    r = planner.save_week_configuration(MONDAY, gc, _week()).value
    assert not r.changed
    assert r.days_unchanged == 7
    assert sorted(s.id for s in TimeSlot.query) == slot_ids


def test_unnormalised_times_are_stored_normalised(app_ctx):
    plans = [DayPlan(date=MONDAY, is_active=True, start_time=time(11, 52), end_time=time(13, 8))]
    r = _planner(app_ctx).save_week_configuration(MONDAY, None, plans).value
    sd = ServiceDay.query.filter_by(day=MONDAY).one()
    assert (sd.start_time, sd.end_time) == (time(11, 45), time(13, 15))
    assert r.time_slots_generated == 6
    # тот же «сырой» план повторно: изменений нет
    assert not _planner(app_ctx).save_week_configuration(MONDAY, None, plans).value.changed


# ---------- past guards ----------
def test_past_week_is_rejected_without_writes(app_ctx):
    res = _planner(app_ctx, datetime(2026, 3, 9, 8, 0)).save_week_configuration(MONDAY, None, _week())
    assert not res.ok
    assert res.error.code == "WEEK_NOT_EDITABLE"
    assert res.error.details == {"week_start": "2026-03-02", "week_end": "2026-03-08"}
    assert ServiceDay.query.count() == 0


def test_past_days_are_skipped_today_is_editable(app_ctx):
    _planner(app_ctx).save_week_configuration(MONDAY, None, _week())
    wednesday = datetime(2026, 3, 4, 10, 0)

    r = _planner(app_ctx, wednesday).save_week_configuration(MONDAY, None, _week(active=()))
    assert r.ok
    assert r.value.days_skipped == 2
    # пн/вт нетронуты, ср..пт (без заказов) удалены
    assert [sd.day for sd in ServiceDay.query.order_by(ServiceDay.day)] == [MONDAY, MONDAY + timedelta(days=1)]
    assert r.value.days_deleted == 3


def test_days_outside_the_week_are_ignored(app_ctx):
    plans = [DayPlan(date=MONDAY + timedelta(days=7), is_active=True)]
    r = _planner(app_ctx).save_week_configuration(MONDAY, None, plans).value
    assert r.days_skipped == 1
    assert ServiceDay.query.count() == 0


# ---------- capacity cascade ----------
def test_capacity_reduction_rejects_by_daily_number(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=10), _week(active=(0,)))
    slot = _slots(MONDAY)[0]
    ids = [_order(uid, slot.id) for uid in range(1, 10)]

    # номера в обратном порядке к id: самый ранний id получает номер 9
    orders = [db.session.get(Order, i) for i in ids]
    for o in orders:
        o.daily_number += 100
    db.session.flush()
    for o, n in zip(orders, range(9, 0, -1)):
        o.daily_number = n
    db.session.commit()

    r = planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=5), _week(active=(0,))).value
    assert r.orders_rejected == 4
    assert r.days_updated == 1

    by_number = {o.daily_number: o.status for o in Order.query}
    assert all(by_number[n] == OrderStatus.PENDING for n in range(1, 6))
    assert all(by_number[n] == OrderStatus.REJECTED for n in range(6, 10))
    assert sorted(r.rejected_order_ids) == sorted(ids[:4])


def test_capacity_reduction_ignores_already_rejected(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=3), _week(active=(0,)))
    slot = _slots(MONDAY)[0]
    first = _order(1, slot.id)
    _order(2, slot.id)
    _order(3, slot.id)
    order_svc.change_order_status(order_id=first, status=OrderStatus.REJECTED)

    r = planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=2), _week(active=(0,))).value
    assert r.orders_rejected == 0


def test_capacity_increase_rejects_nothing(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=2), _week(active=(0,)))
    slot = _slots(MONDAY)[0]
    _order(1, slot.id)
    _order(2, slot.id)
    r = planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=8), _week(active=(0,))).value
    assert r.orders_rejected == 0
    assert r.days_updated == 1
    assert ServiceDay.query.filter_by(day=MONDAY).one().max_orders == 8


# ---------- window changes ----------
def test_window_shrink_rejects_and_removes_uncovered_slots(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, None, _week(active=(0,)))
    slots = _slots(MONDAY)
    kept_order = _order(1, slots[0].id)        # 12:00
    dropped_order = _order(2, slots[-1].id)    # 13:45

    r = planner.save_week_configuration(
        MONDAY, None, _week(active=(0,), start=time(12, 0), end=time(13, 0))).value
    assert r.orders_rejected == 1
    assert r.rejected_order_ids == [dropped_order]
    assert db.session.get(Order, dropped_order) is None
    assert db.session.get(Order, kept_order).status == OrderStatus.PENDING
    # слот с заказом остаётся, пустые удалены, новая нарезка не делается
    assert [(s.start_time, s.end_time) for s in _slots(MONDAY)] == [(time(12, 0), time(12, 15))]
    assert r.time_slots_generated == 0
    assert r.time_slots_deleted == 7


def test_window_shrink_over_booked_slot_via_api(app_ctx):
    app_ctx.extensions["clock"] = FixedClock(SUNDAY_BEFORE)
    client = app_ctx.test_client()
    body = {
        "week_start": "2026-03-02",
        "days": [{"date": "2026-03-02", "is_active": True, "start_time": "12:00", "end_time": "14:00"}],
    }
    assert client.post("/api/v1/admin/planning/week", json=body).status_code == 200
    booked = _order(3, _slots(MONDAY)[-1].id)

    body["days"][0]["end_time"] = "13:00"
    r = client.post("/api/v1/admin/planning/week", json=body)
    assert r.status_code == 200, r.get_json()
    assert r.get_json()["report"]["rejected_order_ids"] == [booked]
    assert r.get_json()["report"]["time_slots_generated"] == 4
    assert Order.query.count() == 0
    assert _slots(MONDAY)[-1].end_time == time(13, 0)


def test_window_change_without_orders_regenerates(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, None, _week(active=(0,)))
    r = planner.save_week_configuration(
        MONDAY, None, _week(active=(0,), start=time(11, 0), end=time(13, 0))).value
    assert r.time_slots_deleted == 8
    assert r.time_slots_generated == 8
    slots = _slots(MONDAY)
    assert slots[0].start_time == time(11, 0)
    assert slots[-1].end_time == time(13, 0)


def test_failure_mid_week_rolls_back_applied_days(app_ctx, monkeypatch):
    from blueprints.planning import services as planning_svc
    real_generate = planning_svc.generate_time_slots
    seen = []

    def generate_then_fail(day, duration, uow):
        seen.append(day.day)
        if len(seen) == 2:
            raise RuntimeError("slot storage unavailable")
        return real_generate(day, duration, uow)

    monkeypatch.setattr(planning_svc, "generate_time_slots", generate_then_fail)
    tuesday = MONDAY + timedelta(days=1)
    plans = [
        DayPlan(date=tuesday, is_active=True, start_time=time(12, 0), end_time=time(13, 0)),
        DayPlan(date=MONDAY, is_active=True, start_time=time(12, 0), end_time=time(13, 0)),
    ]
    with pytest.raises(RuntimeError):
        _planner(app_ctx).save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=4), plans)

    assert seen == [tuesday, MONDAY]
    # вторник уже был применён в той же транзакции и откатился вместе с понедельником
    assert ServiceDay.query.count() == 0
    assert TimeSlot.query.count() == 0


# ---------- deactivation ----------
def test_deactivate_day_with_orders_keeps_everything(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, None, _week(active=(0,)))
    slot = _slots(MONDAY)[0]
    oid = _order(1, slot.id)

    r = planner.save_week_configuration(MONDAY, None, _week(active=())).value
    assert r.days_disabled == 1
    assert r.days_deleted == 0
    assert r.orders_rejected == 0
    sd = ServiceDay.query.filter_by(day=MONDAY).one()
    assert sd.is_active is False
    assert TimeSlot.query.filter_by(service_day_id=sd.id).count() == 8
    assert db.session.get(Order, oid).status == OrderStatus.PENDING

    # повторно: без изменений
    assert not planner.save_week_configuration(MONDAY, None, _week(active=())).value.changed


def test_deactivate_day_without_orders_deletes_it(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, None, _week(active=(0,)))
    r = planner.save_week_configuration(MONDAY, None, _week(active=())).value
    assert r.days_deleted == 1
    assert r.time_slots_deleted == 8
    assert ServiceDay.query.count() == 0
    assert TimeSlot.query.count() == 0


def test_reactivate_disabled_day(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, None, _week(active=(0,)))
    _order(1, _slots(MONDAY)[0].id)
    planner.save_week_configuration(MONDAY, None, _week(active=()))
    r = planner.save_week_configuration(MONDAY, None, _week(active=(0,))).value
    assert r.days_updated == 1
    assert ServiceDay.query.filter_by(day=MONDAY).one().is_active is True


# ---------- read side ----------
def test_get_week_configuration(app_ctx):
    planner = _planner(app_ctx)
    planner.save_week_configuration(MONDAY, GlobalConstraints(max_orders_per_slot=6, location="Atrio"),
                                    _week(active=(0, 2)))
    _order(1, _slots(MONDAY)[0].id)

    cfg = _planner(app_ctx, datetime(2026, 3, 3, 9, 0)).get_week_configuration(MONDAY + timedelta(days=3))
    assert cfg["week_start"] == "2026-03-02"
    assert cfg["week_end"] == "2026-03-08"
    assert cfg["is_week_editable"] is True
    assert cfg["global_constraints"]["max_orders_per_slot"] == 6
    assert cfg["global_constraints"]["location"] == "Atrio"
    days = cfg["days"]
    assert len(days) == 7
    assert days[0]["is_active"] and days[0]["orders_count"] == 1 and not days[0]["is_editable"]
    assert days[1]["is_active"] is False and days[1]["is_editable"] is True
    assert days[2]["is_active"] is True and days[2]["has_orders"] is False


def test_get_week_configuration_defaults(app_ctx):
    cfg = _planner(app_ctx).get_week_configuration(MONDAY)
    assert cfg["has_persisted_data"] is False
    assert cfg["global_constraints"]["max_orders_per_slot"] == app_ctx.config["DEFAULT_MAX_ORDERS_PER_SLOT"]
    assert cfg["days"][0]["start_time"] == "12:00"


# ---------- HTTP ----------
def test_week_api(app_ctx):
    app_ctx.extensions["clock"] = FixedClock(SUNDAY_BEFORE)
    client = app_ctx.test_client()
    body = {
        "week_start": "2026-03-02",
        "global_constraints": {"max_orders_per_slot": 5},
        "days": [{"date": "2026-03-02", "is_active": True, "start_time": "12:00", "end_time": "13:00"}],
    }
    r = client.post("/api/v1/admin/planning/week", json=body)
    assert r.status_code == 200, r.get_json()
    assert r.get_json()["report"]["days_created"] == 1
    assert r.get_json()["report"]["time_slots_generated"] == 4

    r = client.get("/api/v1/admin/planning/week?start=2026-03-02")
    assert r.status_code == 200
    assert r.get_json()["days"][0]["is_active"] is True

    body["global_constraints"]["max_orders_per_slot"] = 500
    r = client.post("/api/v1/admin/planning/week", json=body)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    assert client.get("/api/v1/admin/planning/week?start=nope").status_code == 400

    app_ctx.extensions["clock"] = FixedClock(datetime(2026, 4, 1, 9, 0))
    body["global_constraints"]["max_orders_per_slot"] = 5
    r = client.post("/api/v1/admin/planning/week", json=body)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "WEEK_NOT_EDITABLE"
