"""Гонки бронирования на файловой SQLite: отдельные потоки, отдельные сессии."""
from __future__ import annotations
import threading
from datetime import date, time

import pytest

from app import create_app
from extensions import db
from models import Ingredient, Order, OrderStatus, ServiceDay, TimeSlot, User
from uow import UnitOfWork
from blueprints.orders import services as svc
from blueprints.slots.services import generate_time_slots

N_USERS = 12


@pytest.fixture()
def app(tmp_path):
    app = create_app("test", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'race.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False, "timeout": 30}},
    })
    with app.app_context():
        db.create_all()
        db.session.add_all([User(email=f"r{i}@example.com") for i in range(1, N_USERS + 1)])
        db.session.add_all([
            Ingredient(code="PAN", name="Pane", category="bread"),
            Ingredient(code="MOZ", name="Mozzarella", category="cheese"),
        ])
        db.session.commit()
        db.session.close()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _setup_day(app, max_orders):
    with app.app_context():
        sd = ServiceDay(day=date(2026, 3, 2), is_active=True,
                        start_time=time(12, 0), end_time=time(13, 0), max_orders=max_orders)
        db.session.add(sd)
        db.session.flush()
        with UnitOfWork() as uow:
            generate_time_slots(sd, 15, uow)
            uow.commit()
        slot_ids = [s.id for s in TimeSlot.query.filter_by(service_day_id=sd.id).order_by(TimeSlot.start_time)]
        ingredient_ids = [i.id for i in Ingredient.query.order_by(Ingredient.id)]
        day_id = sd.id
        db.session.close()
    return day_id, slot_ids, ingredient_ids


def _race(app, attempts):
    """attempts: [(user_id, slot_id, ingredient_ids)] -> [(ok, code, daily_number)]"""
    barrier = threading.Barrier(len(attempts))
    results = []
    lock = threading.Lock()

    def worker(user_id, slot_id, ingredient_ids):
        with app.app_context():
            barrier.wait()
            res = svc.create_order(actor_id=user_id, time_slot_id=slot_id, ingredient_ids=ingredient_ids)
            # после commit объекты протухают: читаем номер внутри контекста
            row = (res.ok, None if res.ok else res.error.code, res.value.daily_number if res.ok else None)
        with lock:
            results.append(row)

    threads = [threading.Thread(target=worker, args=a) for a in attempts]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert len(results) == len(attempts)
    return results


def test_capacity_holds_under_concurrency(app):
    max_orders, extra = 3, 5
    day_id, slots, ing = _setup_day(app, max_orders)
    results = _race(app, [(uid, slots[0], ing) for uid in range(1, max_orders + extra + 1)])

    ok = [r for r in results if r[0]]
    full = [r for r in results if not r[0]]
    assert len(ok) == max_orders
    assert len(full) == extra
    assert all(code == "SLOT_FULL" for _, code, _ in full)
    assert sorted(n for _, _, n in ok) == [1, 2, 3]

    with app.app_context():
        seated = Order.query.filter(Order.time_slot_id == slots[0],
                                    Order.status != OrderStatus.REJECTED).count()
        assert seated == max_orders
        assert db.session.get(ServiceDay, day_id).last_daily_number == max_orders


def test_last_seat_goes_to_exactly_one(app):
    _, slots, ing = _setup_day(app, 2)
    with app.app_context():
        assert svc.create_order(actor_id=1, time_slot_id=slots[0], ingredient_ids=ing).ok
        db.session.close()

    results = _race(app, [(2, slots[0], ing), (3, slots[0], ing)])
    assert sorted(r[0] for r in results) == [False, True]
    assert [r[1] for r in results if not r[0]] == ["SLOT_FULL"]
    with app.app_context():
        assert Order.query.filter_by(time_slot_id=slots[0]).count() == 2


def test_daily_numbers_unique_across_slots(app):
    _, slots, ing = _setup_day(app, 10)
    attempts = [(uid, slots[uid % len(slots)], ing) for uid in range(1, N_USERS + 1)]
    results = _race(app, attempts)

    assert all(r[0] for r in results)
    assert sorted(r[2] for r in results) == list(range(1, N_USERS + 1))
    with app.app_context():
        numbers = [o.daily_number for o in Order.query.order_by(Order.daily_number)]
        assert numbers == list(range(1, N_USERS + 1))
