# blueprints/orders/services.py
"""Order booking: create / update / delete / status changes.

Booking serialises on the service day row (FOR UPDATE) and then on the
time slot row, inside one unit of work. The day lock covers both the
capacity check and the daily sequence, so two bookings on different slots
of the same day can never receive the same `daily_number`, and at most
`max_orders` non-rejected orders can exist on a slot.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from sqlalchemy import select

from errors import (
    ConfigurationError, DuplicateOrder, OrderNotFound, OrderNotModifiable, Outcome,
    SlotFull, TimeSlotNotFound, UnauthorizedOrderAccess,
)
from models import Order, OrderIngredient, OrderStatus, ServiceDay, TimeSlot
from uow import UnitOfWork
from clock import Clock
from .capacity import admits, seated_count
from .catalog import IngredientCatalog, SqlIngredientCatalog
from .lifecycle import check_transition, is_modifiable
from .sequence import next_daily_number

log = logging.getLogger(__name__)


def _snapshots(ingredient_ids: Sequence[int], catalog: IngredientCatalog) -> list[OrderIngredient]:
    # копия name/category на текущий момент, без ссылки на каталог
    return [OrderIngredient(name=it.name, category=it.category) for it in catalog.find_by_ids(ingredient_ids)]


def _require_capacity(day: ServiceDay) -> int:
    if day.max_orders is None or day.max_orders <= 0:
        log.error("service day has no usable max_orders", extra={
            "event": "config_error", "service_day_id": day.id, "max_orders": day.max_orders,
        })
        raise ConfigurationError(
            f"service day {day.day} has no valid max_orders configured ({day.max_orders!r})"
        )
    return day.max_orders


def _owned_pending(uow: UnitOfWork, order_id: int, actor_id: int):
    """Заказ под блокировкой + проверки владельца и статуса. -> (order, error)"""
    order: Order | None = uow.lock_for_update(Order, order_id)
    if order is None:
        return None, OrderNotFound(order_id=order_id)
    if order.user_id != actor_id:
        log.warning("order access denied", extra={
            "event": "order_access_denied", "order_id": order_id, "actor_id": actor_id,
        })
        return None, UnauthorizedOrderAccess()
    if not is_modifiable(order.status):
        return None, OrderNotModifiable(status=order.status.value)
    return order, None


def create_order(*, actor_id: int, time_slot_id: int, ingredient_ids: Sequence[int],
                 catalog: Optional[IngredientCatalog] = None) -> Outcome[Order]:
    catalog = catalog or SqlIngredientCatalog()
    with UnitOfWork() as uow:
        # 1) блокировки: сначала день (как в перепланировании), потом слот
        target: TimeSlot | None = uow.load(TimeSlot, time_slot_id)
        if target is None:
            return Outcome.failure(TimeSlotNotFound(time_slot_id=time_slot_id))
        day: ServiceDay | None = uow.lock_for_update(ServiceDay, target.service_day_id)
        slot: TimeSlot | None = uow.lock_for_update(TimeSlot, time_slot_id)
        if slot is None:
            return Outcome.failure(TimeSlotNotFound(time_slot_id=time_slot_id))
        if day is None:
            raise ConfigurationError(f"time slot {time_slot_id} has no service day")

        # 2) конфигурация
        max_orders = _require_capacity(day)

        # 3) один активный заказ пользователя на слот
        existing = uow.session.execute(
            select(Order.id).where(
                Order.user_id == actor_id,
                Order.time_slot_id == slot.id,
                Order.status != OrderStatus.REJECTED,
            ).limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            return Outcome.failure(DuplicateOrder(order_id=existing))

        # 4) вместимость
        seated = seated_count(uow.session, slot.id)
        if not admits(seated, max_orders):
            log.info("slot full", extra={
                "event": "slot_full", "time_slot_id": slot.id, "seated": seated, "max_orders": max_orders,
            })
            return Outcome.failure(SlotFull(time_slot_id=slot.id, max_orders=max_orders))

        # 5) заказ + номер дня + снимок ингредиентов
        order = Order(
            user_id=actor_id,
            time_slot_id=slot.id,
            service_day_id=day.id,
            status=OrderStatus.PENDING,
            daily_number=next_daily_number(day),
        )
        order.ingredients = _snapshots(ingredient_ids, catalog)
        uow.save(order)
        uow.flush()
        uow.commit()

        log.info("order created", extra={
            "event": "order_created", "order_id": order.id, "time_slot_id": slot.id,
            "service_day_id": day.id, "daily_number": order.daily_number, "actor_id": actor_id,
        })
        return Outcome.success(order)


def update_order(*, order_id: int, actor_id: int, ingredient_ids: Sequence[int],
                 catalog: Optional[IngredientCatalog] = None) -> Outcome[Order]:
    """Replace the whole ingredient set of a pending order owned by `actor_id`."""
    catalog = catalog or SqlIngredientCatalog()
    with UnitOfWork() as uow:
        order, err = _owned_pending(uow, order_id, actor_id)
        if err:
            return Outcome.failure(err)

        order.ingredients.clear()
        uow.flush()
        order.ingredients.extend(_snapshots(ingredient_ids, catalog))
        order.updated_at = datetime.utcnow()
        uow.flush()
        uow.commit()

        log.info("order updated", extra={"event": "order_updated", "order_id": order_id, "actor_id": actor_id})
        return Outcome.success(order)


def delete_order(*, order_id: int, actor_id: int) -> Outcome[None]:
    with UnitOfWork() as uow:
        order, err = _owned_pending(uow, order_id, actor_id)
        if err:
            return Outcome.failure(err)
        daily_number = order.daily_number
        uow.delete(order)
        uow.commit()

    log.info("order deleted", extra={
        "event": "order_deleted", "order_id": order_id, "daily_number": daily_number, "actor_id": actor_id,
    })
    return Outcome.success(None)


def change_order_status(*, order_id: int, status: OrderStatus) -> Outcome[Order]:
    """Staff action; capacity is not re-checked, it only gates new orders."""
    with UnitOfWork() as uow:
        order: Order | None = uow.lock_for_update(Order, order_id)
        if order is None:
            return Outcome.failure(OrderNotFound(order_id=order_id))

        err = check_transition(order.status, status)
        if err:
            log.info("status change refused", extra={
                "event": "status_refused", "order_id": order_id, "from": err.from_status, "to": err.to_status,
            })
            return Outcome.failure(err)

        previous = order.status
        order.status = status
        uow.commit()

    log.info("order status changed", extra={
        "event": "status_changed", "order_id": order_id, "from": previous.value, "to": status.value,
    })
    return Outcome.success(order)


def confirm_due_orders(*, clock: Clock) -> int:
    """Подтвердить сегодняшние pending-заказы, у которых прошёл дедлайн.

    Дедлайн = начало слота - service_day.max_time минут.
    """
    now = clock.now()
    today = clock.today()
    confirmed = 0
    with UnitOfWork() as uow:
        rows = uow.session.execute(
            select(Order, TimeSlot, ServiceDay)
            .join(TimeSlot, TimeSlot.id == Order.time_slot_id)
            .join(ServiceDay, ServiceDay.id == Order.service_day_id)
            .where(Order.status == OrderStatus.PENDING, ServiceDay.day == today)
            .order_by(Order.daily_number.asc())
            .with_for_update(of=Order)
        ).all()

        for order, slot, day in rows:
            slot_start = datetime.combine(day.day, slot.start_time, tzinfo=now.tzinfo)
            deadline = slot_start - timedelta(minutes=day.max_time or 0)
            if now < deadline:
                continue
            if check_transition(order.status, OrderStatus.CONFIRMED) is None:
                order.status = OrderStatus.CONFIRMED
                confirmed += 1
                log.info("order auto-confirmed", extra={
                    "event": "order_auto_confirmed", "order_id": order.id,
                    "daily_number": order.daily_number, "deadline": deadline.isoformat(),
                })
        uow.commit()

    log.info("auto-confirm finished", extra={"event": "auto_confirm", "day": today.isoformat(), "count": confirmed})
    return confirmed


@dataclass(frozen=True)
class SlotAvailability:
    time_slot_id: int
    start_time: time
    end_time: time
    max_orders: int
    seated: int

    @property
    def remaining(self) -> int:
        return max(self.max_orders - self.seated, 0)

    @property
    def available(self) -> bool:
        return admits(self.seated, self.max_orders)


def list_time_slots(*, day: date) -> list[SlotAvailability]:
    """Слоты активного дня с занятостью; для выключенного или несуществующего дня пусто."""
    with UnitOfWork() as uow:
        service_day = uow.session.execute(
            select(ServiceDay).where(ServiceDay.day == day)
        ).scalar_one_or_none()
        if service_day is None or not service_day.is_active:
            return []
        max_orders = _require_capacity(service_day)
        return [
            SlotAvailability(
                time_slot_id=slot.id,
                start_time=slot.start_time,
                end_time=slot.end_time,
                max_orders=max_orders,
                seated=seated_count(uow.session, slot.id),
            )
            for slot in service_day.time_slots
        ]
