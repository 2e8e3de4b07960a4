# blueprints/planning/services.py
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, time, timedelta
from math import floor
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select

from clock import Clock
from config import BookingConfig
from errors import ConfigurationError, Outcome, WeekNotEditable
from extensions import db
from models import Order, OrderStatus, ServiceDay, TimeSlot
from uow import UnitOfWork
from blueprints.orders.capacity import split_by_capacity
from blueprints.slots.services import covers, generate_time_slots

log = logging.getLogger(__name__)

DAY_MINUTES = 24 * 60
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


# ---------- DTO ----------
@dataclass
class GlobalConstraints:
    max_orders_per_slot: Optional[int] = None
    max_pending_time: Optional[int] = None
    location: Optional[str] = None


@dataclass
class DayPlan:
    date: date
    is_active: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None


@dataclass
class WeekReport:
    days_created: int = 0
    days_updated: int = 0
    days_disabled: int = 0
    days_deleted: int = 0
    days_skipped: int = 0
    days_unchanged: int = 0
    time_slots_generated: int = 0
    time_slots_deleted: int = 0
    orders_rejected: int = 0
    rejected_order_ids: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any((self.days_created, self.days_updated, self.days_disabled, self.days_deleted,
                    self.time_slots_generated, self.time_slots_deleted, self.orders_rejected))

    def to_dict(self) -> dict:
        return asdict(self)


# ---------- время ----------
def week_bounds(any_day: date) -> Tuple[date, date]:
    """(понедельник, воскресенье) недели, в которую попадает any_day."""
    monday = any_day - timedelta(days=any_day.weekday())
    return monday, monday + timedelta(days=6)


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _clock_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def normalize_time(t: time, duration: int) -> int:
    """Minutes since midnight rounded to the nearest slot boundary (halves go up)."""
    rounded = floor(_minutes(t) / duration + 0.5) * duration
    return max(0, min(rounded, DAY_MINUTES - duration))


def normalize_window(start: time, end: time, duration: int) -> Tuple[time, time]:
    s = normalize_time(start, duration)
    e = normalize_time(end, duration)
    if s >= e:
        e = s + duration
    # за пределы суток не выходим: окно становится последним слотом дня
    if e > DAY_MINUTES - duration:
        e = DAY_MINUTES - duration
        s = e - duration
    return _clock_time(s), _clock_time(e)


# ---------- engine ----------
class WeekPlanner:
    """Применение недельного плана к ServiceDay/TimeSlot/Order.

    Весь save_week_configuration идёт одной транзакцией: либо применяется
    весь план (кроме прошедших дней), либо ничего.
    """

    def __init__(self, config: BookingConfig, clock: Clock):
        self.config = config
        self.clock = clock

    # ---- read side ----
    def resolve_constraints(self, constraints: Optional[GlobalConstraints]) -> GlobalConstraints:
        c = constraints or GlobalConstraints()
        max_orders = c.max_orders_per_slot if c.max_orders_per_slot is not None else self.config.default_max_orders
        if max_orders <= 0:
            raise ConfigurationError(f"max_orders_per_slot must be positive, got {max_orders}")
        return GlobalConstraints(
            max_orders_per_slot=max_orders,
            max_pending_time=c.max_pending_time if c.max_pending_time is not None else self.config.default_max_time,
            location=c.location or self.config.default_location,
        )

    def get_week_configuration(self, week_start: date) -> dict:
        monday, sunday = week_bounds(week_start)
        today = self.clock.today()
        days = db.session.execute(
            select(ServiceDay).where(ServiceDay.day >= monday, ServiceDay.day <= sunday)
        ).scalars().all()
        by_date = {d.day: d for d in days}

        counts = {}
        if days:
            counts = dict(db.session.execute(
                select(Order.service_day_id, func.count(Order.id))
                .where(Order.service_day_id.in_([d.id for d in days]),
                       Order.status != OrderStatus.REJECTED)
                .group_by(Order.service_day_id)
            ).all())

        out_days = []
        for i in range(7):
            d = monday + timedelta(days=i)
            sd = by_date.get(d)
            n = counts.get(sd.id, 0) if sd else 0
            out_days.append({
                "date": d.isoformat(),
                "day_of_week": i,
                "day_name": DAY_NAMES[i],
                "is_active": bool(sd.is_active) if sd else False,
                "start_time": (sd.start_time if sd else self.config.default_start).strftime("%H:%M"),
                "end_time": (sd.end_time if sd else self.config.default_end).strftime("%H:%M"),
                "is_editable": d >= today,
                "orders_count": n,
                "has_orders": n > 0,
            })

        return {
            "week_start": monday.isoformat(),
            "week_end": sunday.isoformat(),
            "is_week_editable": sunday >= today,
            "has_persisted_data": bool(days),
            "global_constraints": asdict(self._deduce_constraints(days)),
            "slot_duration": self.config.slot_duration,
            "days": out_days,
        }

    def _deduce_constraints(self, days: Iterable[ServiceDay]) -> GlobalConstraints:
        # ограничения последнего изменённого дня, иначе значения по умолчанию
        latest = max(days, key=lambda d: (d.updated_at, d.id), default=None)
        if latest is None:
            return self.resolve_constraints(None)
        return self.resolve_constraints(GlobalConstraints(
            max_orders_per_slot=latest.max_orders,
            max_pending_time=latest.max_time,
            location=latest.location,
        ))

    # ---- write side ----
    def save_week_configuration(self, week_start: date, constraints: Optional[GlobalConstraints],
                                day_plans: Iterable[DayPlan]) -> Outcome[WeekReport]:
        monday, sunday = week_bounds(week_start)
        today = self.clock.today()

        if sunday < today:
            log.warning("week rejected: entirely in the past", extra={
                "event": "week_rejected", "week_start": monday.isoformat(), "today": today.isoformat(),
            })
            return Outcome.failure(WeekNotEditable(week_start=monday.isoformat(), week_end=sunday.isoformat()))

        gc = self.resolve_constraints(constraints)
        report = WeekReport()

        with UnitOfWork() as uow:
            for plan in day_plans:
                if not monday <= plan.date <= sunday:
                    log.info("day outside target week ignored", extra={
                        "event": "day_skipped", "day": plan.date.isoformat(), "reason": "outside_week",
                    })
                    report.days_skipped += 1
                    continue
                if plan.date < today:
                    log.info("past day skipped", extra={
                        "event": "day_skipped", "day": plan.date.isoformat(), "reason": "past",
                    })
                    report.days_skipped += 1
                    continue

                day = self._lock_day(uow, plan.date)
                if plan.is_active:
                    start, end = normalize_window(
                        plan.start_time or self.config.default_start,
                        plan.end_time or self.config.default_end,
                        self.config.slot_duration,
                    )
                    self._apply_active(uow, day, plan.date, start, end, gc, report)
                else:
                    self._apply_inactive(uow, day, plan.date, report)

            uow.commit()

        log.info("week configuration saved", extra={
            "event": "week_saved", "week_start": monday.isoformat(), **report.to_dict(),
        })
        return Outcome.success(report)

    def _lock_day(self, uow: UnitOfWork, d: date) -> Optional[ServiceDay]:
        stmt = (select(ServiceDay)
                .where(ServiceDay.day == d)
                .with_for_update()
                .execution_options(populate_existing=True))
        return uow.session.execute(stmt).scalar_one_or_none()

    def _apply_active(self, uow: UnitOfWork, day: Optional[ServiceDay], d: date,
                      start: time, end: time, gc: GlobalConstraints, report: WeekReport) -> None:
        if day is None:
            day = ServiceDay(
                day=d, is_active=True, start_time=start, end_time=end,
                max_orders=gc.max_orders_per_slot, max_time=gc.max_pending_time,
                location=gc.location, last_daily_number=0,
            )
            uow.save(day)
            uow.flush()
            report.days_created += 1
            log.info("service day created", extra={
                "event": "day_created", "day": d.isoformat(), "service_day_id": day.id,
            })
            report.time_slots_generated += generate_time_slots(day, self.config.slot_duration, uow)
            return

        window_changed = (day.start_time, day.end_time) != (start, end)
        old_max = day.max_orders
        changed = (window_changed
                   or not day.is_active
                   or old_max != gc.max_orders_per_slot
                   or day.max_time != gc.max_pending_time
                   or day.location != gc.location)

        if window_changed:
            log.info("service window changed", extra={
                "event": "window_changed", "day": d.isoformat(),
                "old": f"{day.start_time:%H:%M}-{day.end_time:%H:%M}", "new": f"{start:%H:%M}-{end:%H:%M}",
            })
            self._drop_uncovered_slots(uow, day, start, end, report)

        day.is_active = True
        day.start_time, day.end_time = start, end
        day.max_orders = gc.max_orders_per_slot
        day.max_time = gc.max_pending_time
        day.location = gc.location

        if old_max is not None and gc.max_orders_per_slot < old_max:
            log.info("max_orders reduced", extra={
                "event": "capacity_reduced", "day": d.isoformat(), "old": old_max, "new": gc.max_orders_per_slot,
            })
            for slot in day.time_slots:
                self._reject_overflow(slot, gc.max_orders_per_slot, report)

        if window_changed or not day.time_slots:
            self._regenerate(uow, day, report)

        if changed:
            report.days_updated += 1
            log.info("service day updated", extra={"event": "day_updated", "day": d.isoformat()})
        else:
            report.days_unchanged += 1
        uow.flush()

    def _apply_inactive(self, uow: UnitOfWork, day: Optional[ServiceDay], d: date, report: WeekReport) -> None:
        if day is None:
            report.days_unchanged += 1
            return

        has_orders = any(slot.orders for slot in day.time_slots)
        if has_orders:
            # история заказов сохраняется, день только выключается
            if day.is_active:
                day.is_active = False
                report.days_disabled += 1
                log.info("service day disabled", extra={"event": "day_disabled", "day": d.isoformat()})
            else:
                report.days_unchanged += 1
            uow.flush()
            return

        n_slots = len(day.time_slots)
        uow.delete(day)
        uow.flush()
        report.time_slots_deleted += n_slots
        report.days_disabled += 1
        report.days_deleted += 1
        log.info("service day deleted", extra={
            "event": "day_deleted", "day": d.isoformat(), "slots": n_slots,
        })

    def _reject(self, order: Order, slot: TimeSlot, reason: str, report: WeekReport) -> None:
        order.status = OrderStatus.REJECTED
        report.orders_rejected += 1
        report.rejected_order_ids.append(order.id)
        log.info("order rejected", extra={
            "event": "order_rejected", "order_id": order.id, "time_slot_id": slot.id,
            "daily_number": order.daily_number, "reason": reason,
        })

    def _reject_overflow(self, slot: TimeSlot, max_orders: int, report: WeekReport) -> None:
        _kept, overflow = split_by_capacity(slot.orders, max_orders)
        for order in overflow:
            self._reject(order, slot, "capacity_reduced", report)

    def _drop_uncovered_slots(self, uow: UnitOfWork, day: ServiceDay, start: time, end: time,
                              report: WeekReport) -> None:
        """Слоты вне нового окна: заказы -> rejected, затем слот удаляется вместе с ними."""
        for slot in [s for s in day.time_slots if not covers(s, start, end)]:
            for order in sorted(slot.orders, key=lambda o: o.daily_number):
                if order.status != OrderStatus.REJECTED:
                    self._reject(order, slot, "slot_removed", report)
            uow.flush()
            day.time_slots.remove(slot)
            report.time_slots_deleted += 1
        uow.flush()

    def _regenerate(self, uow: UnitOfWork, day: ServiceDay, report: WeekReport) -> None:
        empty = [s for s in day.time_slots if not s.orders]
        for slot in empty:
            day.time_slots.remove(slot)
        uow.flush()
        report.time_slots_deleted += len(empty)

        if day.time_slots:
            log.info("slots with orders kept, no regeneration", extra={
                "event": "regeneration_skipped", "day": day.day.isoformat(), "kept": len(day.time_slots),
            })
            return
        report.time_slots_generated += generate_time_slots(day, self.config.slot_duration, uow)
