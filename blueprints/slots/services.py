# blueprints/slots/services.py
from __future__ import annotations
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Tuple

from models import ServiceDay, TimeSlot
from uow import UnitOfWork

log = logging.getLogger(__name__)

_ANCHOR = date(2000, 1, 1)  # фиктивная дата: важны только time()


def _dt(t: time) -> datetime:
    return datetime.combine(_ANCHOR, t)


def partition(start: time, end: time, duration_minutes: int) -> List[Tuple[time, time]]:
    """Split [start, end) into consecutive slots; the last one is cut at `end`."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    out: List[Tuple[time, time]] = []
    cur, stop = _dt(start), _dt(end)
    step = timedelta(minutes=duration_minutes)
    while cur < stop:
        nxt = min(cur + step, stop)
        out.append((cur.time(), nxt.time()))
        cur = nxt
    return out


def covers(slot: TimeSlot, start: time, end: time) -> bool:
    """Slot still fits inside the window [start, end)."""
    return slot.start_time >= start and slot.end_time <= end


def generate_time_slots(service_day: ServiceDay, duration_minutes: int, uow: UnitOfWork) -> int:
    """Создать слоты для дня. Идемпотентно: если слоты уже есть, вернёт 0."""
    if service_day.time_slots:
        return 0
    if service_day.start_time >= service_day.end_time:
        log.warning("invalid service window, no slots generated", extra={
            "event": "slots_skipped", "day": service_day.day.isoformat(),
        })
        return 0

    bounds = partition(service_day.start_time, service_day.end_time, duration_minutes)
    for s, e in bounds:
        service_day.time_slots.append(TimeSlot(start_time=s, end_time=e))
    uow.flush()
    log.info("time slots generated", extra={
        "event": "slots_generated",
        "day": service_day.day.isoformat(),
        "count": len(bounds),
        "range": f"{service_day.start_time:%H:%M}-{service_day.end_time:%H:%M}",
    })
    return len(bounds)


def delete_time_slots(service_day: ServiceDay, uow: UnitOfWork) -> int:
    """Удалить все слоты дня (заказы уходят каскадом)."""
    slots = list(service_day.time_slots)
    for slot in slots:
        service_day.time_slots.remove(slot)
    uow.flush()
    if slots:
        log.info("time slots deleted", extra={
            "event": "slots_deleted", "day": service_day.day.isoformat(), "count": len(slots),
        })
    return len(slots)
