# blueprints/orders/capacity.py
from __future__ import annotations
from typing import Iterable, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Order, OrderStatus


def admits(seated: int, max_orders: int) -> bool:
    """Можно ли посадить ещё один заказ, если `seated` мест уже занято."""
    return seated < max_orders


def occupies_seat(order: Order) -> bool:
    return order.status != OrderStatus.REJECTED


def seated_count(session: Session, time_slot_id: int) -> int:
    """Non-rejected orders on the slot."""
    stmt = (select(func.count(Order.id))
            .where(Order.time_slot_id == time_slot_id,
                   Order.status != OrderStatus.REJECTED))
    return session.execute(stmt).scalar_one()


def split_by_capacity(orders: Iterable[Order], max_orders: int) -> Tuple[List[Order], List[Order]]:
    """(kept, overflow) по очереди daily_number.

    Тот же предикат, что и при бронировании: заказ на позиции i остаётся,
    если перед ним сидит i заказов и admits(i, max_orders).
    """
    queue = sorted((o for o in orders if occupies_seat(o)), key=lambda o: o.daily_number)
    kept: List[Order] = []
    overflow: List[Order] = []
    for o in queue:
        if admits(len(kept), max_orders):
            kept.append(o)
        else:
            overflow.append(o)
    return kept, overflow
