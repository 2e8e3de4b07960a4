# blueprints/orders/lifecycle.py
from __future__ import annotations
from typing import Optional

from errors import InvalidOrderStateTransition
from models import OrderStatus

# pending только начальное состояние, rejected финальное.
# Между confirmed / ready / picked_up можно ходить в обе стороны
# (персонал исправляет ошибки, например picked_up -> confirmed).


def can_transition_to(current: OrderStatus, target: OrderStatus) -> bool:
    if target == OrderStatus.PENDING:
        return False
    if current == OrderStatus.REJECTED:
        return False
    return True


def check_transition(current: OrderStatus, target: OrderStatus) -> Optional[InvalidOrderStateTransition]:
    if can_transition_to(current, target):
        return None
    return InvalidOrderStateTransition(from_status=current.value, to_status=target.value)


def is_modifiable(status: OrderStatus) -> bool:
    """Customers may edit or delete only while the order is pending."""
    return status == OrderStatus.PENDING
