# blueprints/orders/sequence.py
from __future__ import annotations

from models import ServiceDay


def next_daily_number(service_day: ServiceDay) -> int:
    """Выдать следующий номер заказа дня.

    Вызывать только на строке ServiceDay, взятой под FOR UPDATE в той же
    транзакции, что и вставка заказа. Счётчик не уменьшается при отклонении
    или удалении заказов, поэтому номера никогда не переиспользуются.
    """
    service_day.last_daily_number = (service_day.last_daily_number or 0) + 1
    return service_day.last_daily_number
