from __future__ import annotations
from datetime import date, datetime, tzinfo
from typing import Protocol

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import ConfigurationError


def service_tz(name: str) -> tzinfo:
    # база зон берётся из системы или из пакета tzdata
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"unknown SERVICE_TIMEZONE {name!r}") from e


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall clock in the service time zone."""

    def __init__(self, tz_name: str = "Europe/Rome"):
        self.tz = service_tz(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant; tests move it with `advance`/`set`."""

    def __init__(self, at: datetime):
        self._at = at

    def now(self) -> datetime:
        return self._at

    def today(self) -> date:
        return self._at.date()

    def set(self, at: datetime) -> None:
        self._at = at

    def advance(self, delta) -> None:
        self._at = self._at + delta
