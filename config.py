from __future__ import annotations
import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Any, Mapping

from errors import ConfigurationError


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # --- сервис и слоты ---
    SERVICE_TIMEZONE = os.getenv("SERVICE_TIMEZONE", "Europe/Rome")
    TIME_SLOT_DURATION = 15                  # минуты, фиксировано
    MIN_MAX_ORDERS_PER_SLOT = 1
    MAX_MAX_ORDERS_PER_SLOT = 99
    DEFAULT_MAX_ORDERS_PER_SLOT = 10
    DEFAULT_MAX_PENDING_TIME = 30            # минут до начала слота
    DEFAULT_LOCATION = os.getenv("DEFAULT_LOCATION", "Piazza Centrale - Engineering Hub")
    DEFAULT_DAY_START_TIME = "12:00"
    DEFAULT_DAY_END_TIME = "14:00"


class DevConfig(BaseConfig):
    DEBUG = True
    SEED_DEMO_DATA = True


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SEED_DEMO_DATA = False


class ProdConfig(BaseConfig):
    DEBUG = False
    SEED_DEMO_DATA = False


config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}


def _parse_hhmm(value: Any, key: str) -> time:
    if isinstance(value, time):
        return value
    try:
        h, m = str(value).split(":")[:2]
        return time(int(h), int(m))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key}: expected HH:MM, got {value!r}") from e


@dataclass(frozen=True)
class BookingConfig:
    """Booking settings, built once per app and passed into services."""
    slot_duration: int
    min_max_orders: int
    max_max_orders: int
    default_max_orders: int
    default_max_time: int
    default_location: str
    default_start: time
    default_end: time
    timezone: str

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "BookingConfig":
        required = [
            "TIME_SLOT_DURATION", "MIN_MAX_ORDERS_PER_SLOT", "MAX_MAX_ORDERS_PER_SLOT",
            "DEFAULT_MAX_ORDERS_PER_SLOT", "DEFAULT_MAX_PENDING_TIME", "DEFAULT_LOCATION",
            "DEFAULT_DAY_START_TIME", "DEFAULT_DAY_END_TIME", "SERVICE_TIMEZONE",
        ]
        missing = [k for k in required if cfg.get(k) in (None, "")]
        if missing:
            raise ConfigurationError(f"missing booking settings: {', '.join(missing)}")

        try:
            duration = int(cfg["TIME_SLOT_DURATION"])
            lo = int(cfg["MIN_MAX_ORDERS_PER_SLOT"])
            hi = int(cfg["MAX_MAX_ORDERS_PER_SLOT"])
            default_max = int(cfg["DEFAULT_MAX_ORDERS_PER_SLOT"])
            default_max_time = int(cfg["DEFAULT_MAX_PENDING_TIME"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"booking settings must be integers: {e}") from e

        if duration <= 0 or (24 * 60) % duration:
            raise ConfigurationError(f"TIME_SLOT_DURATION must divide a day, got {duration}")
        if not 1 <= lo <= default_max <= hi:
            raise ConfigurationError(
                f"expected 1 <= MIN ({lo}) <= DEFAULT ({default_max}) <= MAX ({hi}) orders per slot"
            )
        if default_max_time < 0:
            raise ConfigurationError("DEFAULT_MAX_PENDING_TIME must be >= 0")

        start = _parse_hhmm(cfg["DEFAULT_DAY_START_TIME"], "DEFAULT_DAY_START_TIME")
        end = _parse_hhmm(cfg["DEFAULT_DAY_END_TIME"], "DEFAULT_DAY_END_TIME")
        if start >= end:
            raise ConfigurationError("DEFAULT_DAY_START_TIME must be before DEFAULT_DAY_END_TIME")

        return cls(
            slot_duration=duration,
            min_max_orders=lo,
            max_max_orders=hi,
            default_max_orders=default_max,
            default_max_time=default_max_time,
            default_location=str(cfg["DEFAULT_LOCATION"]),
            default_start=start,
            default_end=end,
            timezone=str(cfg["SERVICE_TIMEZONE"]),
        )
