"""Domain failures of the booking engine.

Expected outcomes (slot full, bad transition, ...) are plain values returned
inside an `Outcome`; only `ConfigurationError` is raised, because a
misconfigured service day is a fatal condition rather than a business case.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Optional, TypeVar

T = TypeVar("T")


class ConfigurationError(Exception):
    code = "CONFIGURATION_ERROR"
    http_status = 500


@dataclass(frozen=True)
class DomainError:
    code: ClassVar[str] = "DOMAIN_ERROR"
    http_status: ClassVar[int] = 400

    @property
    def message(self) -> str:
        return self.code.replace("_", " ").lower()

    @property
    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class SlotFull(DomainError):
    code: ClassVar[str] = "SLOT_FULL"
    http_status: ClassVar[int] = 409
    time_slot_id: Optional[int] = None
    max_orders: Optional[int] = None

    @property
    def message(self) -> str:
        return "The selected time slot has reached its maximum number of orders. Pick another slot."

    @property
    def details(self) -> dict[str, Any]:
        return {"time_slot_id": self.time_slot_id, "max_orders": self.max_orders}


@dataclass(frozen=True)
class InvalidOrderStateTransition(DomainError):
    code: ClassVar[str] = "INVALID_STATE_TRANSITION"
    http_status: ClassVar[int] = 422
    from_status: str = ""
    to_status: str = ""

    @property
    def message(self) -> str:
        return (f"Status change from '{self.from_status}' to '{self.to_status}' is not allowed: "
                f"'pending' is initial only and 'rejected' is final.")

    @property
    def details(self) -> dict[str, Any]:
        return {"from": self.from_status, "to": self.to_status}


@dataclass(frozen=True)
class OrderNotModifiable(DomainError):
    code: ClassVar[str] = "ORDER_NOT_MODIFIABLE"
    http_status: ClassVar[int] = 422
    status: str = ""

    @property
    def message(self) -> str:
        return "The order can no longer be changed because it is not pending."

    @property
    def details(self) -> dict[str, Any]:
        return {"status": self.status}


@dataclass(frozen=True)
class UnauthorizedOrderAccess(DomainError):
    code: ClassVar[str] = "UNAUTHORIZED_ORDER_ACCESS"
    http_status: ClassVar[int] = 403

    @property
    def message(self) -> str:
        return "You are not allowed to access or change this order."


@dataclass(frozen=True)
class OrderNotFound(DomainError):
    code: ClassVar[str] = "ORDER_NOT_FOUND"
    http_status: ClassVar[int] = 404
    order_id: Optional[int] = None

    @property
    def details(self) -> dict[str, Any]:
        return {"order_id": self.order_id}


@dataclass(frozen=True)
class TimeSlotNotFound(DomainError):
    code: ClassVar[str] = "TIME_SLOT_NOT_FOUND"
    http_status: ClassVar[int] = 404
    time_slot_id: Optional[int] = None

    @property
    def details(self) -> dict[str, Any]:
        return {"time_slot_id": self.time_slot_id}


@dataclass(frozen=True)
class DuplicateOrder(DomainError):
    code: ClassVar[str] = "DUPLICATE_ORDER"
    http_status: ClassVar[int] = 409
    order_id: Optional[int] = None

    @property
    def message(self) -> str:
        return "You already have an order in this time slot."

    @property
    def details(self) -> dict[str, Any]:
        return {"order_id": self.order_id}


@dataclass(frozen=True)
class WeekNotEditable(DomainError):
    code: ClassVar[str] = "WEEK_NOT_EDITABLE"
    http_status: ClassVar[int] = 422
    week_start: str = ""
    week_end: str = ""

    @property
    def message(self) -> str:
        return "A week that is entirely in the past cannot be changed."

    @property
    def details(self) -> dict[str, Any]:
        return {"week_start": self.week_start, "week_end": self.week_end}


@dataclass
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Outcome[T]":
        return cls(error=error)
