from __future__ import annotations
from datetime import datetime, time
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from models import OrderStatus


# ---------- Orders ----------
class OrderIn(BaseModel):
    time_slot_id: int = Field(ge=1)
    ingredients: List[int] = Field(min_length=1)


class OrderUpdateIn(BaseModel):
    ingredients: List[int] = Field(min_length=1)


class StatusIn(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def lower(cls, v):
        return v.lower() if isinstance(v, str) else v


class IngredientOut(BaseModel):
    name: str
    category: str


class OrderOut(BaseModel):
    id: int
    user_id: int
    time_slot_id: int
    service_day_id: int
    status: OrderStatus
    daily_number: int
    ingredients: List[IngredientOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, o) -> "OrderOut":
        return cls(
            id=o.id,
            user_id=o.user_id,
            time_slot_id=o.time_slot_id,
            service_day_id=o.service_day_id,
            status=o.status,
            daily_number=o.daily_number,
            ingredients=[IngredientOut(name=i.name, category=i.category) for i in o.ingredients],
            created_at=o.created_at,
            updated_at=o.updated_at,
        )


# ---------- Time slots ----------
class TimeSlotOut(BaseModel):
    id: int
    start_time: time
    end_time: time
    max_orders: int
    seated: int
    remaining: int
    available: bool

    @classmethod
    def from_availability(cls, a) -> "TimeSlotOut":
        return cls(
            id=a.time_slot_id,
            start_time=a.start_time,
            end_time=a.end_time,
            max_orders=a.max_orders,
            seated=a.seated,
            remaining=a.remaining,
            available=a.available,
        )
