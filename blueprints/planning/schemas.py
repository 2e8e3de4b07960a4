from __future__ import annotations
from datetime import date, time
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class GlobalConstraintsIn(BaseModel):
    max_orders_per_slot: Optional[int] = None
    max_pending_time: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=255)


class DayPlanIn(BaseModel):
    date: date
    is_active: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def hhmm(cls, v):
        # "12:05" / "12:05:00"
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class WeekPlanIn(BaseModel):
    week_start: date
    global_constraints: GlobalConstraintsIn = Field(default_factory=GlobalConstraintsIn)
    days: List[DayPlanIn] = Field(default_factory=list, max_length=7)
