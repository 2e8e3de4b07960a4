from datetime import datetime, time, date
from enum import Enum as PyEnum

from sqlalchemy import (
    Enum, ForeignKey, UniqueConstraint, CheckConstraint, Index, Boolean, Date, DateTime, Time,
    Integer, String,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db

# ---------- Enums ----------
class OrderStatus(str, PyEnum):
    PENDING = "pending"       # только начальное
    CONFIRMED = "confirmed"
    READY = "ready"
    PICKED_UP = "picked_up"
    REJECTED = "rejected"     # финальное


class IngredientCategory(str, PyEnum):
    BREAD = "bread"
    MEAT = "meat"
    CHEESE = "cheese"
    VEGETABLE = "vegetable"
    SAUCE = "sauce"
    OTHER = "other"


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


# ---------- Users / catalog ----------
class User(db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    nickname: Mapped[str | None] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="USER")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.email}>"


class Ingredient(db.Model):
    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(10))
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Ingredient {self.name} ({self.category})>"


# ---------- Service planning ----------
class ServiceDay(db.Model):
    __tablename__ = "service_days"

    id: Mapped[int] = mapped_column(primary_key=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    max_orders: Mapped[int] = mapped_column(Integer, nullable=False)
    max_time: Mapped[int] = mapped_column(Integer, nullable=False, default=30)  # минут до начала слота
    location: Mapped[str | None] = mapped_column(String(255))
    # последний выданный daily_number; только растёт
    last_daily_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    time_slots = relationship(
        "TimeSlot", back_populates="service_day",
        cascade="all, delete-orphan",
        order_by="TimeSlot.start_time",
    )

    __table_args__ = (
        CheckConstraint("max_orders > 0", name="ck_service_day_max_orders_positive"),
    )

    def __repr__(self):
        return f"<ServiceDay {self.day} {'on' if self.is_active else 'off'}>"


class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id: Mapped[int] = mapped_column(primary_key=True)
    service_day_id: Mapped[int] = mapped_column(ForeignKey("service_days.id", ondelete="CASCADE"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    service_day = relationship("ServiceDay", back_populates="time_slots")
    orders = relationship(
        "Order", back_populates="time_slot",
        cascade="all, delete-orphan",
        order_by="Order.daily_number",
    )

    __table_args__ = (
        UniqueConstraint("service_day_id", "start_time", name="uq_time_slot_day_start"),
        Index("ix_time_slot_day", "service_day_id"),
    )

    def __repr__(self):
        return f"<TimeSlot {self.start_time:%H:%M}-{self.end_time:%H:%M}>"


# ---------- Orders ----------
class Order(db.Model):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    time_slot_id: Mapped[int] = mapped_column(ForeignKey("time_slots.id", ondelete="CASCADE"), nullable=False)
    # денормализовано для выборок по дню
    service_day_id: Mapped[int] = mapped_column(ForeignKey("service_days.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False, default=OrderStatus.PENDING,
    )
    daily_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    time_slot = relationship("TimeSlot", back_populates="orders")
    service_day = relationship("ServiceDay")
    user = relationship("User")
    ingredients = relationship(
        "OrderIngredient", back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderIngredient.id",
    )

    __table_args__ = (
        UniqueConstraint("service_day_id", "daily_number", name="uq_order_day_number"),
        Index("ix_order_slot_status", "time_slot_id", "status"),
    )

    def __repr__(self):
        return f"<Order #{self.daily_number} {self.status.value}>"


class OrderIngredient(db.Model):
    """Snapshot of a catalog ingredient; never re-read from `ingredients`."""
    __tablename__ = "order_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)

    order = relationship("Order", back_populates="ingredients")
