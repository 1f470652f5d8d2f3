"""Bookable service (activity or tour) model definition."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


def weekday_index(day: date) -> int:
    """Day of week with 0 = Sunday, matching ``Service.available_days``."""
    return (day.weekday() + 1) % 7


class Service(Base):
    """Activity or tour bookable on selected days of the week."""

    __tablename__ = "services"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    available_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_service_capacity_positive"),
        CheckConstraint("duration_minutes > 0", name="ck_service_duration_positive"),
        CheckConstraint("price >= 0", name="ck_service_price_non_negative"),
    )

    def runs_on(self, day: date) -> bool:
        return weekday_index(day) in self.available_days

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}', category='{self.category}', capacity={self.capacity})>"
