"""User and saved payment method model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .property import Property


class UserRole(str, Enum):
    """User role enumeration."""
    CUSTOMER = "customer"
    HOST = "host"
    ADMIN = "admin"


class LoyaltyTier(str, Enum):
    """Loyalty programme tiers."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class User(Base):
    """Platform account: customers, hosts and administrators."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.CUSTOMER, index=True)
    profile_image: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Address
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Loyalty programme counters
    loyalty_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loyalty_tier: Mapped[LoyaltyTier] = mapped_column(String(20), nullable=False, default=LoyaltyTier.BRONZE)
    completed_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("loyalty_points >= 0", name="ck_user_loyalty_points_non_negative"),
        CheckConstraint("length(email) > 0", name="ck_user_email_not_empty"),
    )

    payment_methods: Mapped[list["SavedPaymentMethod"]] = relationship(
        "SavedPaymentMethod",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="owner")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


class SavedPaymentMethod(Base):
    """Tokenised payment method reference. Raw card data is never stored."""

    __tablename__ = "saved_payment_methods"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    provider: Mapped[str] = mapped_column(String(40), nullable=False)
    token: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(40), nullable=True)
    last_four: Mapped[str | None] = mapped_column(String(4), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    user: Mapped["User"] = relationship("User", back_populates="payment_methods")

    def __repr__(self) -> str:
        return f"<SavedPaymentMethod(id={self.id}, provider='{self.provider}', last_four='{self.last_four}')>"
