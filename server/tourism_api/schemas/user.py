"""User, authentication and account schemas."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from .common import ApiModel, MoneyAmount, reject_null


class Address(ApiModel):
    """Postal address."""

    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)


class RegisterRequest(ApiModel):
    """Request schema for creating an account."""

    email: EmailStr = Field(..., description="Login email, unique per account")
    password: str = Field(..., min_length=6, max_length=128, description="Plain-text password")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    role: Literal["customer", "host"] = Field("customer", description="Administrators cannot self-register")


class LoginRequest(ApiModel):
    """Request schema for logging in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class User(ApiModel):
    """Account response schema. Never carries the password hash."""

    id: str = Field(..., description="Unique user ID")
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    profile_image: Optional[str] = None
    address: Address
    verified: bool
    is_active: bool
    preferences: Dict[str, Any]
    loyalty_points: int
    loyalty_tier: str
    completed_bookings: int
    created_at: datetime


class AuthResponse(ApiModel):
    """Token plus the account it was issued for."""

    token: str
    user: User


class UpdateProfileRequest(ApiModel):
    """Profile changes. Unknown keys such as password, email and role are ignored."""

    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    profile_image: Optional[str] = Field(None, max_length=512)
    address: Optional[Address] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class DeleteAccountRequest(ApiModel):
    password: str = Field(..., min_length=1, description="Current password, required to confirm deletion")


class CurrencyTotal(ApiModel):
    currency: str
    amount: MoneyAmount


class UserStats(ApiModel):
    """Booking counters for the current user."""

    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    active_bookings: int
    total_spent: List[CurrencyTotal] = Field(
        default_factory=list, description="Spend on confirmed and completed bookings, per currency"
    )
    loyalty_points: int
    loyalty_tier: str


class CreatePaymentMethodRequest(ApiModel):
    """Tokenised payment method. The provider token replaces any card number."""

    provider: str = Field(..., min_length=1, max_length=40)
    token: str = Field(..., min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=40)
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$")
    is_default: bool = False


class PaymentMethod(ApiModel):
    id: str
    provider: str
    brand: Optional[str] = None
    last_four: Optional[str] = None
    is_default: bool
    created_at: datetime
