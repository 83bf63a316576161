"""Request and response schemas.

JSON payloads use camelCase keys; both camelCase and snake_case are
accepted on input. Patch schemas list only the fields a caller may change.
"""

from datetime import datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    ActivityAction,
    ContactStatus,
    DonationStatus,
    MediaType,
    PaymentMethod,
    UserRole,
    UserStatus,
)

T = TypeVar("T")


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive server-local time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CamelModel(BaseModel):
    """Base schema serialising field names as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Page(CamelModel, Generic[T]):
    """One page of a listing plus the number of rows matching the filters."""

    items: List[T]
    total: int


class MessageResponse(BaseModel):
    message: str


# Users and authentication


class UserOut(CamelModel):
    """Public representation of a user; never carries the password hash."""

    id: int
    name: str
    email: str
    role: UserRole
    status: UserStatus
    notification_opt_in: bool
    profile_picture_url: Optional[str] = None
    created_at: datetime


class SignupRequest(CamelModel):
    """Self-service registration payload. Role and status are not accepted."""

    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6)
    notification_opt_in: bool = True


class LoginRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class PasswordResetRequest(CamelModel):
    """Request schema for initiating password reset."""

    email: EmailStr


class PasswordResetConfirm(CamelModel):
    """Payload for completing password reset using token."""

    token: str
    new_password: str = Field(min_length=6)


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(default=None, min_length=2)
    notification_opt_in: Optional[bool] = None
    profile_picture_url: Optional[str] = None


class AdminUserCreate(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    notification_opt_in: bool = True


class AdminUserUpdate(CamelModel):
    """Fields an owner may change on any account."""

    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    notification_opt_in: Optional[bool] = None
    profile_picture_url: Optional[str] = None


# Contacts


class ContactCreate(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    message: str = Field(min_length=10)


class ContactOut(CamelModel):
    id: int
    name: str
    email: str
    message: str
    status: ContactStatus
    response_message: Optional[str] = None
    response_date: Optional[datetime] = None
    created_at: datetime


class ContactUpdate(CamelModel):
    status: Optional[ContactStatus] = None


class ContactReply(CamelModel):
    message: str = Field(min_length=1)


# Donations


class DonationCreate(CamelModel):
    """
    Donation payload. ``esewaId`` and ``bankName`` describe the out-of-band
    settlement for the eSewa and bank QR methods.
    """

    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod
    esewa_id: Optional[str] = None
    bank_name: Optional[str] = None


class DonationOut(CamelModel):
    id: int
    user_id: int
    amount: float
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    qr_image_url: Optional[str] = None
    esewa_reference: Optional[str] = None
    status: DonationStatus
    created_at: datetime


class DonationDetail(DonationOut):
    """Donation joined with its donor, as shown to the owner."""

    user_name: Optional[str] = None
    user_email: Optional[str] = None


class DonationUpdate(CamelModel):
    status: Optional[DonationStatus] = None


class BreakdownItem(CamelModel):
    name: str
    value: int


class TrendPoint(CamelModel):
    month: str
    amount: float


class DonationSummary(CamelModel):
    total_donations: float
    monthly_total: float
    average_donation: float
    donation_growth: int
    total_donors: int
    status_breakdown: List[BreakdownItem]
    monthly_trend: List[TrendPoint]
    payment_method_breakdown: List[BreakdownItem]


class DashboardStats(CamelModel):
    total_users: int
    total_donations: float
    monthly_donations: float
    upcoming_events: int
    new_contacts: int
    unread_contacts: int
    user_growth: int
    donation_growth: int


# Media


class MediaPublic(CamelModel):
    """Media fields visible to anonymous visitors."""

    id: int
    asset_url: str
    type: MediaType
    title: str
    description: Optional[str] = None
    created_at: datetime


class MediaOut(MediaPublic):
    asset_id: str
    uploaded_by: int
    uploader_name: Optional[str] = None


class MediaUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = None


# Events


class EventCreate(CamelModel):
    title: str = Field(min_length=2)
    description: str = Field(min_length=10)
    date: datetime
    media_id: Optional[int] = None

    @field_validator("date")
    @classmethod
    def date_in_future(cls, value: datetime) -> datetime:
        value = to_local_naive(value)
        if value <= datetime.now():
            raise ValueError("Event date must be in the future")
        return value


class EventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = Field(default=None, min_length=10)
    date: Optional[datetime] = None
    media_id: Optional[int] = None

    @field_validator("date")
    @classmethod
    def normalise_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value) if value is not None else None


class EventOut(CamelModel):
    id: int
    title: str
    description: str
    date: datetime
    media_id: Optional[int] = None
    media_url: Optional[str] = None
    created_at: datetime


# Sermons

DURATION_PATTERN = r"^\d{1,3}:[0-5]\d$"


class SermonCreate(CamelModel):
    title: str = Field(min_length=2)
    description: str = Field(min_length=10)
    date: datetime
    media_id: int
    duration: str = Field(pattern=DURATION_PATTERN)

    @field_validator("date")
    @classmethod
    def normalise_date(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class SermonUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = Field(default=None, min_length=10)
    date: Optional[datetime] = None
    media_id: Optional[int] = None
    duration: Optional[str] = Field(default=None, pattern=DURATION_PATTERN)

    @field_validator("date")
    @classmethod
    def normalise_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value) if value is not None else None


class SermonOut(CamelModel):
    id: int
    title: str
    description: str
    date: datetime
    media_id: int
    media_url: Optional[str] = None
    duration: str
    created_at: datetime


# Activity log


class ActivityOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    action: ActivityAction
    details: str
    created_at: datetime
