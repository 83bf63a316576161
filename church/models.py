"""Database models for the church API.

This module defines SQLAlchemy ORM models used by the application,
together with the closed string enumerations stored in their columns.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Numeric,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
)
from sqlalchemy.orm import relationship

from .database import Base


class UserRole(str, enum.Enum):
    USER = "user"
    OWNER = "owner"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ContactStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"
    RESPONDED = "responded"


class DonationStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    ESEWA = "esewa"
    BANK_QR = "bank_qr"


class MediaType(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


class ActivityAction(str, enum.Enum):
    """Kinds of state-changing actions recorded in the activity log."""

    LOGIN = "login"
    SIGNUP = "signup"
    LOGOUT = "logout"
    MEDIA_UPLOAD = "media_upload"
    DONATION = "donation"
    CONTACT_MESSAGE = "contact_message"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"
    EVENT_CREATE = "event_create"
    EVENT_UPDATE = "event_update"
    EVENT_DELETE = "event_delete"
    SERMON_CREATE = "sermon_create"
    SERMON_UPDATE = "sermon_update"
    SERMON_DELETE = "sermon_delete"


def enum_column(enum_cls, **kwargs) -> Column:
    """Build a VARCHAR column restricted to the values of ``enum_cls``."""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class User(Base):
    """
    SQLAlchemy model representing a church member account.

    The account whose email matches ``OWNER_EMAIL`` is the protected
    owner: it cannot be deleted or demoted.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = enum_column(UserRole, default=UserRole.USER, nullable=False)
    status = enum_column(UserStatus, default=UserStatus.ACTIVE, nullable=False)
    notification_opt_in = Column(Boolean, default=True, nullable=False)
    profile_picture_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    #: Donations made by the user; removed together with the account
    donations = relationship(
        "Donation",
        back_populates="user",
        cascade="all, delete",
    )
    #: Media items uploaded by the user
    media = relationship("Media", back_populates="uploader")
    #: Activity entries; their user reference is cleared when the user goes
    activities = relationship("Activity", back_populates="user")


class Contact(Base):
    """SQLAlchemy model representing a message sent through the contact form."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    message = Column(Text, nullable=False)
    status = enum_column(ContactStatus, default=ContactStatus.UNREAD, nullable=False)
    response_message = Column(Text, nullable=True)
    response_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)


class Donation(Base):
    """SQLAlchemy model representing a single donation by a user."""

    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = enum_column(PaymentMethod, nullable=False)
    transaction_id = Column(String(255), nullable=True)
    qr_image_url = Column(String(500), nullable=True)
    esewa_reference = Column(String(255), nullable=True)
    status = enum_column(DonationStatus, default=DonationStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    user = relationship("User", back_populates="donations")

    @property
    def user_name(self):
        return self.user.name if self.user else None

    @property
    def user_email(self):
        return self.user.email if self.user else None


class Media(Base):
    """
    SQLAlchemy model representing an image or video held by the asset store.

    ``asset_id`` is the opaque identifier needed to delete the remote copy.
    """

    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    asset_url = Column(String(500), nullable=False)
    asset_id = Column(String(255), nullable=False)
    type = enum_column(MediaType, nullable=False)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    uploader = relationship("User", back_populates="media")
    events = relationship("Event", back_populates="media")
    sermons = relationship("Sermon", back_populates="media")

    @property
    def uploader_name(self):
        return self.uploader.name if self.uploader else None


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    media_id = Column(Integer, ForeignKey("media.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    media = relationship("Media", back_populates="events")

    @property
    def media_url(self):
        return self.media.asset_url if self.media else None


class Sermon(Base):
    __tablename__ = "sermons"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    media_id = Column(Integer, ForeignKey("media.id"), nullable=False)
    #: Running time formatted as ``MM:SS``
    duration = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    media = relationship("Media", back_populates="sermons")

    @property
    def media_url(self):
        return self.media.asset_url if self.media else None


class Activity(Base):
    """
    SQLAlchemy model representing an append-only audit record.

    ``user_id`` is ``None`` for system actions.
    """

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = enum_column(ActivityAction, nullable=False, index=True)
    details = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    user = relationship("User", back_populates="activities")

    @property
    def user_name(self):
        return self.user.name if self.user else None

    @property
    def user_email(self):
        return self.user.email if self.user else None
