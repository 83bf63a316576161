"""Creation of the protected owner account on startup."""

import logging

from sqlalchemy.orm import Session

from . import crud
from .auth import get_password_hash
from .core import Settings
from .models import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


def seed_owner(db: Session, settings: Settings) -> User | None:
    """
    Make sure the owner account exists.

    Nothing is created when ``OWNER_PASSWORD`` is unset or an account with
    ``OWNER_EMAIL`` is already present, so calling this repeatedly is safe.

    Returns:
        User | None: The owner account, or ``None`` when seeding was skipped.
    """
    existing = crud.get_user_by_email(db, settings.OWNER_EMAIL)
    if existing is not None:
        logger.info("Owner account %s already exists", settings.OWNER_EMAIL)
        return existing
    if not settings.OWNER_PASSWORD:
        logger.warning("OWNER_PASSWORD is not set, owner account was not created")
        return None

    owner = crud.create_user(
        db,
        name=settings.OWNER_NAME,
        email=settings.OWNER_EMAIL,
        hashed_password=get_password_hash(settings.OWNER_PASSWORD),
        role=UserRole.OWNER,
        status_=UserStatus.ACTIVE,
    )
    logger.info("Created owner account %s", owner.email)
    return owner
