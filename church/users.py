"""User profile and user administration routes."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import (
    SessionUser,
    clear_session_cookie,
    get_current_user,
    get_password_hash,
    is_protected_owner,
)
from .database import get_db
from .models import ActivityAction, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/users", tags=["admin: users"])


def _get_user_or_404(db: Session, user_id: int):
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _drop_nulls(changes: dict, keys) -> dict:
    """Remove explicit nulls for columns that cannot be cleared."""
    return {k: v for k, v in changes.items() if not (k in keys and v is None)}


@router.get("/profile", response_model=schemas.UserOut)
def read_profile(identity: SessionUser = Depends(get_current_user)):
    """
    Retrieve details of the currently authenticated user.

    Args:
        identity (SessionUser): Identity attached from the session cookie.

    Returns:
        UserOut: User profile information.
    """
    return identity


@router.patch("/profile", response_model=schemas.UserOut)
def update_profile(
    changes: schemas.ProfileUpdate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Update the caller's own name, notification preference or picture.

    Args:
        changes (ProfileUpdate): Fields to update.
        identity (SessionUser): Authenticated user.
        db (Session): Database session.

    Returns:
        UserOut: Updated profile.
    """
    user = _get_user_or_404(db, identity.id)
    values = _drop_nulls(changes.model_dump(exclude_unset=True), ("name", "notification_opt_in"))
    user = crud.update_user(db, user, values)
    activity.log(user.id, ActivityAction.USER_UPDATE, f"User updated profile: {user.email}")
    return user


@router.delete("/profile", response_model=schemas.MessageResponse)
def delete_profile(
    response: Response,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Delete the caller's own account and end the session.

    Raises:
        HTTPException: 403 for the owner account, 409 while the user still
            owns uploaded media.
    """
    if is_protected_owner(identity.email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot delete the owner account",
        )
    user = _get_user_or_404(db, identity.id)
    if crud.count_media_for_user(db, user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User still owns uploaded media",
        )
    email = user.email
    crud.delete_user(db, user)
    clear_session_cookie(response)
    activity.log(None, ActivityAction.USER_DELETE, f"User deleted own account: {email}")
    return {"message": "Account deleted successfully"}


@admin_router.get("", response_model=schemas.Page[schemas.UserOut])
def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    status_: Literal["all", "active", "inactive"] = Query("all", alias="status"),
    role: Literal["all", "user", "owner"] = Query("all"),
    db: Session = Depends(get_db),
):
    """List accounts, newest first."""
    items, total = crud.list_users(
        db, page=page, per_page=per_page, search=search, status_=status_, role=role
    )
    return {"items": items, "total": total}


@admin_router.post("", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: schemas.AdminUserCreate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Create an account with an explicit role and status."""
    user = crud.create_user(
        db,
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
        status_=payload.status,
        notification_opt_in=payload.notification_opt_in,
    )
    activity.log(identity.id, ActivityAction.SIGNUP, f"Owner created user: {user.email}")
    return user


@admin_router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _get_user_or_404(db, user_id)


@admin_router.patch("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: int,
    payload: schemas.AdminUserUpdate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Update any account.

    Raises:
        HTTPException: 403 when demoting or renaming the owner account, 409
            when the new email belongs to another account.
    """
    user = _get_user_or_404(db, user_id)
    changes = _drop_nulls(
        payload.model_dump(exclude_unset=True),
        ("role", "status", "name", "email", "password", "notification_opt_in"),
    )

    if is_protected_owner(user.email):
        if changes.get("role", UserRole.OWNER) != UserRole.OWNER:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot change the owner's role",
            )
        if "email" in changes and changes["email"].lower() != user.email.lower():
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot change the owner's email",
            )

    if "email" in changes and changes["email"] != user.email:
        other = crud.get_user_by_email(db, changes["email"])
        if other is not None and other.id != user.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists",
            )

    password = changes.pop("password", None)
    if password:
        changes["hashed_password"] = get_password_hash(password)

    user = crud.update_user(db, user, changes)
    activity.log(identity.id, ActivityAction.USER_UPDATE, f"Owner updated user: {user.email}")
    return user


@admin_router.delete("/{user_id}", response_model=schemas.MessageResponse)
def delete_user(
    user_id: int,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Delete an account together with its donations.

    Raises:
        HTTPException: 403 for the owner account, 409 while the user still
            owns uploaded media.
    """
    user = _get_user_or_404(db, user_id)
    if is_protected_owner(user.email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot delete the owner account",
        )
    if crud.count_media_for_user(db, user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User still owns uploaded media",
        )
    email = user.email
    crud.delete_user(db, user)
    logger.info("User %s deleted by %s", user_id, identity.id)
    actor = None if identity.id == user_id else identity.id
    activity.log(actor, ActivityAction.USER_DELETE, f"Owner deleted user: {email}")
    return {"message": "User deleted successfully"}
