"""Authentication and authorization related routes and helpers."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import crud, notifications, schemas
from .activity import ActivityLogger, get_activity_logger
from .core import get_settings
from .database import get_db
from .models import ActivityAction, User, UserRole, UserStatus

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
router = APIRouter(prefix="/auth", tags=["auth"])


@dataclass(frozen=True)
class SessionUser:
    """Identity attached to a request, built once from the ``users`` row."""

    id: int
    name: str
    email: str
    role: UserRole
    status: UserStatus
    notification_opt_in: bool
    profile_picture_url: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "SessionUser":
        """
        Create a SessionUser from a User ORM model, dropping the password hash.

        Args:
            user (User): SQLAlchemy User model.

        Returns:
            SessionUser: Immutable identity.
        """
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            status=user.status,
            notification_opt_in=bool(user.notification_opt_in),
            profile_picture_url=user.profile_picture_url,
            created_at=user.created_at,
        )

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER


def is_protected_owner(email: str) -> bool:
    """Whether ``email`` belongs to the owner account that may never be removed."""
    return email.lower() == get_settings().OWNER_EMAIL.lower()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a password hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(
    data: dict, expires_delta: timedelta | None = None, scope: str = "access"
) -> str:
    """Create a signed JWT carrying ``data``, an expiry and a scope."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "scope": scope})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def issue_session_token(user: User) -> str:
    """Create the session token embedding the user's id, email and role."""
    return create_access_token(
        {"id": user.id, "email": user.email, "role": UserRole(user.role).value}
    )


def create_password_reset_token(user: User) -> str:
    """Generate a short-lived password reset token for the user."""
    return create_access_token(
        {"sub": user.email},
        expires_delta=timedelta(minutes=get_settings().RESET_TOKEN_EXPIRE_MINUTES),
        scope="reset",
    )


def verify_token(token: str, scope: str = "access") -> dict | None:
    """
    Decode a token and check its scope.

    Args:
        token (str): Encoded JWT.
        scope (str): Expected ``scope`` claim.

    Returns:
        dict | None: Claims, or ``None`` for any invalid, expired or
        foreign-scoped token.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        return None
    if payload.get("scope") != scope:
        logger.debug("Rejected token with scope %r", payload.get("scope"))
        return None
    return payload


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> SessionUser | None:
    """
    Resolve the identity carried by the session cookie, if any.

    Never fails: a missing cookie, an invalid token, an unknown user and an
    inactive user all result in ``None``.
    """
    token = request.cookies.get(get_settings().AUTH_COOKIE_NAME)
    if not token:
        return None
    claims = verify_token(token)
    if not claims or not isinstance(claims.get("id"), int):
        return None
    user = crud.get_user_by_id(db, claims["id"])
    if user is None:
        logger.info("Session token refers to missing user %s", claims["id"])
        return None
    if user.status == UserStatus.INACTIVE:
        logger.info("Session token refers to inactive user %s", user.id)
        return None
    return SessionUser.from_model(user)


def get_current_user(
    identity: SessionUser | None = Depends(get_optional_user),
) -> SessionUser:
    """Dependency that rejects anonymous requests with 401."""
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Authentication required",
        )
    return identity


def require_owner(identity: SessionUser = Depends(get_current_user)) -> SessionUser:
    """Dependency that rejects non-owner identities with 403."""
    if not identity.is_owner:
        logger.info("User %s denied owner access", identity.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Owner access required",
        )
    return identity


@router.post("/login", response_model=schemas.UserOut)
def login(
    payload: schemas.LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Authenticate with email and password and set the session cookie."""

    user = crud.get_user_by_email(db, payload.email)
    if user is None:
        logger.info("Login failed: unknown email")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if user.status == UserStatus.INACTIVE:
        logger.info("Login refused for inactive user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Please contact an administrator.",
        )
    if not verify_password(payload.password, user.hashed_password):
        logger.info("Login failed: wrong password for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    set_session_cookie(response, issue_session_token(user))
    activity.log(user.id, ActivityAction.LOGIN, f"User logged in: {user.email}")
    return user


@router.post(
    "/signup", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED
)
def signup(
    payload: schemas.SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Register a new member account and send the welcome email."""

    user = crud.create_user(
        db,
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        notification_opt_in=payload.notification_opt_in,
    )
    if user.notification_opt_in:
        notifications.send_signup_email(background_tasks, user.email, user.name)
    activity.log(user.id, ActivityAction.SIGNUP, f"New user registered: {user.email}")
    return {"message": "User created successfully"}


@router.post("/logout", response_model=schemas.MessageResponse)
def logout(
    response: Response,
    identity: SessionUser | None = Depends(get_optional_user),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Clear the session cookie, whether or not the caller is signed in."""

    if identity is not None:
        activity.log(identity.id, ActivityAction.LOGOUT, f"User logged out: {identity.email}")
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=schemas.UserOut)
def read_me(identity: SessionUser = Depends(get_current_user)):
    """Return the identity attached to the request."""
    return identity


@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.ChangePasswordRequest,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Replace the caller's password after checking the current one."""

    user = crud.get_user_by_id(db, identity.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect",
        )
    crud.update_user_password(db, user, get_password_hash(payload.new_password))
    activity.log(user.id, ActivityAction.USER_UPDATE, f"User changed password: {user.email}")
    return {"message": "Password changed successfully"}


@router.post("/password/reset", response_model=schemas.MessageResponse)
def request_password_reset(
    payload: schemas.PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Email a reset link. The answer does not reveal whether the account exists."""

    user = crud.get_user_by_email(db, payload.email)
    if user is not None and user.status == UserStatus.ACTIVE:
        token = create_password_reset_token(user)
        notifications.send_password_reset_email(background_tasks, user.email, token)
    else:
        logger.info("Password reset requested for unknown or inactive account")
    return {"message": "If the account exists, a password reset email has been sent"}


@router.post("/password/reset/confirm", response_model=schemas.MessageResponse)
def confirm_password_reset(
    payload: schemas.PasswordResetConfirm,
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Confirm password reset using a provided token and new password."""

    claims = verify_token(payload.token, scope="reset")
    if claims is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token")
    user = crud.get_user_by_email(db, claims.get("sub") or "")
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    crud.update_user_password(db, user, get_password_hash(payload.new_password))
    activity.log(user.id, ActivityAction.USER_UPDATE, f"User reset password: {user.email}")
    return {"message": "Password updated"}
