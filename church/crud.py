"""CRUD operations for every entity of the church API.

This module contains database interaction logic, isolated from FastAPI
route handlers. Listing helpers return ``(items, total)`` where ``total``
counts every row matching the filters, ignoring pagination.
"""

from datetime import datetime
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session, joinedload

from . import models, schemas
from .reports import period_window


def _paginate(db: Session, stmt, page: int, per_page: int):
    """
    Execute ``stmt`` for one page and count all matching rows.

    Args:
        db (Session): Database session.
        stmt (Select): Filtered and ordered statement.
        page (int): 1-based page number.
        per_page (int): Page size.

    Returns:
        tuple[list, int]: Rows of the page and total number of matches.
    """
    total = db.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    rows = db.scalars(stmt.offset((page - 1) * per_page).limit(per_page)).unique().all()
    return rows, total or 0


def _window_conditions(column, period: str, now: datetime | None = None):
    """Translate a named period into range conditions on ``column``."""
    start, end = period_window(period, now or datetime.now())
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end is not None:
        conditions.append(column < end)
    return conditions


def _ordering(column, direction: str):
    return column.asc() if direction == "asc" else column.desc()


# Users


def create_user(
    db: Session,
    name: str,
    email: str,
    hashed_password: str,
    role: models.UserRole = models.UserRole.USER,
    status_: models.UserStatus = models.UserStatus.ACTIVE,
    notification_opt_in: bool = True,
) -> models.User:
    """
    Create and persist a new user.

    Args:
        db (Session): SQLAlchemy database session.
        name (str): Display name.
        email (str): Unique email address.
        hashed_password (str): Securely hashed password.
        role (UserRole): Account role.
        status_ (UserStatus): Account status.
        notification_opt_in (bool): Whether the user accepts emails.

    Raises:
        HTTPException: If a user with the same email already exists.

    Returns:
        User: Newly created user instance.
    """
    if get_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists",
        )

    user = models.User(
        name=name,
        email=email,
        hashed_password=hashed_password,
        role=role,
        status=status_,
        notification_opt_in=notification_opt_in,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user_by_email(db: Session, email: str) -> models.User | None:
    """
    Retrieve a user by email address.

    Args:
        db (Session): Database session.
        email (str): User email.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.execute(
        select(models.User).where(models.User.email == email)
    ).scalar_one_or_none()


def get_user_by_id(db: Session, user_id: int) -> models.User | None:
    """
    Retrieve a user by primary key.

    Args:
        db (Session): Database session.
        user_id (int): User identifier.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.get(models.User, user_id)


def update_user(db: Session, user: models.User, changes: dict) -> models.User:
    """
    Apply already-validated field changes to a user.

    Args:
        db (Session): Database session.
        user (User): Target user.
        changes (dict): Column names mapped to new values.

    Returns:
        User: Updated user instance.
    """
    for key, value in changes.items():
        setattr(user, key, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user_password(
    db: Session, user: models.User, hashed_password: str
) -> models.User:
    """
    Update user's hashed password.

    Args:
        db (Session): Database session.
        user (User): Target user.
        hashed_password (str): New hashed password.

    Returns:
        User: Updated user instance.
    """
    return update_user(db, user, {"hashed_password": hashed_password})


def delete_user(db: Session, user: models.User) -> None:
    """Delete a user together with their donations."""
    db.delete(user)
    db.commit()


def count_media_for_user(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count(models.Media.id)).where(models.Media.uploaded_by == user_id)
    ) or 0


def list_users(
    db: Session,
    page: int = 1,
    per_page: int = 10,
    search: str = "",
    status_: str = "all",
    role: str = "all",
):
    """
    List users, newest first.

    Args:
        db (Session): Database session.
        page (int): Page number.
        per_page (int): Page size.
        search (str): Case-insensitive match on name or email.
        status_ (str): ``active``, ``inactive`` or ``all``.
        role (str): ``user``, ``owner`` or ``all``.

    Returns:
        tuple[list[User], int]: Page of users and total matches.
    """
    stmt = select(models.User)
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(models.User.name.ilike(like_q), models.User.email.ilike(like_q))
        )
    if status_ != "all":
        stmt = stmt.where(models.User.status == models.UserStatus(status_))
    if role != "all":
        stmt = stmt.where(models.User.role == models.UserRole(role))
    stmt = stmt.order_by(models.User.created_at.desc(), models.User.id.desc())
    return _paginate(db, stmt, page, per_page)


# Contacts


def create_contact(db: Session, contact_in: schemas.ContactCreate) -> models.Contact:
    """
    Store a message submitted through the contact form.

    Args:
        db (Session): Database session.
        contact_in (ContactCreate): Validated form data.

    Returns:
        Contact: Newly created contact, status ``unread``.
    """
    contact = models.Contact(
        name=contact_in.name,
        email=contact_in.email,
        message=contact_in.message,
        status=models.ContactStatus.UNREAD,
    )
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def get_contact(db: Session, contact_id: int) -> models.Contact | None:
    return db.get(models.Contact, contact_id)


def update_contact(db: Session, contact: models.Contact, changes: dict):
    """
    Update mutable fields of a contact.

    Args:
        db (Session): Database session.
        contact (Contact): Contact instance.
        changes (dict): Fields to update.

    Returns:
        Contact: Updated contact.
    """
    for key, value in changes.items():
        setattr(contact, key, value)

    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def respond_to_contact(db: Session, contact: models.Contact, message: str):
    """Record the owner's reply and mark the contact as responded."""
    return update_contact(
        db,
        contact,
        {
            "status": models.ContactStatus.RESPONDED,
            "response_message": message,
            "response_date": datetime.now(),
        },
    )


def delete_contact(db: Session, contact: models.Contact):
    """
    Delete a contact from the database.

    Args:
        db (Session): Database session.
        contact (Contact): Contact to delete.
    """
    db.delete(contact)
    db.commit()
    return None


def list_contacts(
    db: Session,
    page: int = 1,
    per_page: int = 10,
    search: str = "",
    status_: str = "all",
):
    """
    List contact messages, newest first.

    Supports optional case-insensitive search by name, email or message.
    """
    stmt = select(models.Contact)
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.Contact.name.ilike(like_q),
                models.Contact.email.ilike(like_q),
                models.Contact.message.ilike(like_q),
            )
        )
    if status_ != "all":
        stmt = stmt.where(models.Contact.status == models.ContactStatus(status_))
    stmt = stmt.order_by(models.Contact.created_at.desc(), models.Contact.id.desc())
    return _paginate(db, stmt, page, per_page)


# Donations


def create_donation(
    db: Session,
    user_id: int,
    amount: Decimal,
    payment_method: models.PaymentMethod,
    status_: models.DonationStatus,
    transaction_id: str | None = None,
    qr_image_url: str | None = None,
    esewa_reference: str | None = None,
) -> models.Donation:
    """
    Persist a donation.

    Args:
        db (Session): Database session.
        user_id (int): Donating user.
        amount (Decimal): Strictly positive amount.
        payment_method (PaymentMethod): How the donation is paid.
        status_ (DonationStatus): Initial status.
        transaction_id (str | None): External transaction reference.
        qr_image_url (str | None): QR image for bank transfers.
        esewa_reference (str | None): eSewa reference.

    Raises:
        HTTPException: If the amount is not positive.

    Returns:
        Donation: Newly created donation.
    """
    if amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amount must be greater than 0",
        )
    donation = models.Donation(
        user_id=user_id,
        amount=amount,
        payment_method=payment_method,
        status=status_,
        transaction_id=transaction_id,
        qr_image_url=qr_image_url,
        esewa_reference=esewa_reference,
    )
    db.add(donation)
    db.commit()
    db.refresh(donation)
    return donation


def get_donation(db: Session, donation_id: int) -> models.Donation | None:
    return db.execute(
        select(models.Donation)
        .options(joinedload(models.Donation.user))
        .where(models.Donation.id == donation_id)
    ).scalar_one_or_none()


def update_donation(db: Session, donation: models.Donation, changes: dict):
    for key, value in changes.items():
        setattr(donation, key, value)
    db.add(donation)
    db.commit()
    db.refresh(donation)
    return donation


def list_user_donations(
    db: Session, user_id: int, page: int = 1, per_page: int = 10
):
    """List one user's donations, newest first."""
    stmt = (
        select(models.Donation)
        .where(models.Donation.user_id == user_id)
        .order_by(models.Donation.created_at.desc(), models.Donation.id.desc())
    )
    return _paginate(db, stmt, page, per_page)


DONATION_SORT_COLUMNS = {
    "id": models.Donation.id,
    "amount": models.Donation.amount,
    "date": models.Donation.created_at,
}


def list_donations(
    db: Session,
    page: int = 1,
    per_page: int = 10,
    search: str = "",
    status_: str = "all",
    period: str = "all_time",
    sort: str = "date",
    direction: str = "desc",
    now: datetime | None = None,
):
    """
    List donations with their donors.

    Args:
        db (Session): Database session.
        page (int): Page number.
        per_page (int): Page size.
        search (str): Case-insensitive match on donor name or email.
        status_ (str): Donation status or ``all``.
        period (str): ``all_time``, ``this_month``, ``last_month`` or ``this_year``.
        sort (str): ``date``, ``amount`` or ``id``.
        direction (str): ``asc`` or ``desc``.
        now (datetime | None): Reference time for the period window.

    Returns:
        tuple[list[Donation], int]: Page of donations and total matches.
    """
    stmt = (
        select(models.Donation)
        .join(models.User, models.Donation.user_id == models.User.id)
    )
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(models.User.name.ilike(like_q), models.User.email.ilike(like_q))
        )
    if status_ != "all":
        stmt = stmt.where(models.Donation.status == models.DonationStatus(status_))
    stmt = stmt.where(*_window_conditions(models.Donation.created_at, period, now))
    column = DONATION_SORT_COLUMNS.get(sort, models.Donation.created_at)
    stmt = stmt.order_by(_ordering(column, direction), _ordering(models.Donation.id, direction))
    return _paginate(db, stmt, page, per_page)


# Media


def create_media(
    db: Session,
    asset_url: str,
    asset_id: str,
    media_type: models.MediaType,
    title: str,
    description: str | None,
    uploaded_by: int,
) -> models.Media:
    """Persist a media record for an asset that is already uploaded."""
    media = models.Media(
        asset_url=asset_url,
        asset_id=asset_id,
        type=media_type,
        title=title,
        description=description,
        uploaded_by=uploaded_by,
    )
    db.add(media)
    db.commit()
    db.refresh(media)
    return media


def get_media(db: Session, media_id: int) -> models.Media | None:
    return db.execute(
        select(models.Media)
        .options(joinedload(models.Media.uploader))
        .where(models.Media.id == media_id)
    ).scalar_one_or_none()


def update_media(db: Session, media: models.Media, changes: dict):
    for key, value in changes.items():
        setattr(media, key, value)
    db.add(media)
    db.commit()
    db.refresh(media)
    return media


def count_sermons_for_media(db: Session, media_id: int) -> int:
    return db.scalar(
        select(func.count(models.Sermon.id)).where(models.Sermon.media_id == media_id)
    ) or 0


def delete_media(db: Session, media: models.Media) -> None:
    """
    Delete a media row, detaching any events that displayed it.

    The remote asset must already be gone when this is called.
    """
    for event in db.scalars(
        select(models.Event).where(models.Event.media_id == media.id)
    ).all():
        event.media_id = None
    db.delete(media)
    db.commit()


def list_media(
    db: Session,
    page: int = 1,
    per_page: int = 12,
    search: str = "",
    media_type: str = "all",
):
    """List media, newest first, searching title and description."""
    stmt = select(models.Media)
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.Media.title.ilike(like_q),
                models.Media.description.ilike(like_q),
            )
        )
    if media_type != "all":
        stmt = stmt.where(models.Media.type == models.MediaType(media_type))
    stmt = stmt.order_by(models.Media.created_at.desc(), models.Media.id.desc())
    return _paginate(db, stmt, page, per_page)


# Events


def create_event(db: Session, event_in: schemas.EventCreate) -> models.Event:
    event = models.Event(**event_in.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def get_event(db: Session, event_id: int) -> models.Event | None:
    return db.execute(
        select(models.Event)
        .options(joinedload(models.Event.media))
        .where(models.Event.id == event_id)
    ).scalar_one_or_none()


def update_event(db: Session, event: models.Event, changes: dict):
    for key, value in changes.items():
        setattr(event, key, value)
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, event: models.Event) -> None:
    db.delete(event)
    db.commit()


def upcoming_events(db: Session, limit: int = 3, now: datetime | None = None):
    """Return the next ``limit`` events, soonest first."""
    return db.scalars(
        select(models.Event)
        .options(joinedload(models.Event.media))
        .where(models.Event.date >= (now or datetime.now()))
        .order_by(models.Event.date.asc(), models.Event.id.asc())
        .limit(limit)
    ).all()


def list_events(
    db: Session,
    page: int = 1,
    per_page: int = 6,
    search: str = "",
    filter_: str = "upcoming",
    now: datetime | None = None,
):
    """
    List events.

    ``upcoming`` returns future events soonest first, ``past`` returns
    finished events most recent first, ``all`` orders by date.
    """
    now = now or datetime.now()
    stmt = select(models.Event)
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.Event.title.ilike(like_q),
                models.Event.description.ilike(like_q),
            )
        )
    if filter_ == "upcoming":
        stmt = stmt.where(models.Event.date >= now).order_by(models.Event.date.asc())
    elif filter_ == "past":
        stmt = stmt.where(models.Event.date < now).order_by(models.Event.date.desc())
    else:
        stmt = stmt.order_by(models.Event.date.asc())
    stmt = stmt.order_by(models.Event.id.asc())
    return _paginate(db, stmt, page, per_page)


# Sermons


def create_sermon(db: Session, sermon_in: schemas.SermonCreate) -> models.Sermon:
    sermon = models.Sermon(**sermon_in.model_dump())
    db.add(sermon)
    db.commit()
    db.refresh(sermon)
    return sermon


def get_sermon(db: Session, sermon_id: int) -> models.Sermon | None:
    return db.execute(
        select(models.Sermon)
        .options(joinedload(models.Sermon.media))
        .where(models.Sermon.id == sermon_id)
    ).scalar_one_or_none()


def update_sermon(db: Session, sermon: models.Sermon, changes: dict):
    for key, value in changes.items():
        setattr(sermon, key, value)
    db.add(sermon)
    db.commit()
    db.refresh(sermon)
    return sermon


def delete_sermon(db: Session, sermon: models.Sermon) -> None:
    db.delete(sermon)
    db.commit()


def latest_sermons(db: Session, limit: int = 2):
    """Return the ``limit`` most recently preached sermons."""
    return db.scalars(
        select(models.Sermon)
        .options(joinedload(models.Sermon.media))
        .order_by(models.Sermon.date.desc(), models.Sermon.id.desc())
        .limit(limit)
    ).all()


def list_sermons(
    db: Session,
    page: int = 1,
    per_page: int = 10,
    search: str = "",
    filter_: str = "all",
    now: datetime | None = None,
):
    """List sermons, most recent first, optionally within a calendar period."""
    stmt = select(models.Sermon)
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.Sermon.title.ilike(like_q),
                models.Sermon.description.ilike(like_q),
            )
        )
    if filter_ != "all":
        stmt = stmt.where(*_window_conditions(models.Sermon.date, filter_, now))
    stmt = stmt.order_by(models.Sermon.date.desc(), models.Sermon.id.desc())
    return _paginate(db, stmt, page, per_page)


# Activities


def create_activity(
    db: Session,
    user_id: int | None,
    action: models.ActivityAction,
    details: str,
) -> models.Activity:
    """Append an audit record. ``user_id`` is ``None`` for system actions."""
    activity = models.Activity(user_id=user_id, action=action, details=details)
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


def get_activity(db: Session, activity_id: int) -> models.Activity | None:
    return db.execute(
        select(models.Activity)
        .options(joinedload(models.Activity.user))
        .where(models.Activity.id == activity_id)
    ).scalar_one_or_none()


ACTIVITY_SORT_COLUMNS = {
    "id": models.Activity.id,
    "action": models.Activity.action,
    "date": models.Activity.created_at,
}


def list_activities(
    db: Session,
    page: int = 1,
    per_page: int = 15,
    search: str = "",
    action: str = "all",
    period: str = "all_time",
    sort: str = "date",
    direction: str = "desc",
    now: datetime | None = None,
):
    """
    List activity records with their actors.

    Args:
        db (Session): Database session.
        page (int): Page number.
        per_page (int): Page size.
        search (str): Case-insensitive match on details or actor name/email.
        action (str): Action kind or ``all``.
        period (str): ``all_time``, ``today``, ``this_week``, ``this_month``
            or ``last_month``.
        sort (str): ``date``, ``action`` or ``id``.
        direction (str): ``asc`` or ``desc``.
        now (datetime | None): Reference time for the period window.

    Returns:
        tuple[list[Activity], int]: Page of activities and total matches.
    """
    stmt = (
        select(models.Activity)
        .outerjoin(models.User, models.Activity.user_id == models.User.id)
    )
    if search:
        like_q = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.Activity.details.ilike(like_q),
                models.User.name.ilike(like_q),
                models.User.email.ilike(like_q),
            )
        )
    if action != "all":
        stmt = stmt.where(models.Activity.action == models.ActivityAction(action))
    stmt = stmt.where(*_window_conditions(models.Activity.created_at, period, now))
    column = ACTIVITY_SORT_COLUMNS.get(sort, models.Activity.created_at)
    stmt = stmt.order_by(_ordering(column, direction), _ordering(models.Activity.id, direction))
    return _paginate(db, stmt, page, per_page)
