"""Contact form submission and inbox management routes."""

from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import crud, notifications, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import SessionUser, get_current_user, get_optional_user
from .database import get_db
from .models import ActivityAction, ContactStatus

router = APIRouter(prefix="/contacts", tags=["contacts"])
admin_router = APIRouter(prefix="/contacts", tags=["admin: contacts"])


def _get_contact_or_404(db: Session, contact_id: int):
    contact = crud.get_contact(db, contact_id)
    if contact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return contact


@router.post("", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
def submit_contact(
    contact_in: schemas.ContactCreate,
    background_tasks: BackgroundTasks,
    identity: SessionUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Store a message sent through the public contact form.

    Args:
        contact_in (ContactCreate): Sender name, email and message.
        identity (SessionUser | None): Signed-in sender, if any.
        db (Session): Database session.

    Returns:
        MessageResponse: Confirmation text.
    """
    contact = crud.create_contact(db, contact_in)
    notifications.send_contact_receipt_email(background_tasks, contact.email, contact.name)
    activity.log(
        identity.id if identity else None,
        ActivityAction.CONTACT_MESSAGE,
        f"New contact message from {contact.email}: {contact.message[:50]}...",
    )
    return {"message": "Message sent successfully"}


@admin_router.get("", response_model=schemas.Page[schemas.ContactOut])
def list_contacts(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    status_: Literal["all", "unread", "read", "responded"] = Query("all", alias="status"),
    db: Session = Depends(get_db),
):
    """
    Retrieve contact messages, newest first.

    Supports optional text search by name, email or message.
    """
    items, total = crud.list_contacts(
        db, page=page, per_page=per_page, search=search, status_=status_
    )
    return {"items": items, "total": total}


@admin_router.get("/{contact_id}", response_model=schemas.ContactOut)
def get_contact(contact_id: int, db: Session = Depends(get_db)):
    return _get_contact_or_404(db, contact_id)


@admin_router.patch("/{contact_id}", response_model=schemas.ContactOut)
def patch_contact(
    contact_id: int,
    changes: schemas.ContactUpdate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Change the status of a contact message.

    Only fields provided in the request will be updated.
    """
    contact = _get_contact_or_404(db, contact_id)
    values = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
    contact = crud.update_contact(db, contact, values)
    activity.log(
        identity.id,
        ActivityAction.CONTACT_MESSAGE,
        f"Updated contact status to {ContactStatus(contact.status).value}: "
        f"Contact from {contact.email}",
    )
    return contact


@admin_router.post("/{contact_id}/respond", response_model=schemas.ContactOut)
def respond_to_contact(
    contact_id: int,
    reply: schemas.ContactReply,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Record a reply and mark the message as responded."""
    contact = _get_contact_or_404(db, contact_id)
    contact = crud.respond_to_contact(db, contact, reply.message)
    activity.log(
        identity.id,
        ActivityAction.CONTACT_MESSAGE,
        f"Responded to contact from {contact.email}",
    )
    return contact


@admin_router.delete("/{contact_id}", response_model=schemas.MessageResponse)
def remove_contact(
    contact_id: int,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Delete a contact message.

    Raises:
        HTTPException: If contact is not found.
    """
    contact = _get_contact_or_404(db, contact_id)
    email = contact.email
    crud.delete_contact(db, contact)
    activity.log(identity.id, ActivityAction.CONTACT_MESSAGE, f"Deleted contact from {email}")
    return {"message": "Contact deleted successfully"}
