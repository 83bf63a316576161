"""Church event routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import SessionUser, get_current_user
from .database import get_db
from .models import ActivityAction

router = APIRouter(prefix="/events", tags=["events"])


def ensure_media_exists(db: Session, media_id: Optional[int]) -> None:
    """Reject references to media items that do not exist."""
    if media_id is not None and crud.get_media(db, media_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Media not found")


def _get_event_or_404(db: Session, event_id: int):
    event = crud.get_event(db, event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.get("", response_model=schemas.Page[schemas.EventOut])
def list_events(
    page: int = Query(1, ge=1),
    per_page: int = Query(6, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    filter_: Literal["upcoming", "past", "all"] = Query("upcoming", alias="filter"),
    limit: Optional[int] = Query(None, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """
    List events.

    With ``limit`` the next few upcoming events are returned without
    pagination, as used by the home page.
    """
    if limit is not None:
        items = crud.upcoming_events(db, limit=limit)
        return {"items": items, "total": len(items)}
    items, total = crud.list_events(
        db, page=page, per_page=per_page, search=search, filter_=filter_
    )
    return {"items": items, "total": total}


@router.get("/{event_id}", response_model=schemas.EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return _get_event_or_404(db, event_id)


@router.post("", response_model=schemas.EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    event_in: schemas.EventCreate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Create an event dated in the future.

    Args:
        event_in (EventCreate): Event data.
        identity (SessionUser): Authenticated user.
        db (Session): Database session.

    Returns:
        EventOut: Created event.
    """
    ensure_media_exists(db, event_in.media_id)
    event = crud.create_event(db, event_in)
    activity.log(identity.id, ActivityAction.EVENT_CREATE, f"Created event: {event.title}")
    return event


@router.patch("/{event_id}", response_model=schemas.EventOut)
def update_event(
    event_id: int,
    changes: schemas.EventUpdate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Partially update an event. ``mediaId`` may be set to null to detach the media."""
    event = _get_event_or_404(db, event_id)
    values = changes.model_dump(exclude_unset=True)
    for key in ("title", "description", "date"):
        if key in values and values[key] is None:
            values.pop(key)
    ensure_media_exists(db, values.get("media_id"))
    event = crud.update_event(db, event, values)
    activity.log(identity.id, ActivityAction.EVENT_UPDATE, f"Updated event: {event.title}")
    return event


@router.delete("/{event_id}", response_model=schemas.MessageResponse)
def delete_event(
    event_id: int,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    event = _get_event_or_404(db, event_id)
    title = event.title
    crud.delete_event(db, event)
    activity.log(identity.id, ActivityAction.EVENT_DELETE, f"Deleted event: {title}")
    return {"message": "Event deleted successfully"}
