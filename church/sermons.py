"""Sermon routes. Reading is public, changes are reserved to the owner."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import SessionUser, require_owner
from .database import get_db
from .events import ensure_media_exists
from .models import ActivityAction

router = APIRouter(prefix="/sermons", tags=["sermons"])


def _get_sermon_or_404(db: Session, sermon_id: int):
    sermon = crud.get_sermon(db, sermon_id)
    if sermon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sermon not found")
    return sermon


@router.get("", response_model=schemas.Page[schemas.SermonOut])
def list_sermons(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    filter_: Literal["all", "this_month", "last_month", "this_year"] = Query(
        "all", alias="filter"
    ),
    limit: Optional[int] = Query(None, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """List sermons, most recent first. ``limit`` returns just the latest few."""
    if limit is not None:
        items = crud.latest_sermons(db, limit=limit)
        return {"items": items, "total": len(items)}
    items, total = crud.list_sermons(
        db, page=page, per_page=per_page, search=search, filter_=filter_
    )
    return {"items": items, "total": total}


@router.get("/{sermon_id}", response_model=schemas.SermonOut)
def get_sermon(sermon_id: int, db: Session = Depends(get_db)):
    return _get_sermon_or_404(db, sermon_id)


@router.post("", response_model=schemas.SermonOut, status_code=status.HTTP_201_CREATED)
def create_sermon(
    sermon_in: schemas.SermonCreate,
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Publish a sermon recording.

    Args:
        sermon_in (SermonCreate): Sermon data referencing an existing media item.
        identity (SessionUser): Owner publishing the sermon.
        db (Session): Database session.

    Returns:
        SermonOut: Created sermon.
    """
    ensure_media_exists(db, sermon_in.media_id)
    sermon = crud.create_sermon(db, sermon_in)
    activity.log(identity.id, ActivityAction.SERMON_CREATE, f"Created sermon: {sermon.title}")
    return sermon


@router.patch("/{sermon_id}", response_model=schemas.SermonOut)
def update_sermon(
    sermon_id: int,
    changes: schemas.SermonUpdate,
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    sermon = _get_sermon_or_404(db, sermon_id)
    values = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
    ensure_media_exists(db, values.get("media_id"))
    sermon = crud.update_sermon(db, sermon, values)
    activity.log(identity.id, ActivityAction.SERMON_UPDATE, f"Updated sermon: {sermon.title}")
    return sermon


@router.delete("/{sermon_id}", response_model=schemas.MessageResponse)
def delete_sermon(
    sermon_id: int,
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    sermon = _get_sermon_or_404(db, sermon_id)
    title = sermon.title
    crud.delete_sermon(db, sermon)
    activity.log(identity.id, ActivityAction.SERMON_DELETE, f"Deleted sermon: {title}")
    return {"message": "Sermon deleted successfully"}
