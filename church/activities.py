"""Activity log browsing for the owner."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .database import get_db
from .models import ActivityAction

admin_router = APIRouter(prefix="/activity", tags=["admin: activity"])
ACTION_VALUES = {action.value for action in ActivityAction}


@admin_router.get("", response_model=schemas.Page[schemas.ActivityOut])
def list_activities(
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    action: str = Query("all"),
    period: Literal["all_time", "today", "this_week", "this_month", "last_month"] = Query(
        "all_time"
    ),
    sort: Literal["date", "action", "id"] = Query("date"),
    direction: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(get_db),
):
    """List activity records with the acting user's name and email."""
    if action != "all" and action not in ACTION_VALUES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Validation error: action: Unknown action {action!r}",
        )
    items, total = crud.list_activities(
        db,
        page=page,
        per_page=per_page,
        search=search,
        action=action,
        period=period,
        sort=sort,
        direction=direction,
    )
    return {"items": items, "total": total}


@admin_router.get("/{activity_id}", response_model=schemas.ActivityOut)
def get_activity(activity_id: int, db: Session = Depends(get_db)):
    activity = crud.get_activity(db, activity_id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return activity
