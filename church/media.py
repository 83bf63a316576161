"""Media library routes: uploads to the asset store and their records."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import SessionUser, require_owner
from .core import get_settings
from .database import get_db
from .media_store import MediaStore, MediaStoreError, get_media_store
from .models import ActivityAction, MediaType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["media"])
admin_router = APIRouter(prefix="/media", tags=["admin: media"])


def media_type_for(content_type: str | None) -> MediaType | None:
    """Map a MIME type onto a media type, ``None`` when it is neither image nor video."""
    major = (content_type or "").split("/", 1)[0].lower()
    if major == "image":
        return MediaType.IMAGE
    if major == "video":
        return MediaType.VIDEO
    return None


def _get_media_or_404(db: Session, media_id: int):
    media = crud.get_media(db, media_id)
    if media is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return media


def upload_media(
    media_file: UploadFile = File(..., alias="mediaFile"),
    title: str = Form(..., min_length=2),
    description: str | None = Form(None),
    type_: MediaType | None = Form(None, alias="type"),
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Upload an image or video and record it in the media library.

    The file is checked before anything is sent to the asset store, and the
    record is written only after the store accepted the upload.

    Args:
        media_file (UploadFile): Uploaded file, field ``mediaFile``.
        title (str): Display title.
        description (str | None): Optional description.
        type_ (MediaType | None): Media type; derived from the MIME type when omitted.
        identity (SessionUser): Uploading owner.
        db (Session): Database session.
        store (MediaStore): Asset store client.

    Raises:
        HTTPException: 400 for oversized or non image/video files, 502 when
            the asset store fails.

    Returns:
        MediaOut: Created media record.
    """
    settings = get_settings()
    detected = media_type_for(media_file.content_type)
    if detected is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image and video files are allowed",
        )

    data = media_file.file.read(settings.MEDIA_MAX_BYTES + 1)
    if len(data) > settings.MEDIA_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File exceeds the {settings.MEDIA_MAX_BYTES // (1024 * 1024)} MB limit",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    media_type = type_ or detected
    try:
        asset = store.upload(data, media_type)
    except MediaStoreError as exc:
        logger.error("Asset store upload failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to upload file to the media store",
        )

    media = crud.create_media(
        db,
        asset_url=asset.url,
        asset_id=asset.asset_id,
        media_type=media_type,
        title=title,
        description=description,
        uploaded_by=identity.id,
    )
    activity.log(
        identity.id,
        ActivityAction.MEDIA_UPLOAD,
        f"Uploaded {media_type.value}: {media.title}",
    )
    return media


router.post("", response_model=schemas.MediaOut, status_code=status.HTTP_201_CREATED)(
    upload_media
)
admin_router.post("", response_model=schemas.MediaOut, status_code=status.HTTP_201_CREATED)(
    upload_media
)


@router.get("/{media_id}", response_model=schemas.MediaPublic)
def get_public_media(media_id: int, db: Session = Depends(get_db)):
    return _get_media_or_404(db, media_id)


@admin_router.get("", response_model=schemas.Page[schemas.MediaOut])
def list_media(
    page: int = Query(1, ge=1),
    per_page: int = Query(12, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    type_: Literal["all", "image", "video"] = Query("all", alias="type"),
    db: Session = Depends(get_db),
):
    """List the media library, newest first."""
    items, total = crud.list_media(
        db, page=page, per_page=per_page, search=search, media_type=type_
    )
    return {"items": items, "total": total}


@admin_router.get("/{media_id}", response_model=schemas.MediaOut)
def get_media(media_id: int, db: Session = Depends(get_db)):
    return _get_media_or_404(db, media_id)


@admin_router.patch("/{media_id}", response_model=schemas.MediaOut)
def update_media(
    media_id: int,
    changes: schemas.MediaUpdate,
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Change the title or description of a media item."""
    media = _get_media_or_404(db, media_id)
    values = changes.model_dump(exclude_unset=True)
    if values.get("title", "") is None:
        values.pop("title")
    media = crud.update_media(db, media, values)
    activity.log(
        identity.id,
        ActivityAction.MEDIA_UPLOAD,
        f"Updated {MediaType(media.type).value}: {media.title}",
    )
    return media


@admin_router.delete("/{media_id}", response_model=schemas.MessageResponse)
def delete_media(
    media_id: int,
    identity: SessionUser = Depends(require_owner),
    db: Session = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Delete a media item from the asset store and the library.

    Events showing the item lose their media reference. The remote delete
    runs first; when it fails the failure is logged and the record is
    removed anyway.

    Raises:
        HTTPException: 409 while a sermon references the item.
    """
    media = _get_media_or_404(db, media_id)
    if crud.count_sermons_for_media(db, media.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Media is used by a sermon",
        )
    try:
        store.delete(media.asset_id, media.type)
    except MediaStoreError as exc:
        logger.error("Asset store delete failed for %s: %s", media.asset_id, exc)
    details = f"Deleted {MediaType(media.type).value}: {media.title}"
    crud.delete_media(db, media)
    activity.log(identity.id, ActivityAction.MEDIA_UPLOAD, details)
    return {"message": "Media deleted successfully"}
