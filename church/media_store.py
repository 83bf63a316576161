"""Remote asset store for uploaded images and videos, backed by Cloudinary."""

import io
import logging
from dataclasses import dataclass

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from .core import get_settings
from .models import MediaType

logger = logging.getLogger(__name__)


class MediaStoreError(Exception):
    """Raised when the asset store cannot complete an upload or delete."""


@dataclass(frozen=True)
class StoredAsset:
    url: str
    asset_id: str


class MediaStore:
    """
    Thin wrapper around ``cloudinary.uploader``.

    Args:
        cloudinary_url (str | None): Connection URL; uploads fail when unset.
        folder (str): Remote folder assets are stored in.
    """

    def __init__(self, cloudinary_url: str | None, folder: str):
        self.cloudinary_url = cloudinary_url
        self.folder = folder
        if cloudinary_url:
            cloudinary.config(cloudinary_url=cloudinary_url)

    def upload(self, data: bytes, media_type: MediaType) -> StoredAsset:
        """
        Upload raw bytes and return the public URL and asset id.

        Raises:
            MediaStoreError: If the store is not configured or rejects the upload.
        """
        if not self.cloudinary_url:
            raise MediaStoreError("Cloudinary is not configured")
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=self.folder,
                resource_type=MediaType(media_type).value,
                unique_filename=True,
            )
        except (cloudinary.exceptions.Error, OSError) as exc:
            raise MediaStoreError(str(exc)) from exc

        url = result.get("secure_url")
        asset_id = result.get("public_id")
        if not url or not asset_id:
            raise MediaStoreError("Upload response carried no URL")
        logger.info("Uploaded %s asset %s", MediaType(media_type).value, asset_id)
        return StoredAsset(url=url, asset_id=asset_id)

    def delete(self, asset_id: str, media_type: MediaType) -> None:
        """
        Remove an asset from the store.

        Raises:
            MediaStoreError: If the store is not configured or the call fails.
        """
        if not self.cloudinary_url:
            raise MediaStoreError("Cloudinary is not configured")
        try:
            result = cloudinary.uploader.destroy(
                asset_id, resource_type=MediaType(media_type).value
            )
        except (cloudinary.exceptions.Error, OSError) as exc:
            raise MediaStoreError(str(exc)) from exc
        if result.get("result") not in ("ok", "not found"):
            raise MediaStoreError(f"Unexpected destroy result: {result.get('result')}")


def get_media_store() -> MediaStore:
    settings = get_settings()
    return MediaStore(settings.CLOUDINARY_URL, settings.MEDIA_FOLDER)
