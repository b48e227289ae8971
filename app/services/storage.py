"""
Evidence photo storage.

Uploads go to the Firebase Storage bucket when FIREBASE_STORAGE_BUCKET is set,
otherwise to UPLOAD_DIR, which main.py serves under /uploads.
Either way the caller only gets back a public URL.

Routes only read the upload into a PhotoUpload; the workflow service decides
whether and when it is stored.
"""

from typing import Optional
import logging
import os
import uuid

from firebase_admin import storage
from pydantic import BaseModel

from app.config.firebase import initialize_firebase_app
from app.core.errors import PersistenceError, ValidationError
from app.core.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
}
MAX_PHOTO_BYTES = 10 * 1024 * 1024
BUCKET_PREFIX = "reports/"


class PhotoUpload(BaseModel):
    """An uploaded photo held in memory until the workflow accepts it."""
    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None

    def save(self, prefix: str) -> str:
        return store_photo(self.content, self.filename, self.content_type, prefix=prefix)

def _extension_for(content_type: Optional[str], filename: Optional[str]) -> str:
    if content_type in ALLOWED_CONTENT_TYPES:
        return ALLOWED_CONTENT_TYPES[content_type]
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in (".jpg", ".jpeg", ".png", ".webp", ".heic"):
        return ext
    raise ValidationError(f"Unsupported photo type: {content_type or filename}")


def store_photo(content: bytes, filename: Optional[str], content_type: Optional[str], prefix: str = "report") -> str:
    """
    Save an evidence photo and return its public URL.

    Raises:
        ValidationError: empty, oversized or non-image upload
        PersistenceError: the bucket or filesystem write failed
    """
    if not content:
        raise ValidationError("Photo is required")
    if len(content) > MAX_PHOTO_BYTES:
        raise ValidationError("Photo exceeds the 10 MB limit")

    object_name = f"{prefix}-{uuid.uuid4().hex}{_extension_for(content_type, filename)}"

    if settings.FIREBASE_STORAGE_BUCKET and not settings.USE_MOCK_DB:
        return _upload_to_bucket(object_name, content, content_type)
    return _write_local(object_name, content)


def _upload_to_bucket(object_name: str, content: bytes, content_type: Optional[str]) -> str:
    try:
        initialize_firebase_app()
        blob = storage.bucket().blob(f"{BUCKET_PREFIX}{object_name}")
        blob.upload_from_string(content, content_type=content_type or "image/jpeg")
        blob.make_public()
    except Exception as e:
        logger.error(f"Photo upload to bucket failed: {e}", exc_info=True)
        raise PersistenceError(f"Photo upload failed: {e}")
    logger.info(f"Photo uploaded to bucket: {blob.name}")
    return blob.public_url


def _write_local(object_name: str, content: bytes) -> str:
    try:
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        with open(os.path.join(settings.UPLOAD_DIR, object_name), "wb") as f:
            f.write(content)
    except OSError as e:
        raise PersistenceError(f"Photo upload failed: {e}")
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/{object_name}"


def delete_photo(url: Optional[str]) -> None:
    """
    Remove a photo stored by store_photo. Best-effort: failures are logged.

    Used to undo an upload when the transition it belonged to did not commit.
    """
    if not url:
        return
    object_name = url.rsplit("/", 1)[-1]
    try:
        if settings.FIREBASE_STORAGE_BUCKET and not settings.USE_MOCK_DB:
            initialize_firebase_app()
            storage.bucket().blob(f"{BUCKET_PREFIX}{object_name}").delete()
        else:
            path = os.path.join(settings.UPLOAD_DIR, object_name)
            if os.path.exists(path):
                os.remove(path)
    except Exception as e:
        logger.warning(f"⚠️ Could not delete orphaned photo {object_name}: {e}")
        return
    logger.info(f"Deleted orphaned photo {object_name}")
