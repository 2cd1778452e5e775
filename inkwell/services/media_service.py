import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import pycouchdb

from inkwell.db.couchdb import translate_storage_errors
from inkwell.errors import StorageUnavailable, ValidationError
from inkwell.settings import Settings

logger = logging.getLogger(__name__)

MEDIA_TYPE = "media"
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")


@dataclass
class UploadedImage:
    filename: str
    content_type: str
    data: bytes


def get_content_type_from_filename(filename: str) -> str:
    """
    Determine content type from file extension
    """
    filename = filename.lower()
    if filename.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    elif filename.endswith(".png"):
        return "image/png"
    elif filename.endswith(".gif"):
        return "image/gif"
    elif filename.endswith(".webp"):
        return "image/webp"
    else:
        return "application/octet-stream"


def validate_upload(upload: UploadedImage, max_bytes: int) -> None:
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Invalid file type. Only JPG, JPEG, PNG, WEBP and GIF are allowed."
        )
    if not upload.data:
        raise ValidationError("Uploaded image is empty")
    if len(upload.data) > max_bytes:
        raise ValidationError(f"Image too large. Max size: {max_bytes} bytes")


def make_stored_filename(original: str) -> str:
    """Unique on-disk name that keeps the original extension."""
    _, ext = os.path.splitext(original or "")
    return f"{uuid.uuid4().hex}{ext.lower()}"


class DiskBlobStore:
    """Writes uploads under ``UPLOAD_DIR``; references look like ``/uploads/<name>``."""

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def store(self, upload: UploadedImage) -> str:
        filename = make_stored_filename(upload.filename)
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            (self.upload_dir / filename).write_bytes(upload.data)
        except OSError as e:
            logger.error(f"Failed to write upload {filename}: {e}")
            raise StorageUnavailable("Failed to store image") from e
        logger.info(f"Stored upload {upload.filename} as {filename}")
        return f"{self.url_prefix}/{filename}"

    def discard(self, reference: Optional[str]) -> bool:
        return remove_local_image(reference, self.upload_dir, self.url_prefix)


class CouchBlobStore:
    """
    Stores uploads as attachments on ``media:<name>`` documents;
    references look like ``/images/<name>`` and are served by the images router.
    """

    def __init__(self, couch_db, url_prefix: str = "/images"):
        self.db = couch_db
        self.url_prefix = url_prefix.rstrip("/")

    @translate_storage_errors
    def store(self, upload: UploadedImage) -> str:
        filename = make_stored_filename(upload.filename)
        doc = self.db.save(
            {
                "_id": f"{MEDIA_TYPE}:{filename}",
                "type": MEDIA_TYPE,
                "filename": filename,
                "size": len(upload.data),
            }
        )
        try:
            self.db.put_attachment(
                doc, upload.data, filename=filename, content_type=upload.content_type
            )
        except Exception:
            self._drop_media_doc(doc["_id"])
            raise
        logger.info(f"Stored upload {upload.filename} as CouchDB media {filename}")
        return f"{self.url_prefix}/{filename}"

    def _drop_media_doc(self, doc_id: str) -> None:
        try:
            self.db.delete(doc_id)
        except Exception as e:
            logger.warning(f"Failed to remove media document {doc_id}: {e}")

    def discard(self, reference: Optional[str]) -> bool:
        if not reference or not reference.startswith(f"{self.url_prefix}/"):
            return False
        filename = reference[len(self.url_prefix) + 1 :]
        try:
            self.db.delete(f"{MEDIA_TYPE}:{filename}")
            return True
        except Exception as e:
            logger.warning(f"Failed to discard CouchDB media {filename}: {e}")
            return False

    def fetch(self, filename: str) -> Tuple[Optional[bytes], Optional[str]]:
        """
        Retrieve an image's bytes and content type, or ``(None, None)``.
        """
        try:
            doc = self.db.get(f"{MEDIA_TYPE}:{filename}")
            image_data = self.db.get_attachment(doc, filename)
            if not image_data:
                logger.warning(f"No image data found for: {filename}")
                return None, None

            # Verify we have the complete image data
            expected_size = doc.get("size")
            if expected_size and len(image_data) != expected_size:
                logger.warning(
                    f"Image size mismatch for {filename}. Expected: {expected_size}, Got: {len(image_data)}"
                )
                return None, None

            return image_data, get_content_type_from_filename(filename)

        except pycouchdb.exceptions.NotFound:
            logger.warning(f"Image not found in CouchDB: {filename}")
            return None, None
        except Exception as e:
            logger.error(f"Error retrieving image {filename}: {e}")
            return None, None


def build_blob_store(current_settings: Settings, couch_db=None):
    if current_settings.MEDIA_BACKEND == "couchdb":
        return CouchBlobStore(couch_db, current_settings.MEDIA_URL_PREFIX)
    return DiskBlobStore(current_settings.UPLOAD_DIR, current_settings.UPLOAD_URL_PREFIX)


def remove_local_image(reference: Optional[str], upload_dir, url_prefix: str) -> bool:
    """
    Best-effort removal of a file previously stored by ``DiskBlobStore``.
    Remote URLs and anything outside the uploads prefix are left alone.
    """
    prefix = f"{url_prefix.rstrip('/')}/"
    if not reference or not reference.startswith(prefix):
        return False

    filename = os.path.basename(reference[len(prefix) :])
    if not filename:
        return False

    path = Path(upload_dir) / filename
    try:
        if path.exists():
            path.unlink()
            logger.info(f"Removed stored image {path}")
            return True
    except OSError as e:
        logger.warning(f"Failed to remove stored image {path}: {e}")
    return False


def resolve_featured_image(
    blob_store,
    upload: Optional[UploadedImage],
    explicit_url: Optional[str],
    previous: Optional[str] = None,
    *,
    max_bytes: int = 5 * 1024 * 1024,
) -> Optional[str]:
    """
    Pick the ``featuredImage`` to persist: a fresh upload wins over an explicit
    URL, which wins over the previously stored value.
    """
    if upload is not None:
        validate_upload(upload, max_bytes)
        return blob_store.store(upload)
    if explicit_url and explicit_url.strip():
        return explicit_url
    return previous or None
