"""
Validation and cleanup for images written to local storage (MEDIA_ROOT).
"""
import logging
import os

from django.core.files.storage import default_storage

from .exceptions import InvalidUploadException

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {'.jpeg', '.jpg', '.png', '.gif'}
ALLOWED_IMAGE_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif'}


def validate_image_upload(upload, max_bytes):
    """
    Reject anything that is not a JPEG/PNG/GIF or is larger than ``max_bytes``.
    """
    extension = os.path.splitext(upload.name or '')[1].lower()
    content_type = (getattr(upload, 'content_type', '') or '').lower()

    if extension not in ALLOWED_IMAGE_EXTENSIONS or content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise InvalidUploadException()

    if upload.size > max_bytes:
        raise InvalidUploadException(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )
    return upload


def delete_stored_file(name):
    """Remove a previously stored file; missing files are ignored."""
    if not name:
        return False
    try:
        if default_storage.exists(name):
            default_storage.delete(name)
            logger.info(f"Deleted stored file {name}")
            return True
    except OSError as e:
        logger.error(f"Failed to delete stored file {name}: {str(e)}")
    return False
