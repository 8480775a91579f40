import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from PIL import Image, UnidentifiedImageError

from .exceptions import ServerError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_TYPES = ('image/jpeg', 'image/png', 'image/webp')


def validate_upload(upload):
    """
    Reject files the office cannot accept: wrong type, too large, or an
    image that does not decode.
    """
    content_type = getattr(upload, 'content_type', '') or ''
    allowed = settings.PORTAL_ALLOWED_DOCUMENT_TYPES
    if content_type not in allowed:
        raise ValidationError(
            f"File type {content_type or 'unknown'} is not allowed. "
            "Only JPEG, PNG, WebP, and PDF files are permitted."
        )

    max_size = settings.PORTAL_MAX_DOCUMENT_SIZE
    if upload.size > max_size:
        raise ValidationError(
            f"File {upload.name} is too large. Maximum size is {max_size // (1024 * 1024)}MB."
        )

    if content_type in IMAGE_TYPES:
        try:
            upload.seek(0)
            with Image.open(upload) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ValidationError(f"File {upload.name} is not a readable image.")
        finally:
            upload.seek(0)


def store(upload, application, saved_paths=None):
    """
    Save an uploaded file and return its durable URL.
    Path: applications/<application id>/<uuid>.<ext>
    The storage path is appended to `saved_paths` so a caller can discard it.
    """
    extension = os.path.splitext(upload.name)[1].lower()
    path = f"applications/{application.id}/{uuid.uuid4().hex}{extension}"
    try:
        saved_path = default_storage.save(path, upload)
    except OSError as exc:
        logger.exception("Failed to store %s for application %s", upload.name, application.id)
        raise ServerError(f"Failed to upload file: {upload.name}") from exc
    if saved_paths is not None:
        saved_paths.append(saved_path)
    return default_storage.url(saved_path)


def discard(paths):
    """Remove stored files whose database rows never made it."""
    for path in paths:
        try:
            default_storage.delete(path)
        except OSError:
            logger.exception("Failed to remove orphaned upload %s", path)
