"""
PropDesk Backend — Upload Validation
======================================

What:  Checks every uploaded file before any byte reaches the object store.
How:   Three checks per file, cheapest first:
       1. Size:       at most MAX_FILE_SIZE bytes
       2. Extension:  an image extension, or none at all
       3. Content:    libmagic sniffs the header bytes; only raster image
                      types pass

The sniffed type replaces the client's Content-Type. Uploads are published
(public-read on S3, /api/files locally), so a stored record never claims a
type the bytes do not have. SVG is not accepted: it can carry script.
"""

import dataclasses
import logging
import os
from typing import List, Sequence

import magic

from propdesk.config import settings
from propdesk.exceptions import ObjectStorageError, ValidationError
from propdesk.services.object_store import UploadedFile

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/avif",
    "image/heic",
    "image/heif",
    "image/bmp",
    "image/tiff",
})

ALLOWED_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif",
    ".heic", ".heif", ".bmp", ".tif", ".tiff",
})


def validate_size(upload: UploadedFile) -> None:
    if upload.size > settings.max_file_size:
        max_mb = settings.max_file_size / (1024 * 1024)
        raise ValidationError(
            message=(
                f"File '{upload.filename}' ({upload.size / (1024 * 1024):.1f}MB) "
                f"exceeds maximum of {max_mb:.0f}MB."
            ),
            field="images",
            context={"filename": upload.filename, "size": upload.size},
        )


def validate_extension(upload: UploadedFile) -> None:
    # Case is kept in the storage key; the check itself ignores it
    ext = os.path.splitext(upload.filename)[1].lower()
    if ext and ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            message=f"File type '{ext}' is not supported. Upload an image file.",
            field="images",
            context={"filename": upload.filename, "extension": ext},
        )


def detect_image_type(upload: UploadedFile) -> str:
    """
    Sniff the MIME type from the file's magic bytes.

    Raises:
        ValidationError if the content is not an accepted image type
        ObjectStorageError if libmagic itself fails
    """
    try:
        mime_type = magic.from_buffer(upload.content, mime=True)
    except magic.MagicException as e:
        logger.error("MIME type detection failed for %s: %s", upload.filename, str(e))
        raise ObjectStorageError(
            message="Could not verify file type. Please try again.",
            context={"filename": upload.filename, "error": str(e)},
        ) from e

    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            message=f"File '{upload.filename}' is not a supported image ({mime_type}).",
            field="images",
            context={
                "filename": upload.filename,
                "detected_mime": mime_type,
                "declared_mime": upload.content_type,
            },
        )
    if mime_type != upload.content_type:
        logger.debug(
            "Declared type %s for %s replaced by detected %s",
            upload.content_type,
            upload.filename,
            mime_type,
        )
    return mime_type


def validate_uploads(files: Sequence[UploadedFile]) -> List[UploadedFile]:
    """
    Validate a whole batch up front.

    Returns copies of the files carrying the detected content type, in the
    same order. Nothing is uploaded if any file fails.
    """
    if len(files) > settings.max_upload_files:
        raise ValidationError(
            message=f"Too many images: at most {settings.max_upload_files} files per request.",
            field="images",
            context={"count": len(files), "max": settings.max_upload_files},
        )

    checked: List[UploadedFile] = []
    for upload in files:
        validate_size(upload)
        validate_extension(upload)
        checked.append(dataclasses.replace(upload, content_type=detect_image_type(upload)))
    return checked
