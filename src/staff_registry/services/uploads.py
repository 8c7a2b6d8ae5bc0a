"""Disk storage for staff image and custom field uploads."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from starlette.datastructures import UploadFile

from staff_registry.core.errors import ValidationError
from staff_registry.core.settings import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredUpload:
    """An uploaded file after it has been written to the upload directory."""

    field_name: str
    original_name: str
    stored_name: str


def upload_root() -> Path:
    """Return the upload directory, creating it on first use."""
    root = Path(settings.upload_dir).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def upload_path(filename: str) -> Path:
    """Resolve a stored filename inside the upload directory.

    Raises:
        ValidationError: If the name would escape the upload directory.
    """
    root = upload_root()
    candidate = (root / filename).resolve()
    if candidate.parent != root:
        raise ValidationError("Invalid file name", detail=filename)
    return candidate


def store_upload(upload: UploadFile, field_name: str) -> StoredUpload:
    """Write an upload to disk under a unique ``<field>-<uuid><ext>`` name.

    Raises:
        ValidationError: If the file exceeds the configured size limit.
    """
    original = upload.filename or ""
    extension = os.path.splitext(original)[1].lower()
    stored_name = f"{field_name}-{uuid.uuid4().hex}{extension}"
    destination = upload_root() / stored_name

    written = 0
    with destination.open("wb") as buffer:
        while chunk := upload.file.read(CHUNK_SIZE):
            written += len(chunk)
            if written > settings.max_upload_bytes:
                break
            buffer.write(chunk)
    if written > settings.max_upload_bytes:
        destination.unlink(missing_ok=True)
        raise ValidationError(
            "Uploaded file is too large",
            detail=f"{original} exceeds {settings.max_upload_bytes} bytes",
        )

    logger.info("Stored upload %s as %s", original, stored_name)
    return StoredUpload(field_name=field_name, original_name=original, stored_name=stored_name)


def store_uploads(uploads: list[UploadFile], field_name: str) -> list[StoredUpload]:
    """Store several uploads, removing the already-written ones on failure."""
    stored: list[StoredUpload] = []
    try:
        for upload in uploads:
            stored.append(store_upload(upload, field_name))
    except Exception:
        for item in stored:
            remove_upload(item.stored_name)
        raise
    return stored


def resolve_upload(field_key: str, uploads: list[StoredUpload]) -> str | None:
    """Return the stored name of the upload belonging to a custom field.

    Clients name each custom upload ``<field>-upload...`` so it can be matched
    back to the field it fills.
    """
    marker = f"{field_key}-upload"
    for item in uploads:
        if marker in item.original_name:
            return item.stored_name
    return None


def remove_upload(filename: str | None) -> None:
    """Delete a stored upload; missing files and I/O errors are only logged."""
    if not filename:
        return
    try:
        upload_path(filename).unlink(missing_ok=True)
    except (OSError, ValidationError) as err:
        logger.warning("Could not delete upload %s: %s", filename, err)

