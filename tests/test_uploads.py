"""Tests for upload storage."""

import io
from pathlib import Path

import pytest
from starlette.datastructures import UploadFile

from staff_registry.core.errors import ValidationError
from staff_registry.core.settings import settings
from staff_registry.services.uploads import (
    StoredUpload,
    remove_upload,
    resolve_upload,
    store_upload,
    store_uploads,
    upload_path,
)


def _upload(name: str, content: bytes = b"data") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=name)


def test_store_upload_uses_unique_names(upload_dir: Path) -> None:
    first = store_upload(_upload("Portrait.PNG"), "image_staff")
    second = store_upload(_upload("Portrait.PNG"), "image_staff")

    assert first.stored_name != second.stored_name
    assert first.stored_name.endswith(".png")
    assert (upload_dir / first.stored_name).read_bytes() == b"data"


def test_oversized_upload_is_rejected(upload_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "max_upload_bytes", 3)

    with pytest.raises(ValidationError):
        store_upload(_upload("big.pdf", b"0123456789"), "custom_uploads")
    assert list(upload_dir.iterdir()) == []


def test_store_uploads_cleans_up_on_failure(upload_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "max_upload_bytes", 5)

    with pytest.raises(ValidationError):
        store_uploads([_upload("a.txt", b"ok"), _upload("b.txt", b"much too long")], "custom_uploads")
    assert list(upload_dir.iterdir()) == []


def test_resolve_upload_matches_field_marker() -> None:
    uploads = [
        StoredUpload("custom_uploads", "photo.png", "custom_uploads-1.png"),
        StoredUpload("custom_uploads", "cv-upload.pdf", "custom_uploads-2.pdf"),
    ]

    assert resolve_upload("cv", uploads) == "custom_uploads-2.pdf"
    assert resolve_upload("diploma", uploads) is None


def test_paths_cannot_escape_upload_dir() -> None:
    with pytest.raises(ValidationError):
        upload_path("../secrets.txt")
    remove_upload("../secrets.txt")
    remove_upload(None)
