"""Tests for product photo files on disk."""

import io

import pytest
from fastapi import UploadFile

from warehouse.core.exceptions import ValidationError
from warehouse.services.photo_storage import PhotoStorage


def upload(name: str, data: bytes = b"\x89PNG fake") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name)


def test_save_writes_file_under_products(tmp_path):
    storage = PhotoStorage(str(tmp_path))
    stored = storage.save(upload("front.PNG"))
    assert stored.photo_path.startswith("/uploads/products/")
    assert stored.photo_path.endswith(".png")
    assert stored.original_name == "front.PNG"
    saved = tmp_path / "products" / stored.photo_path.rsplit("/", 1)[1]
    assert saved.read_bytes() == b"\x89PNG fake"


def test_rejects_unsupported_extension(tmp_path):
    with pytest.raises(ValidationError):
        PhotoStorage(str(tmp_path)).save(upload("notes.txt"))


def test_rejects_oversized_file(tmp_path):
    storage = PhotoStorage(str(tmp_path), max_size_mb=1)
    with pytest.raises(ValidationError):
        storage.save(upload("big.jpg", b"0" * (1024 * 1024 + 1)))


def test_remove_skips_missing_files(tmp_path):
    storage = PhotoStorage(str(tmp_path))
    stored = storage.save(upload("a.jpg"))
    assert storage.remove([stored.photo_path, "/uploads/products/gone.jpg"]) == 1
    assert not any((tmp_path / "products").iterdir())
