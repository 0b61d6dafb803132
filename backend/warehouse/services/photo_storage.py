# backend/warehouse/services/photo_storage.py
"""Product photo files on local disk, served under /uploads."""

import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from fastapi import UploadFile
from warehouse.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


@dataclass
class StoredPhoto:
    photo_path: str
    original_name: str | None


class PhotoStorage:
    """Saves uploads under ``<root>/products`` with random file names."""

    def __init__(self, root: str, max_size_mb: int = 5):
        self.root = Path(root)
        self.max_bytes = max_size_mb * 1024 * 1024
        self.product_dir = self.root / "products"

    def save(self, upload: UploadFile) -> StoredPhoto:
        ext = os.path.splitext(upload.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"Unsupported image type '{ext or upload.filename}'")

        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        upload.file.seek(0)
        if size > self.max_bytes:
            raise ValidationError(f"File {upload.filename} exceeds {self.max_bytes // (1024 * 1024)}MB")

        self.product_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4().hex}{ext}"
        with open(self.product_dir / filename, "wb") as buffer:
            shutil.copyfileobj(upload.file, buffer)
        return StoredPhoto(photo_path=f"/uploads/products/{filename}", original_name=upload.filename)

    def remove(self, photo_paths: list[str]) -> int:
        """Delete stored files; missing files are skipped.

        Returns:
            Number of files removed
        """
        removed = 0
        for photo_path in photo_paths:
            path = self.root / "products" / Path(photo_path).name
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                logger.warning(f"Photo file already gone: {path}")
        return removed
