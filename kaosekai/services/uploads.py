from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from ..errors import ValidationError

logger = logging.getLogger(__name__)

COVERS = "covers"
PDFS = "pdfs"
IMAGES = "images"

PDF_MIME = "application/pdf"

_CHUNK = 1024 * 1024
_SAFE_EXT = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


@dataclass(frozen=True)
class StoredFile:
    reference: str  # public path, e.g. /uploads/images/1700000000000-123.png
    disk_path: Path
    original_name: str
    mime_type: str
    size: int


class ByteBudget:
    """
    Remaining bytes for one request. A catalog upload shares one budget
    across its cover and PDF; an image upload gets its own.
    """

    def __init__(self, limit: int) -> None:
        self.limit = int(limit)
        self.used = 0

    def consume(self, n: int) -> bool:
        self.used += n
        return self.used <= self.limit


def _mime(upload: UploadFile) -> str:
    return (upload.content_type or "").split(";")[0].strip().lower()


def require_image(upload: UploadFile, field: str) -> None:
    if not _mime(upload).startswith("image/"):
        raise ValidationError.for_field(field, "The file must be an image.")


def require_pdf(upload: UploadFile, field: str) -> None:
    if _mime(upload) != PDF_MIME:
        raise ValidationError.for_field(field, "The file must be a PDF.")


def unique_filename(original_name: Optional[str]) -> str:
    """
    Millisecond timestamp + random suffix, keeping the original extension
    when it looks like one.
    """
    ext = Path(original_name or "").suffix.lower()
    if not _SAFE_EXT.match(ext):
        ext = ""
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class FileStore:
    """
    Uploaded files under a fixed directory tree, addressed by public
    reference paths ("<url_prefix>/<subdir>/<filename>").
    """

    def __init__(self, root: Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_dirs(self) -> None:
        for sub in (COVERS, PDFS, IMAGES):
            (self.root / sub).mkdir(parents=True, exist_ok=True)

    def save(self, upload: UploadFile, subdir: str, *, field: str, budget: ByteBudget, limit_message: str) -> StoredFile:
        """
        Stream upload to disk, charging every byte to budget. Going over the
        budget removes the partial file and fails validation on field.
        """
        folder = self.root / subdir
        folder.mkdir(parents=True, exist_ok=True)

        filename = unique_filename(upload.filename)
        target = folder / filename
        size = 0

        upload.file.seek(0)
        with target.open("wb") as out:
            while True:
                chunk = upload.file.read(_CHUNK)
                if not chunk:
                    break
                size += len(chunk)
                if not budget.consume(len(chunk)):
                    out.close()
                    target.unlink(missing_ok=True)
                    raise ValidationError.for_field(field, limit_message)
                out.write(chunk)

        logger.info("Stored upload %s (%s bytes)", target, size)
        return StoredFile(
            reference=f"{self.url_prefix}/{subdir}/{filename}",
            disk_path=target,
            original_name=upload.filename or filename,
            mime_type=_mime(upload),
            size=size,
        )

    def resolve(self, reference: str) -> Optional[Path]:
        """
        Disk path for a reference this store handed out, or None when the
        reference points outside the upload tree.
        """
        ref = (reference or "").strip()
        if self.url_prefix and ref.startswith(self.url_prefix + "/"):
            ref = ref[len(self.url_prefix) + 1:]
        ref = ref.lstrip("/")
        if not ref:
            return None

        root = self.root.resolve()
        candidate = (root / ref).resolve()
        if candidate == root or root not in candidate.parents:
            return None
        return candidate

    def delete_quietly(self, reference: Optional[str]) -> bool:
        """
        Best-effort removal. Failures are logged and reported as False;
        callers treat their metadata change as the source of truth.
        """
        if not reference:
            return False
        path = self.resolve(reference)
        if path is None:
            logger.warning("Refusing to delete file outside upload root: %s", reference)
            return False
        try:
            path.unlink()
            return True
        except OSError:
            logger.warning("Could not delete old upload %s", path, exc_info=True)
            return False

    def discard(self, stored: StoredFile) -> None:
        # undo a write whose request failed later on
        try:
            stored.disk_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not discard upload %s", stored.disk_path, exc_info=True)
