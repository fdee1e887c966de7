"""
Evidence file storage for SafeGuard
Handles upload validation, storage and checksumming
"""
import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from safeguard.core.config import settings
from safeguard.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileTooLargeError(ValidationError):
    status_code = 413


@dataclass(frozen=True)
class StoredFile:
    path: str
    checksum: str
    size: int
    original_name: str


def safe_filename(name: str) -> str:
    """Strip any directory part and replace characters that are unsafe on disk."""
    base = Path(name.replace("\\", "/")).name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "upload"


class EvidenceFileStore:
    """Stores evidence files under ``<root>/YYYY/MM/<uuid>_<name>``"""

    def __init__(
        self,
        root: Optional[str] = None,
        max_size: Optional[int] = None,
        allowed_extensions: Optional[Iterable[str]] = None,
    ):
        self.root = Path(root or settings.EVIDENCE_DIR)
        self.max_size = max_size or settings.MAX_FILE_SIZE
        self.allowed_extensions = {
            ext.lower().lstrip(".") for ext in (allowed_extensions or settings.ALLOWED_EVIDENCE_EXTENSIONS)
        }
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Evidence store initialized. Root directory: {self.root}")

    def validate_name(self, filename: Optional[str]) -> str:
        if not filename:
            raise ValidationError("Uploaded file has no name")
        ext = Path(filename).suffix.lower().lstrip(".")
        if ext not in self.allowed_extensions:
            raise ValidationError(f"File type .{ext or '?'} not allowed for {filename}")
        return filename

    def _target_for(self, filename: str, now: datetime) -> Path:
        folder = self.root / f"{now:%Y}" / f"{now:%m}"
        folder.mkdir(parents=True, exist_ok=True)
        return folder / f"{uuid.uuid4().hex}_{safe_filename(filename)}"

    async def save(self, upload_file: UploadFile) -> StoredFile:
        """
        Stream an upload to disk, hashing it on the way

        Raises:
            ValidationError for a disallowed extension
            FileTooLargeError once the size limit is crossed (the partial file is removed)
        """
        filename = self.validate_name(upload_file.filename)
        target = self._target_for(filename, datetime.utcnow())

        digest = hashlib.sha256()
        size = 0
        try:
            with open(target, "wb") as buffer:
                while True:
                    chunk = await upload_file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_size:
                        raise FileTooLargeError(
                            f"File {filename} exceeds maximum size of {self.max_size / (1024 * 1024):.0f}MB"
                        )
                    digest.update(chunk)
                    buffer.write(chunk)
        except FileTooLargeError:
            target.unlink(missing_ok=True)
            raise

        logger.info(f"Stored evidence file {filename} ({size} bytes) at {target}")
        return StoredFile(path=str(target), checksum=digest.hexdigest(), size=size, original_name=filename)

    def delete(self, path: str) -> bool:
        target = Path(path)
        try:
            target.resolve().relative_to(self.root.resolve())
        except ValueError:
            raise ValidationError(f"{path} is outside the evidence store")
        if not target.exists():
            return False
        target.unlink()
        logger.info(f"Removed evidence file: {target}")
        return True
