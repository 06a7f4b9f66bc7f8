"""File storage for listing media.

Uploaded files are written under a single flat directory with a random name,
and the caller gets back a stable reference (``<url prefix>/<stored name>``)
that is what MediaAsset.file_path records. Deleting takes the same reference.

Filesystem calls are blocking, so they run in ``asyncio.to_thread`` to keep
the event loop free.
"""
import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol

from app.config import settings
from app.core.exceptions import StorageError, ValidationError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadedBlob:
    """An uploaded file, independent of the transport it arrived on."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.content

    @property
    def extension(self) -> str:
        name = self.filename or ""
        return "." + name.rsplit(".", 1)[-1].lower() if "." in name else ""


class FileStorage(Protocol):
    def validate(self, blob: UploadedBlob) -> None: ...

    async def store(self, blob: UploadedBlob) -> str: ...

    async def delete(self, path: str) -> bool: ...


class LocalFileStorage:
    """Stores blobs on the local filesystem under ``root``."""

    def __init__(
        self,
        root: str | Path,
        url_prefix: str = "/uploads",
        max_bytes: int = 10 * 1024 * 1024,
        allowed_extensions: Optional[Iterable[str]] = None,
    ):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_extensions = set(allowed_extensions) if allowed_extensions else None

    def validate(self, blob: UploadedBlob) -> None:
        if self.allowed_extensions is not None and blob.extension not in self.allowed_extensions:
            raise ValidationError(
                f"File type '{blob.extension or blob.filename}' is not allowed",
                detail={"allowed": sorted(self.allowed_extensions)},
            )
        if len(blob.content) > self.max_bytes:
            raise ValidationError(
                f"File '{blob.filename}' exceeds the maximum size of {self.max_bytes // (1024 * 1024)}MB"
            )

    def _resolve(self, path: str) -> Path:
        # Only the trailing name is trusted; references never point outside root.
        name = path.rsplit("/", 1)[-1]
        if not name or name in (".", ".."):
            raise StorageError(f"Invalid storage reference: {path!r}")
        return self.root / name

    def _write(self, name: str, content: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(content)

    def _unlink(self, target: Path) -> bool:
        if target.exists():
            target.unlink()
            return True
        return False

    async def store(self, blob: UploadedBlob) -> str:
        self.validate(blob)
        name = f"{uuid.uuid4().hex}{blob.extension}"
        try:
            await asyncio.to_thread(self._write, name, blob.content)
        except OSError as e:
            raise StorageError(f"Failed to store file '{blob.filename}': {e}") from e
        path = f"{self.url_prefix}/{name}"
        logger.info("Stored upload %s (%d bytes)", blob.filename, len(blob.content), extra={"path": path})
        return path

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        try:
            removed = await asyncio.to_thread(self._unlink, target)
        except OSError as e:
            raise StorageError(f"Failed to delete file '{path}': {e}") from e
        if removed:
            logger.info("Deleted stored file", extra={"path": path})
        return removed


def build_file_storage() -> LocalFileStorage:
    """Build the configured storage backend."""
    return LocalFileStorage(
        root=settings.upload_dir,
        url_prefix=settings.upload_url_prefix,
        max_bytes=settings.max_upload_bytes,
        allowed_extensions=settings.allowed_upload_extensions,
    )
