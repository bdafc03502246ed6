"""Outcome types reported by the uploader and the recipe exporter."""

from dataclasses import dataclass
from typing import Optional


def format_bytes(size_bytes: int) -> str:
    """
    Format a byte count using binary units.

    Args:
        size_bytes: Number of bytes

    Returns:
        Formatted string (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = size_bytes / 1024.0
    for unit in ('KiB', 'MiB', 'GiB', 'TiB'):
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PiB"


@dataclass(frozen=True)
class UploadResult:
    """
    Result of a chunked upload.

    A failed result keeps the session id so the caller can resume later.
    """
    success: bool
    session_id: Optional[str] = None
    chunks_uploaded: int = 0
    chunks_skipped: int = 0
    bytes_uploaded: int = 0
    content_hash: Optional[str] = None
    version: Optional[str] = None
    error_message: Optional[str] = None
    exception: Optional[BaseException] = None
    cancelled: bool = False

    @classmethod
    def succeeded(
        cls,
        session_id: str,
        chunks_uploaded: int,
        chunks_skipped: int,
        bytes_uploaded: int,
        content_hash: str,
        version: Optional[str] = None,
    ) -> 'UploadResult':
        return cls(
            success=True,
            session_id=session_id,
            chunks_uploaded=chunks_uploaded,
            chunks_skipped=chunks_skipped,
            bytes_uploaded=bytes_uploaded,
            content_hash=content_hash,
            version=version,
        )

    @classmethod
    def error(
        cls,
        message: str,
        exception: Optional[BaseException] = None,
        session_id: Optional[str] = None,
        chunks_uploaded: int = 0,
    ) -> 'UploadResult':
        return cls(
            success=False,
            session_id=session_id,
            chunks_uploaded=chunks_uploaded,
            error_message=message,
            exception=exception,
        )

    @classmethod
    def cancelled_result(cls, session_id: Optional[str], chunks_uploaded: int = 0) -> 'UploadResult':
        return cls(
            success=False,
            session_id=session_id,
            chunks_uploaded=chunks_uploaded,
            error_message="Upload cancelled",
            cancelled=True,
        )

    @property
    def summary(self) -> str:
        if self.success:
            skipped = f", {self.chunks_skipped} already on server" if self.chunks_skipped else ""
            return (
                f"Uploaded {self.chunks_uploaded} chunk(s) ({format_bytes(self.bytes_uploaded)}){skipped}"
            )
        if self.cancelled:
            return f"Upload cancelled after {self.chunks_uploaded} chunk(s)"
        return f"Upload failed: {self.error_message}"


@dataclass(frozen=True)
class ExportResult:
    """Result of a recipe sync with server-side change statistics."""
    success: bool
    received: int = 0
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    content_hash: Optional[str] = None
    version: Optional[str] = None
    error_message: Optional[str] = None
    exception: Optional[BaseException] = None

    @classmethod
    def succeeded(cls, received: int, new: int = 0, updated: int = 0, unchanged: int = 0,
                  content_hash: Optional[str] = None, version: Optional[str] = None) -> 'ExportResult':
        return cls(
            success=True,
            received=received,
            new=new,
            updated=updated,
            unchanged=unchanged,
            content_hash=content_hash,
            version=version,
        )

    @classmethod
    def error(cls, message: str, exception: Optional[BaseException] = None) -> 'ExportResult':
        return cls(success=False, error_message=message, exception=exception)

    @property
    def summary(self) -> str:
        if not self.success:
            return f"Sync failed: {self.error_message}"
        return (
            f"Synced {self.received} recipes: {self.new} new, "
            f"{self.updated} updated, {self.unchanged} unchanged"
        )
