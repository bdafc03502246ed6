"""
Persistent cache of upload session ids for resume across restarts.

Entries are keyed by slug/version/type and only returned when the payload
size, chunk size and content hash still match, so a changed payload never
resumes into a stale session.
"""

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SESSION_CACHE_PATH = Path.home() / '.recipeflow' / 'sessions.json'


@dataclass(frozen=True)
class SessionCacheEntry:
    """
    Single cached upload session.

    Attributes:
        session_id: Server-assigned session id
        total_size: Payload size the session was started with
        chunk_size: Chunk size the session was started with
        content_hash: Whole-payload hash the session was started with
        saved_at: ISO8601 UTC timestamp of the last save
    """
    session_id: str
    total_size: int
    chunk_size: int
    content_hash: str
    saved_at: str


class SessionCache:
    """Thread-safe JSON file cache of in-flight upload sessions."""

    def __init__(self, cache_path: Optional[Path] = None):
        self._cache_path = Path(cache_path) if cache_path else DEFAULT_SESSION_CACHE_PATH
        self._lock = threading.RLock()
        self._cache: Dict[str, dict] = {}
        self._load_from_disk()

    def get(self, slug: str, version: str, upload_type: str, total_size: int,
            chunk_size: int, content_hash: str) -> Optional[SessionCacheEntry]:
        """
        Look up a resumable session for exactly this payload.

        Returns:
            Matching entry, or None when absent or stale
        """
        key = self._make_key(slug, version, upload_type)
        with self._lock:
            raw = self._cache.get(key)
        if not raw:
            return None

        try:
            entry = SessionCacheEntry(**raw)
        except TypeError as e:
            logger.warning(f"Discarding malformed session cache entry {key}: {e}")
            self.clear(slug, version, upload_type)
            return None

        if (entry.total_size, entry.chunk_size, entry.content_hash) != (total_size, chunk_size, content_hash):
            logger.debug(f"Cached session for {key} does not match current payload")
            return None
        return entry

    def save(self, slug: str, version: str, upload_type: str, session_id: str,
             total_size: int, chunk_size: int, content_hash: str) -> None:
        entry = SessionCacheEntry(
            session_id=session_id,
            total_size=total_size,
            chunk_size=chunk_size,
            content_hash=content_hash,
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            self._cache[self._make_key(slug, version, upload_type)] = asdict(entry)
        self._save_to_disk()

    def clear(self, slug: str, version: str, upload_type: str) -> None:
        with self._lock:
            removed = self._cache.pop(self._make_key(slug, version, upload_type), None)
        if removed is not None:
            self._save_to_disk()

    def _load_from_disk(self) -> None:
        if not self._cache_path.exists():
            return
        try:
            with open(self._cache_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load session cache from {self._cache_path}: {e}, starting empty")
            return
        if isinstance(data, dict):
            with self._lock:
                self._cache = data

    def _save_to_disk(self) -> None:
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                data = dict(self._cache)
                with open(self._cache_path, 'w') as f:
                    json.dump(data, f, indent=2)
        except (IOError, OSError) as e:
            logger.warning(f"Failed to save session cache to {self._cache_path}: {e}, continuing in memory")

    @staticmethod
    def _make_key(slug: str, version: str, upload_type: str) -> str:
        return f"{slug}/{version}/{upload_type}"
