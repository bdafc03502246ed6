"""
In-memory upload session storage with idempotent chunk writes.

Chunks are addressed by index, so re-sending a chunk replaces the stored
bytes instead of appending. Completion reassembles chunks in index order
and compares the server-computed hash with the client's content hash.
"""

import gzip
import threading
import time
import uuid
import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from common.hashing import IncrementalHasher, compute_hash
from common.logging_config import get_logger
from server.exceptions import (
    ChunkHashMismatchError,
    ContentHashMismatchError,
    IncompleteUploadError,
    InvalidChunkError,
    InvalidRequestError,
    SessionNotFoundError,
)

logger = get_logger(__name__)


@dataclass
class StoredSession:
    session_id: str
    slug: str
    version: str
    upload_type: str
    total_size: int
    chunk_size: int
    total_chunks: int
    final_hash: Optional[str]
    created_at: float
    chunks: Dict[int, bytes] = field(default_factory=dict)
    content_hash: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.content_hash is not None

    def expected_size(self, index: int) -> int:
        if index < self.total_chunks - 1:
            return self.chunk_size
        return self.total_size - self.chunk_size * (self.total_chunks - 1)


@dataclass(frozen=True)
class CompletedUpload:
    session_id: str
    content_hash: str
    data: bytes
    completed_at: float


def decode_body(body: bytes, content_encoding: Optional[str]) -> bytes:
    """
    Undo the declared request content encoding.

    Raises:
        InvalidRequestError: If the encoding is unsupported or the body is corrupt
    """
    encoding = (content_encoding or "identity").strip().lower()
    if encoding in ("", "identity"):
        return body
    if encoding != "gzip":
        raise InvalidRequestError(f"Unsupported content encoding: {content_encoding}")
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as e:
        raise InvalidRequestError(f"Invalid gzip body: {e}")


class UploadSessionStore:
    """Thread-safe in-memory store of upload sessions and completed payloads."""

    def __init__(self, verify_chunk_hashes: bool = True, clock=time.time):
        self.verify_chunk_hashes = verify_chunk_hashes
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, StoredSession] = {}
        self._completed: Dict[Tuple[str, str, str], CompletedUpload] = {}

    def start_session(
        self,
        slug: str,
        version: str,
        upload_type: str,
        total_size: int,
        chunk_size: int,
        total_chunks: Optional[int] = None,
        final_hash: Optional[str] = None,
    ) -> StoredSession:
        """
        Allocate a new upload session.

        Raises:
            InvalidRequestError: If sizes are invalid or totalChunks disagrees with them
        """
        if chunk_size <= 0 or total_size < 0:
            raise InvalidRequestError("chunkSize must be positive and totalSize not negative")
        expected_chunks = (total_size + chunk_size - 1) // chunk_size
        if total_chunks is not None and total_chunks != expected_chunks:
            raise InvalidRequestError(
                f"totalChunks {total_chunks} does not match {expected_chunks} for the given sizes"
            )

        session = StoredSession(
            session_id=str(uuid.uuid4()),
            slug=slug,
            version=version,
            upload_type=upload_type,
            total_size=total_size,
            chunk_size=chunk_size,
            total_chunks=expected_chunks,
            final_hash=final_hash,
            created_at=self._clock(),
        )
        with self._lock:
            self._sessions[session.session_id] = session

        logger.info(
            f"Upload session started: {session.session_id} [{slug}/{version}/{upload_type}, "
            f"size={total_size}, chunks={expected_chunks}]"
        )
        return session

    def get_session(self, session_id: str, slug: str, version: str) -> StoredSession:
        """
        Look up a session scoped to a modpack version.

        Raises:
            SessionNotFoundError: If unknown or bound to a different slug/version
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.slug != slug or session.version != version:
            raise SessionNotFoundError(f"Upload session {session_id} not found")
        return session

    def get_status(self, session_id: str, slug: str, version: str) -> List[int]:
        session = self.get_session(session_id, slug, version)
        if session.completed:
            return list(range(session.total_chunks))
        with self._lock:
            return sorted(session.chunks)

    def put_chunk(
        self,
        session_id: str,
        slug: str,
        version: str,
        index: int,
        body: bytes,
        chunk_hash: Optional[str] = None,
        content_encoding: Optional[str] = None,
    ) -> bool:
        """
        Store one chunk.

        Returns:
            True if identical bytes were already stored for this index

        Raises:
            SessionNotFoundError: If the session is unknown
            InvalidChunkError: If the index or size is wrong, or the upload is already complete
            ChunkHashMismatchError: If the bytes do not match chunk_hash
        """
        session = self.get_session(session_id, slug, version)
        if session.completed:
            raise InvalidChunkError(f"Upload session {session_id} is already complete")
        if not 0 <= index < session.total_chunks:
            raise InvalidChunkError(f"Chunk index {index} out of range 0..{session.total_chunks - 1}")

        data = decode_body(body, content_encoding)
        expected_size = session.expected_size(index)
        if len(data) != expected_size:
            raise InvalidChunkError(f"Chunk {index} has {len(data)} bytes, expected {expected_size}")

        if self.verify_chunk_hashes and chunk_hash:
            actual = compute_hash(data)
            if actual != chunk_hash.strip():
                raise ChunkHashMismatchError(f"Chunk {index} hash mismatch: header {chunk_hash}, computed {actual}")

        # Re-checked under the lock: complete() clears chunks once it wins
        with self._lock:
            if session.completed:
                raise InvalidChunkError(f"Upload session {session_id} is already complete")
            previous = session.chunks.get(index)
            session.chunks[index] = data

        if previous is not None and previous != data:
            logger.warning(f"Chunk {index} of session {session_id} replaced with different bytes")
        return previous == data

    def complete(self, session_id: str, slug: str, version: str, content_hash: str) -> CompletedUpload:
        """
        Reassemble and verify an upload.

        Raises:
            IncompleteUploadError: If chunks are missing
            ContentHashMismatchError: If the reassembled hash differs from the client's
        """
        session = self.get_session(session_id, slug, version)
        key = (slug, version, session.upload_type)

        if session.completed:
            with self._lock:
                completed = self._completed.get(key)
            if session.content_hash == content_hash and completed and completed.session_id == session_id:
                return completed
            raise ContentHashMismatchError("Upload already completed with a different hash", session.content_hash)

        with self._lock:
            missing = [i for i in range(session.total_chunks) if i not in session.chunks]
            if missing:
                raise IncompleteUploadError(f"Missing {len(missing)} chunk(s), first missing index {missing[0]}")
            ordered = [session.chunks[i] for i in range(session.total_chunks)]

        hasher = IncrementalHasher()
        for chunk in ordered:
            hasher.update(chunk)
        server_hash = hasher.finalize()

        if server_hash != content_hash or (session.final_hash and server_hash != session.final_hash):
            logger.warning(
                f"Content hash mismatch for session {session_id}: client {content_hash}, server {server_hash}"
            )
            raise ContentHashMismatchError(
                f"Content hash mismatch: client sent {content_hash}, server computed {server_hash}",
                server_hash,
            )

        completed = CompletedUpload(
            session_id=session_id,
            content_hash=server_hash,
            data=b"".join(ordered),
            completed_at=self._clock(),
        )
        with self._lock:
            if session.completed:
                # A concurrent complete() for the same session got here first
                return self._completed.get(key) or completed
            session.content_hash = server_hash
            session.chunks.clear()
            self._completed[key] = completed

        logger.info(f"Upload session completed: {session_id} [hash={server_hash}]")
        return completed

    def check_exists(self, slug: str, version: str, upload_type: str) -> bool:
        with self._lock:
            return (slug, version, upload_type) in self._completed

    def get_completed(self, slug: str, version: str, upload_type: str) -> Optional[CompletedUpload]:
        with self._lock:
            return self._completed.get((slug, version, upload_type))

    def expire_stale(self, ttl_seconds: float) -> int:
        """
        Drop sessions and completed payloads older than the TTL.

        An expired payload no longer counts for check_exists, so clients
        upload it again.

        Returns:
            Number of sessions removed
        """
        cutoff = self._clock() - ttl_seconds
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if s.created_at < cutoff]
            for session_id in stale:
                del self._sessions[session_id]
            expired = [key for key, c in self._completed.items() if c.completed_at < cutoff]
            for key in expired:
                del self._completed[key]
        if stale or expired:
            logger.info(f"Expired {len(stale)} stale upload session(s) and {len(expired)} completed payload(s)")
        return len(stale)
