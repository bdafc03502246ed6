"""
Client-side state machine for one chunked upload.

    NOT_STARTED --start()--> IN_PROGRESS --begin_completion()--> COMPLETING --mark_verified()--> VERIFIED
    IN_PROGRESS / COMPLETING --mark_failed()--> FAILED
    IN_PROGRESS --abandon()--> ABANDONED

A resumed session starts IN_PROGRESS but must see record_status() before
it can say which chunks are still pending.
"""

import threading
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional

from common.exceptions import SessionStateError
from common.types import ChunkRange
from transfer.planner import count_chunks


class UploadState(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETING = "completing"
    VERIFIED = "verified"
    FAILED = "failed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.VERIFIED, UploadState.FAILED, UploadState.ABANDONED)


class UploadSession:
    """Tracks one upload's progress; sizes are fixed at construction."""

    def __init__(self, upload_type: str, total_size: int, chunk_size: int):
        self._upload_type = upload_type
        self._total_size = total_size
        self._chunk_size = chunk_size
        self._total_chunks = count_chunks(total_size, chunk_size)
        self._lock = threading.Lock()

        self.session_id: Optional[str] = None
        self.state = UploadState.NOT_STARTED
        self.error_message: Optional[str] = None
        self._uploaded: set = set()
        self._status_known = False

    @classmethod
    def resume(cls, session_id: str, upload_type: str, total_size: int, chunk_size: int) -> 'UploadSession':
        """
        Rebuild a session the server already knows about.

        The returned session needs record_status() before pending_chunks().
        """
        session = cls(upload_type, total_size, chunk_size)
        session.session_id = session_id
        session.state = UploadState.IN_PROGRESS
        return session

    @property
    def upload_type(self) -> str:
        return self._upload_type

    @property
    def total_size(self) -> int:
        return self._total_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def total_chunks(self) -> int:
        return self._total_chunks

    @property
    def uploaded_chunks(self) -> FrozenSet[int]:
        with self._lock:
            return frozenset(self._uploaded)

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return len(self._uploaded) == self._total_chunks

    def start(self, session_id: str) -> None:
        self._require(UploadState.NOT_STARTED)
        self.session_id = session_id
        self.state = UploadState.IN_PROGRESS
        self._status_known = True

    def record_status(self, chunk_indices: Iterable[int]) -> None:
        """
        Replace the known set of chunks stored server-side.

        Raises:
            SessionStateError: If not in progress or an index is out of range
        """
        self._require(UploadState.IN_PROGRESS)
        indices = set(chunk_indices)
        invalid = sorted(i for i in indices if not 0 <= i < self._total_chunks)
        if invalid:
            raise SessionStateError(
                f"Server reported chunk indices {invalid} outside 0..{self._total_chunks - 1}"
            )
        with self._lock:
            self._uploaded = indices
            self._status_known = True

    def pending_chunks(self, plan: List[ChunkRange]) -> List[ChunkRange]:
        """
        Chunks from the plan that the server does not have yet.

        Raises:
            SessionStateError: If a resumed session has not recorded status
        """
        self._require(UploadState.IN_PROGRESS)
        if not self._status_known:
            raise SessionStateError("Resumed session must query status before sending chunks")
        with self._lock:
            return [chunk for chunk in plan if chunk.index not in self._uploaded]

    def mark_chunk_sent(self, index: int) -> None:
        self._require(UploadState.IN_PROGRESS)
        if not 0 <= index < self._total_chunks:
            raise SessionStateError(f"Chunk index {index} out of range")
        with self._lock:
            self._uploaded.add(index)

    def begin_completion(self) -> None:
        self._require(UploadState.IN_PROGRESS)
        if not self.is_complete:
            missing = self._total_chunks - len(self.uploaded_chunks)
            raise SessionStateError(f"Cannot complete upload with {missing} chunk(s) missing")
        self.state = UploadState.COMPLETING

    def mark_verified(self) -> None:
        self._require(UploadState.COMPLETING)
        self.state = UploadState.VERIFIED

    def mark_failed(self, message: str) -> None:
        if self.state.is_terminal:
            raise SessionStateError(f"Session already {self.state.value}")
        self.error_message = message
        self.state = UploadState.FAILED

    def abandon(self) -> None:
        if self.state.is_terminal:
            raise SessionStateError(f"Session already {self.state.value}")
        self.state = UploadState.ABANDONED

    def _require(self, *states: UploadState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise SessionStateError(f"Session is {self.state.value}, expected {expected}")

    def __repr__(self) -> str:
        return (
            f"UploadSession(id={self.session_id!r}, type={self._upload_type!r}, "
            f"state={self.state.value}, chunks={len(self._uploaded)}/{self._total_chunks})"
        )
