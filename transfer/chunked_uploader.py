"""
Chunked upload orchestration: start or resume, send pending chunks, complete.

The skip decision for each chunk is made from the last status query before
any chunk is dispatched. complete() is only called once every dispatched
send has resolved, and any failure aborts the whole upload.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from common.config import Config
from common.exceptions import (
    ConfigurationError,
    IntegrityError,
    NotFoundError,
    RecipeFlowError,
    SessionStateError,
    UploadCancelledError,
)
from common.hashing import compute_hash
from common.logging_config import get_logger
from common.types import ChunkRange
from transfer.client import TransferClient
from transfer.planner import plan_chunks, slice_chunk
from transfer.results import UploadResult
from transfer.session import UploadSession
from transfer.session_cache import SessionCache

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]

PROGRESS_TOTAL = 100
PROGRESS_SESSION_READY = 5
PROGRESS_CHUNKS_START = 10
PROGRESS_CHUNKS_END = 90
PROGRESS_COMPLETING = 95


class ChunkedUploader:
    """Uploads one payload through the start/status/chunk/complete protocol."""

    def __init__(
        self,
        config: Config,
        client: TransferClient,
        chunk_size: Optional[int] = None,
        max_workers: Optional[int] = None,
        session_cache: Optional[SessionCache] = None,
    ):
        """
        Initialize chunked uploader.

        Args:
            config: Configuration instance
            client: Transfer client used for every request
            chunk_size: Fixed chunk size; defaults to the configured size per payload type
            max_workers: Parallel chunk sends; defaults to config max_parallel_chunks
            session_cache: Optional cache used to resume sessions across restarts
        """
        if chunk_size is not None and chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.config = config
        self.client = client
        self.chunk_size = chunk_size
        self.max_workers = max_workers or config.get_max_parallel_chunks()
        self.session_cache = session_cache

    def upload(
        self,
        data: bytes,
        version: str,
        upload_type: str,
        callback: Optional[ProgressCallback] = None,
        resume_session_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> UploadResult:
        """
        Upload a payload in chunks.

        Args:
            data: Complete payload bytes
            version: Modpack version
            upload_type: Payload type ("recipes", "icons", "items")
            callback: Optional progress hook called with (current, total, message)
            resume_session_id: Session to resume; otherwise the cache is consulted
            cancel_event: Set by the caller to abandon the upload

        Returns:
            UploadResult; failures keep the session id for a later resume
        """
        content_hash = compute_hash(data)
        cancel_event = cancel_event or threading.Event()
        session: Optional[UploadSession] = None

        try:
            try:
                chunk_size = self.chunk_size or self.config.get_chunk_size(upload_type)
                plan = plan_chunks(len(data), chunk_size)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid chunk size for {upload_type}: {e}")

            logger.info(
                f"Uploading {upload_type}: {len(data)} bytes in {len(plan)} chunk(s) of {chunk_size} [hash={content_hash}]"
            )
            self._progress(callback, 0, f"Preparing {upload_type} upload...")

            session = self._open_session(
                version, upload_type, len(data), chunk_size, content_hash, resume_session_id
            )
            self._progress(callback, PROGRESS_SESSION_READY, "Checking upload status...")

            pending = session.pending_chunks(plan)
            skipped = len(plan) - len(pending)
            if skipped:
                logger.info(f"Resuming session {session.session_id}: {skipped}/{len(plan)} chunk(s) already on server")

            bytes_sent = self._send_chunks(session, version, data, plan, pending, callback, cancel_event)

            if cancel_event.is_set():
                raise UploadCancelledError("Upload cancelled")

            self._progress(callback, PROGRESS_COMPLETING, "Verifying upload...")
            session.begin_completion()
            completion = self.client.complete(version, session.session_id, content_hash)
            session.mark_verified()
            self._forget_session(version, upload_type)

            self._progress(callback, PROGRESS_TOTAL, "Upload complete")
            logger.info(f"Upload verified [session={session.session_id}, hash={completion.content_hash}]")
            return UploadResult.succeeded(
                session_id=session.session_id,
                chunks_uploaded=len(pending),
                chunks_skipped=skipped,
                bytes_uploaded=bytes_sent,
                content_hash=completion.content_hash,
                version=completion.version,
            )

        except UploadCancelledError:
            session_id = session.session_id if session else None
            if session is not None and not session.state.is_terminal:
                session.abandon()
            logger.info(f"Upload abandoned by caller [session={session_id}]")
            return UploadResult.cancelled_result(session_id, self._sent_count(session))

        except RecipeFlowError as e:
            session_id = session.session_id if session else None
            if session is not None and not session.state.is_terminal:
                session.mark_failed(str(e))
            if isinstance(e, IntegrityError):
                self._forget_session(version, upload_type)
            logger.error(f"Upload failed [session={session_id}]: {e}")
            logger.debug("Upload failure detail", exc_info=True)
            return UploadResult.error(str(e), e, session_id, self._sent_count(session))

    def _open_session(
        self,
        version: str,
        upload_type: str,
        total_size: int,
        chunk_size: int,
        content_hash: str,
        resume_session_id: Optional[str],
    ) -> UploadSession:
        slug = self.config.get_modpack_slug()
        if resume_session_id is None and self.session_cache is not None:
            entry = self.session_cache.get(slug, version, upload_type, total_size, chunk_size, content_hash)
            if entry is not None:
                resume_session_id = entry.session_id

        if resume_session_id is not None:
            session = UploadSession.resume(resume_session_id, upload_type, total_size, chunk_size)
            try:
                session.record_status(self.client.get_status(version, resume_session_id))
                return session
            except (NotFoundError, SessionStateError) as e:
                logger.warning(f"Cannot resume session {resume_session_id} ({e}), starting a new one")
                self._forget_session(version, upload_type)

        session = UploadSession(upload_type, total_size, chunk_size)
        session_id = self.client.start_session(
            version, upload_type, total_size, chunk_size, session.total_chunks, content_hash
        )
        session.start(session_id)
        if self.session_cache is not None:
            self.session_cache.save(slug, version, upload_type, session_id, total_size, chunk_size, content_hash)
        return session

    def _send_chunks(
        self,
        session: UploadSession,
        version: str,
        data: bytes,
        plan: List[ChunkRange],
        pending: List[ChunkRange],
        callback: Optional[ProgressCallback],
        cancel_event: threading.Event,
    ) -> int:
        """
        Send every pending chunk; returns the number of bytes sent.

        Raises the first failure once all dispatched sends have resolved.
        """
        lock = threading.Lock()
        abort = threading.Event()
        state = {'bytes': 0, 'done': len(plan) - len(pending)}
        span = PROGRESS_CHUNKS_END - PROGRESS_CHUNKS_START

        def send(chunk: ChunkRange) -> None:
            if cancel_event.is_set():
                raise UploadCancelledError("Upload cancelled")
            if abort.is_set():
                return
            chunk_data = slice_chunk(data, chunk)
            self.client.send_chunk(version, session.session_id, chunk.index, chunk_data, compute_hash(chunk_data))
            session.mark_chunk_sent(chunk.index)
            # Count and report together so progress lines never go backwards
            with lock:
                state['bytes'] += len(chunk_data)
                state['done'] += 1
                done = state['done']
                self._progress(
                    callback,
                    PROGRESS_CHUNKS_START + span * done // max(len(plan), 1),
                    f"Uploaded chunk {done}/{len(plan)}",
                )

        if self.max_workers <= 1 or len(pending) <= 1:
            for chunk in pending:
                send(chunk)
            return state['bytes']

        def guarded(chunk: ChunkRange) -> None:
            try:
                send(chunk)
            except Exception:
                abort.set()
                raise

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='chunk-upload') as executor:
            futures = [executor.submit(guarded, chunk) for chunk in pending]

        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            cancelled = [e for e in errors if isinstance(e, UploadCancelledError)]
            raise cancelled[0] if cancelled else errors[0]
        return state['bytes']

    def _forget_session(self, version: str, upload_type: str) -> None:
        if self.session_cache is not None:
            self.session_cache.clear(self.config.get_modpack_slug(), version, upload_type)

    @staticmethod
    def _sent_count(session: Optional[UploadSession]) -> int:
        return len(session.uploaded_chunks) if session is not None else 0

    @staticmethod
    def _progress(callback: Optional[ProgressCallback], current: int, message: str) -> None:
        if callback is None:
            return
        try:
            callback(current, PROGRESS_TOTAL, message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
