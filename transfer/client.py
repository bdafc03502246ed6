"""HTTP client for the chunked upload and recipe sync endpoints."""

import gzip
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Set
from urllib.parse import quote

import httpx

from common.config import Config
from common.constants import (
    API_PREFIX,
    CHUNK_HASH_HEADER,
    REQUEST_ID_HEADER,
    USER_AGENT,
)
from common.exceptions import (
    AuthError,
    IntegrityError,
    NetworkError,
    NotFoundError,
    RequestError,
    ServerError,
    TransferError,
)
from common.logging_config import get_logger
from transfer.retry import FailureKind, RetryPolicy, classify_exception, classify_status

logger = get_logger(__name__)

INTEGRITY_CODES = frozenset({'CHUNK_HASH_MISMATCH', 'CONTENT_HASH_MISMATCH'})


@dataclass(frozen=True)
class CompletionResponse:
    content_hash: str
    version: Optional[str] = None


class TransferClient:
    """HTTP client for the upload protocol with retry logic and error mapping."""

    ERROR_MESSAGES = {
        'INVALID_API_KEY': "Not authenticated. Check your token or run 'set-token <token>'.",
        'SESSION_NOT_FOUND': 'Upload session not found or expired on the server.',
        'MODPACK_NOT_FOUND': 'Modpack or version not found on the server. Check modpack_slug.',
        'INVALID_CHUNK': 'Server rejected the chunk (bad index or size).',
        'CHUNK_HASH_MISMATCH': 'Chunk integrity check failed on the server.',
        'CONTENT_HASH_MISMATCH': 'Upload integrity check failed: server hash does not match.',
        'INCOMPLETE_UPLOAD': 'Server is missing chunks for this upload.',
    }

    STATUS_MESSAGES = {
        400: 'Bad request',
        401: 'Not authenticated',
        403: 'Access forbidden',
        404: 'Not found',
        408: 'Request timed out',
        409: 'Conflict',
        413: 'Payload too large',
        429: 'Too many requests',
        500: 'Server error',
        502: 'Bad gateway',
        503: 'Service unavailable',
    }

    def __init__(
        self,
        config: Config,
        token_supplier: Callable[[], str],
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize transfer client.

        Args:
            config: Configuration instance
            token_supplier: Returns the current bearer token; called on every request
            policy: Retry policy (defaults to one built from config)
            sleep: Sleep function used between retries
        """
        self.config = config
        self.token_supplier = token_supplier
        self.policy = policy or RetryPolicy.from_config(config)
        self.sleep = sleep
        self.session = httpx.Client(
            base_url=config.get_server_url(),
            timeout=config.get_timeout()
        )
        self.request_id: Optional[str] = None
        logger.info(f"Initialized TransferClient [base_url={config.get_server_url()}]")

    def close(self) -> None:
        self.session.close()

    def _version_path(self, version: str) -> str:
        slug = quote(self.config.get_modpack_slug(), safe='')
        return f"{API_PREFIX}/{slug}/versions/{quote(version, safe='')}"

    def _upload_path(self, version: str, session_id: Optional[str] = None) -> str:
        path = f"{self._version_path(version)}/upload"
        if session_id is not None:
            path = f"{path}/{quote(session_id, safe='')}"
        return path

    def _get_auth_header(self) -> dict:
        """
        Get Authorization header with the current bearer token.

        Raises:
            AuthError: If no token is available
        """
        token = self.token_supplier()
        if not token:
            raise AuthError("Not authenticated. Run 'set-token <token>' or set 'auth_token' in the config file.")
        return {'Authorization': f'Bearer {token}'}

    def _request_with_retry(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an HTTP request, retrying retryable failures per the policy.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            Successful (2xx/3xx) response

        Raises:
            TransferError: Subclass matching the terminal failure
        """
        extra_headers = kwargs.pop('headers', {})
        self.request_id = str(uuid.uuid4())
        attempt = 0

        while True:
            attempt += 1
            headers = {
                'User-Agent': USER_AGENT,
                REQUEST_ID_HEADER: self.request_id,
                **extra_headers,
                **self._get_auth_header(),
            }
            logger.debug(f"Making request: {method} {endpoint} attempt={attempt} [request_id={self.request_id}]")

            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)
            except httpx.TransportError as e:
                kind = classify_exception(e)
                decision = self.policy.decide(attempt, kind)
                if decision.should_retry:
                    logger.warning(
                        f"Network error (attempt {attempt}/{self.policy.max_attempts}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {decision.delay}s "
                        f"[request_id={self.request_id}]"
                    )
                    self.sleep(decision.delay)
                    continue
                logger.error(f"Network error (giving up): {method} {endpoint} error={e} [request_id={self.request_id}]")
                raise NetworkError(self._describe_network_error(kind)) from e

            logger.debug(
                f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
            )

            kind = classify_status(response.status_code)
            if kind is None:
                return response

            code = self._error_code(response)
            if code in INTEGRITY_CODES:
                kind = FailureKind.INTEGRITY

            decision = self.policy.decide(attempt, kind)
            if decision.should_retry:
                logger.warning(
                    f"Server error (attempt {attempt}/{self.policy.max_attempts}): "
                    f"{method} {endpoint} status={response.status_code}, retrying in {decision.delay}s "
                    f"[request_id={self.request_id}]"
                )
                self.sleep(decision.delay)
                continue

            logger.warning(
                f"Request failed: {method} {endpoint} status={response.status_code} code={code} "
                f"[request_id={self.request_id}]"
            )
            raise self._to_error(kind, response, code)

    @staticmethod
    def _describe_network_error(kind: FailureKind) -> str:
        if kind is FailureKind.TIMEOUT:
            return "Request timed out. Server may be overloaded."
        return "Cannot connect to server. Check server_url and your network connection."

    @staticmethod
    def _error_code(response: httpx.Response) -> Optional[str]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data.get('code') if isinstance(data, dict) else None

    def _format_error(self, response: httpx.Response, code: Optional[str]) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object
            code: Server error code, if any

        Returns:
            User-friendly error message
        """
        if code in self.ERROR_MESSAGES:
            return self.ERROR_MESSAGES[code]

        try:
            data = response.json()
            detail = data.get('detail') if isinstance(data, dict) else None
        except ValueError:
            detail = None
        detail = detail or response.text or 'Unknown error'

        message = self.STATUS_MESSAGES.get(response.status_code, detail)
        if message != detail and detail != 'Unknown error':
            message = f"{message}: {detail}"
        return f"{message} (Code: {code})" if code else message

    def _to_error(self, kind: FailureKind, response: httpx.Response, code: Optional[str]) -> TransferError:
        message = self._format_error(response, code)
        error_type = {
            FailureKind.AUTH: AuthError,
            FailureKind.NOT_FOUND: NotFoundError,
            FailureKind.INTEGRITY: IntegrityError,
            FailureKind.CLIENT_ERROR: RequestError,
            FailureKind.TIMEOUT: NetworkError,
            FailureKind.THROTTLED: ServerError,
            FailureKind.SERVER_ERROR: ServerError,
        }.get(kind, TransferError)
        return error_type(message, status_code=response.status_code, code=code)

    def start_session(
        self,
        version: str,
        upload_type: str,
        total_size: int,
        chunk_size: int,
        total_chunks: int,
        content_hash: str,
    ) -> str:
        """
        Start a chunked upload session.

        Args:
            version: Modpack version
            upload_type: Payload type ("recipes", "icons", "items")
            total_size: Payload size in bytes
            chunk_size: Chunk size in bytes
            total_chunks: Number of planned chunks
            content_hash: Whole-payload hash

        Returns:
            Server-assigned session id
        """
        response = self._request_with_retry(
            'POST',
            f"{self._upload_path(version)}/start",
            json={
                'type': upload_type,
                'totalSize': total_size,
                'chunkSize': chunk_size,
                'totalChunks': total_chunks,
                'finalHash': content_hash,
            }
        )
        session_id = self._json(response).get('sessionId')
        if not session_id:
            raise ServerError("Server did not return a sessionId", status_code=response.status_code)
        logger.info(f"Started upload session {session_id} [type={upload_type}, chunks={total_chunks}]")
        return session_id

    def get_status(self, version: str, session_id: str) -> Set[int]:
        """
        Query which chunks the server already stores.

        Returns:
            Set of stored chunk indices
        """
        response = self._request_with_retry('GET', f"{self._upload_path(version, session_id)}/status")
        data = self._json(response)
        indices = data.get('uploadedChunks')
        if indices is None:
            indices = data.get('chunksReceived') or []
        return {int(i) for i in indices}

    def send_chunk(self, version: str, session_id: str, index: int, data: bytes, chunk_hash: str) -> None:
        """
        Upload one chunk; safe to repeat with the same bytes.

        Args:
            version: Modpack version
            session_id: Upload session id
            index: 0-based chunk index
            data: Uncompressed chunk bytes
            chunk_hash: Hash of the uncompressed chunk bytes
        """
        headers = {
            'Content-Type': 'application/octet-stream',
            CHUNK_HASH_HEADER: chunk_hash,
        }
        body = data
        if self.config.is_compression_enabled():
            body = gzip.compress(data)
            headers['Content-Encoding'] = 'gzip'

        self._request_with_retry(
            'POST',
            f"{self._upload_path(version, session_id)}/chunk/{index}",
            content=body,
            headers=headers,
        )
        logger.debug(f"Chunk {index} accepted [session={session_id}, bytes={len(data)}]")

    def complete(self, version: str, session_id: str, content_hash: str) -> CompletionResponse:
        """
        Ask the server to reassemble and verify the upload.

        Raises:
            IntegrityError: If the server reports or echoes a different hash
        """
        response = self._request_with_retry(
            'POST',
            f"{self._upload_path(version, session_id)}/complete",
            json={'contentHash': content_hash}
        )
        data = self._json(response)
        if not data.get('success', False):
            raise IntegrityError(
                data.get('detail') or data.get('error') or "Server reported upload verification failure",
                status_code=response.status_code,
                code=data.get('code'),
            )

        server_hash = data.get('contentHash')
        if server_hash and server_hash != content_hash:
            raise IntegrityError(
                f"Content hash mismatch: expected {content_hash}, server computed {server_hash}",
                status_code=response.status_code,
                code='CONTENT_HASH_MISMATCH',
            )
        return CompletionResponse(content_hash=server_hash or content_hash, version=data.get('version'))

    def check_upload_exists(self, version: str, upload_type: str) -> bool:
        """
        Check whether this version already has a completed upload of a type.

        Errors are logged and read as "does not exist".
        """
        try:
            response = self._request_with_retry(
                'GET',
                f"{self._upload_path(version)}/check",
                params={'type': upload_type}
            )
        except TransferError as e:
            logger.warning(f"Could not check existing {upload_type} upload: {e}")
            return False
        return bool(self._json(response).get('exists', False))

    def post_recipe_sync(self, version: str, body: bytes) -> dict:
        """
        Send the single-shot recipe sync request.

        Args:
            version: Modpack version
            body: Serialized JSON body

        Returns:
            Parsed response body (empty dict if not JSON)
        """
        headers = {'Content-Type': 'application/json'}
        if self.config.is_compression_enabled():
            body = gzip.compress(body)
            headers['Content-Encoding'] = 'gzip'

        response = self._request_with_retry(
            'POST',
            f"{self._version_path(version)}/recipes/sync",
            content=body,
            headers=headers,
        )
        return self._json(response)

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
