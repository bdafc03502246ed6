"""Custom exception classes for the reference upload server."""

from typing import Optional


class UploadServerError(Exception):
    """
    Base exception class for all upload server errors.

    Subclasses carry the HTTP status and error code the API reports.
    """
    status_code = 500
    code = "INTERNAL_ERROR"


class InvalidAPIKeyError(UploadServerError):
    """
    Raised when the bearer token is missing or not accepted.
    """
    status_code = 401
    code = "INVALID_API_KEY"


class SessionNotFoundError(UploadServerError):
    """
    Raised when an upload session id is unknown or expired.
    """
    status_code = 404
    code = "SESSION_NOT_FOUND"


class InvalidRequestError(UploadServerError):
    """
    Raised when a request body cannot be parsed or fails validation.
    """
    status_code = 400
    code = "INVALID_REQUEST"


class InvalidChunkError(UploadServerError):
    """
    Raised when a chunk index is out of range or its size is wrong.
    """
    status_code = 400
    code = "INVALID_CHUNK"


class ChunkHashMismatchError(UploadServerError):
    """
    Raised when a chunk does not match its X-Chunk-Hash header.
    """
    status_code = 422
    code = "CHUNK_HASH_MISMATCH"


class IncompleteUploadError(UploadServerError):
    """
    Raised when completion is requested before every chunk arrived.
    """
    status_code = 409
    code = "INCOMPLETE_UPLOAD"


class ContentHashMismatchError(UploadServerError):
    """
    Raised when the reassembled payload does not match the client's hash.
    """
    status_code = 409
    code = "CONTENT_HASH_MISMATCH"

    def __init__(self, message: str, server_hash: Optional[str] = None):
        super().__init__(message)
        self.server_hash = server_hash
