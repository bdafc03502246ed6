"""Exception hierarchy shared by the sync client components."""

from typing import Optional


class RecipeFlowError(Exception):
    """
    Base exception class for all RecipeFlow errors.
    """
    pass


class ConfigurationError(RecipeFlowError):
    """
    Raised when the server URL, token or modpack slug is missing or malformed.
    """
    pass


class TransferError(RecipeFlowError):
    """
    Base class for failures talking to the remote server.

    Attributes:
        status_code: HTTP status code of the failing response, if any
        code: Server-supplied error code, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class NetworkError(TransferError):
    """
    Raised when a timeout or connection failure outlasts the retry budget.
    """
    pass


class ServerError(TransferError):
    """
    Raised when the server keeps answering with 5xx responses.
    """
    pass


class AuthError(TransferError):
    """
    Raised on 401/403 responses or when no bearer token is available.
    """
    pass


class NotFoundError(TransferError):
    """
    Raised when the modpack, version or upload session does not exist.
    """
    pass


class RequestError(TransferError):
    """
    Raised when the server rejects a request as malformed.
    """
    pass


class IntegrityError(TransferError):
    """
    Raised when a chunk hash or the final content hash does not match.
    """
    pass


class SessionStateError(RecipeFlowError):
    """
    Raised when an upload session is driven through an illegal transition.
    """
    pass


class UploadCancelledError(RecipeFlowError):
    """
    Raised when the caller abandons an in-progress upload.
    """
    pass


class ProviderExtractionError(RecipeFlowError):
    """
    Raised when a recipe provider fails during extraction.
    """

    def __init__(self, provider_id: str, cause: Exception):
        super().__init__(f"Provider '{provider_id}' failed: {cause}")
        self.provider_id = provider_id
        self.cause = cause


class SyncInProgressError(RecipeFlowError):
    """
    Raised when a sync is requested while another one is still running.
    """
    pass
