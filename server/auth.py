"""Bearer token authentication for the upload server."""

from typing import Optional

from fastapi import Header, Request

from server.exceptions import InvalidAPIKeyError


async def get_current_token(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> str:
    """
    FastAPI dependency to validate the bearer token.

    Args:
        request: Incoming request (the app state holds accepted tokens)
        authorization: Authorization header value (format: "Bearer <token>")

    Returns:
        The accepted token

    Raises:
        InvalidAPIKeyError: If the header is missing, malformed or not accepted
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidAPIKeyError("Missing or malformed authorization header")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise InvalidAPIKeyError("Empty bearer token")

    accepted = getattr(request.app.state, 'api_tokens', frozenset())
    if accepted and token not in accepted:
        raise InvalidAPIKeyError("Token not accepted")

    request.state.token = token
    return token
