"""
Bearer token storage and selection.

The stored token (obtained out of band, e.g. through a device-flow login)
takes precedence over the static token from the config file. Expiry is
re-checked every time a token is requested; there is no implicit refresh.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from common.config import Config
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_AUTH_PATH = Path.home() / '.recipeflow' / 'auth.json'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_instant(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class AuthToken:
    """
    Bearer token with expiry information.

    Attributes:
        access_token: Token sent in the Authorization header
        token_type: Token type reported by the issuer (usually "Bearer")
        expires_at: UTC expiry instant, None if the token never expires
        authenticated_at: UTC instant the token was issued
    """
    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    authenticated_at: Optional[datetime] = None

    @classmethod
    def from_response(cls, access_token: str, token_type: str, expires_in: int) -> 'AuthToken':
        """
        Build a token from an issuer response.

        Args:
            access_token: Issued token
            token_type: Issued token type
            expires_in: Seconds until expiration

        Returns:
            AuthToken stamped with the current time
        """
        now = _utcnow()
        return cls(
            access_token=access_token,
            token_type=token_type or "Bearer",
            expires_at=now + timedelta(seconds=expires_in),
            authenticated_at=now,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or _utcnow()) > self.expires_at

    def expires_within(self, minutes: int, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or _utcnow()) + timedelta(minutes=minutes) > self.expires_at

    def to_json_map(self) -> dict:
        data = {"accessToken": self.access_token, "tokenType": self.token_type}
        if self.expires_at is not None:
            data["expiresAt"] = self.expires_at.isoformat()
        if self.authenticated_at is not None:
            data["authenticatedAt"] = self.authenticated_at.isoformat()
        return data

    @classmethod
    def from_json_map(cls, data: dict) -> 'AuthToken':
        """
        Rebuild a token from its stored form.

        Raises:
            KeyError: If accessToken is missing
            ValueError: If a timestamp cannot be parsed
        """
        return cls(
            access_token=data["accessToken"],
            token_type=data.get("tokenType") or "Bearer",
            expires_at=_parse_instant(data.get("expiresAt")),
            authenticated_at=_parse_instant(data.get("authenticatedAt")),
        )


class AuthStorage:
    """Persists a single AuthToken to a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_AUTH_PATH
        self._lock = threading.Lock()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[AuthToken]:
        """
        Load the stored token.

        Returns:
            AuthToken, or None when missing, unreadable or already expired
        """
        with self._lock:
            if not self.path.exists():
                return None
            try:
                with open(self.path, 'r') as f:
                    token = AuthToken.from_json_map(json.load(f))
            except (json.JSONDecodeError, IOError, KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to read stored token from {self.path}: {e}")
                return None

        if token.is_expired():
            logger.debug("Stored token is expired")
            return None
        return token

    def save(self, token: AuthToken) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(token.to_json_map(), f, indent=2)
        logger.debug(f"Token saved to {self.path}")

    def clear(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()


class AuthProvider:
    """Supplies the current bearer token from storage or config."""

    SOURCE_STORED = "stored token"
    SOURCE_CONFIG = "config file"
    SOURCE_NONE = "not authenticated"

    def __init__(self, storage: AuthStorage, config: Config):
        self.storage = storage
        self.config = config

    def get_auth_token(self) -> str:
        """
        Get the token to send with the next request.

        Returns:
            Stored token if present and unexpired, else the config token, else ""
        """
        token = self.storage.load()
        if token is not None:
            return token.access_token
        return self.config.get_auth_token().strip()

    def __call__(self) -> str:
        return self.get_auth_token()

    def is_authenticated(self) -> bool:
        return bool(self.get_auth_token())

    def get_auth_source(self) -> str:
        if self.storage.load() is not None:
            return self.SOURCE_STORED
        if self.config.get_auth_token().strip():
            return self.SOURCE_CONFIG
        return self.SOURCE_NONE

    def get_token_expiration_info(self, now: Optional[datetime] = None) -> Optional[str]:
        """
        Describe when the stored token expires.

        Returns:
            Human-readable expiry text, or None when no token is stored
        """
        if not self.storage.exists():
            return None
        token = self.storage.load()
        if token is None:
            return "expired"
        if token.expires_at is None:
            return "valid"

        remaining = token.expires_at - (now or _utcnow())
        remaining_hours = int(remaining.total_seconds() // 3600)
        remaining_days = remaining_hours // 24
        if remaining_days > 1:
            return f"expires in {remaining_days} days"
        if remaining_hours > 1:
            return f"expires in {remaining_hours} hours"
        return "expires soon"

    def save_token(self, token: AuthToken) -> None:
        self.storage.save(token)
        logger.info("Stored token saved")

    def clear_token(self) -> None:
        self.storage.clear()
        logger.info("Stored token cleared")
