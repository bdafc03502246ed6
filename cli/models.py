"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class SyncCommand:
    """Extract recipes and sync them to the server."""

    files: tuple[str, ...] = ()
    command: Literal["sync"] = "sync"


@dataclass(frozen=True)
class UploadCommand:
    """Upload a prepared payload file in chunks."""

    file: str
    upload_type: str
    resume: bool = False
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class StatusCommand:
    """Show configuration and sync state."""

    command: Literal["status"] = "status"


@dataclass(frozen=True)
class SetTokenCommand:
    """Store a bearer token."""

    token: str
    command: Literal["set-token"] = "set-token"


@dataclass(frozen=True)
class LogoutCommand:
    """Clear the stored bearer token."""

    command: Literal["logout"] = "logout"


CommandRequest = (
    SyncCommand
    | UploadCommand
    | StatusCommand
    | SetTokenCommand
    | LogoutCommand
)
