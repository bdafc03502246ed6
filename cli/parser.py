"""Command parser for CLI input."""

import shlex

from common.constants import UPLOAD_TYPES
from cli.models import (
    CommandRequest,
    LogoutCommand,
    SetTokenCommand,
    StatusCommand,
    SyncCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Sync/Upload/Status/SetToken/Logout)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "sync":
        return _parse_sync(tokens[1:])
    elif command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "status":
        return _parse_no_args(tokens[1:], "status", StatusCommand)
    elif command_name == "set-token":
        return _parse_set_token(tokens[1:])
    elif command_name == "logout":
        return _parse_no_args(tokens[1:], "logout", LogoutCommand)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_sync(args: list[str]) -> SyncCommand:
    """Parse 'sync [recipes.json ...]' command."""
    for arg in args:
        if arg.startswith("-"):
            raise ParseError(f"sync does not accept option {arg}")
    return SyncCommand(files=tuple(args))


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file> <type> [--resume]' command."""
    resume = "--resume" in args
    positional = [arg for arg in args if arg != "--resume"]

    if len(positional) != 2:
        raise ParseError("upload requires exactly 2 arguments: <file> <type> [--resume]")

    file, upload_type = positional
    if upload_type not in UPLOAD_TYPES:
        raise ParseError(f"Unknown upload type: {upload_type} (expected one of {', '.join(UPLOAD_TYPES)})")

    return UploadCommand(file=file, upload_type=upload_type, resume=resume)


def _parse_set_token(args: list[str]) -> SetTokenCommand:
    """Parse 'set-token <token>' command."""
    if len(args) != 1:
        raise ParseError("set-token requires exactly 1 argument: <token>")

    return SetTokenCommand(token=args[0])


def _parse_no_args(args: list[str], name: str, command_type):
    if args:
        raise ParseError(f"{name} takes no arguments")
    return command_type()
