"""Interactive prompt for the sync client."""

import os
import sys
from typing import Callable, Dict, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from common.logging_config import get_logger
from cli.commands import (
    CliContext,
    handle_logout,
    handle_set_token,
    handle_status,
    handle_sync,
    handle_upload,
)
from cli.completer import RecipeFlowCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    LogoutCommand,
    SetTokenCommand,
    StatusCommand,
    SyncCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command

logger = get_logger(__name__)

HANDLERS: Dict[type, Callable] = {
    SyncCommand: handle_sync,
    UploadCommand: handle_upload,
    StatusCommand: handle_status,
    SetTokenCommand: handle_set_token,
    LogoutCommand: handle_logout,
}


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    os.system("cls" if sys.platform == "win32" else "clear")


def show_banner() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def dispatch_command(cmd_obj, ctx: Optional[CliContext] = None) -> str:
    """
    Run the handler registered for a parsed command.

    Args:
        cmd_obj: Command object produced by parse_command
        ctx: Optional CliContext passed through to the handler

    Returns:
        Text to print
    """
    handler = HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj)}"
    return handler(cmd_obj, ctx)


def repl_loop() -> None:
    """Read commands until exit or end of input."""
    session: PromptSession = PromptSession(
        completer=RecipeFlowCompleter(), history=InMemoryHistory(), style=STYLE
    )

    clear_screen()
    show_banner()

    while True:
        try:
            line = session.prompt([("class:prompt", PROMPT_TEXT)]).strip()
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            return

        if not line:
            continue
        if line == "exit":
            print("Goodbye!")
            return
        if line == "help":
            print(HELP_TEXT)
            continue
        if line == "clear":
            clear_screen()
            show_banner()
            continue

        try:
            cmd_obj = parse_command(line)
        except ParseError as e:
            print(f"Error: {e}")
            continue

        logger.debug(f"Dispatching {cmd_obj.command}")
        try:
            print(dispatch_command(cmd_obj))
        except KeyboardInterrupt:
            print("\nInterrupted")
