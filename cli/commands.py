"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Callable, Iterable, Optional

from common.auth import AuthProvider, AuthStorage
from common.config import Config
from common.constants import PRIORITY_MOD_API
from common.logging_config import get_logger
from recipes.provider import JsonFileRecipeProvider
from recipes.registry import ProviderRegistry
from transfer.client import TransferClient
from transfer.session_cache import SessionCache
from cli.models import (
    LogoutCommand,
    SetTokenCommand,
    StatusCommand,
    SyncCommand,
    UploadCommand,
)
from cli.sync import SyncOrchestrator
from cli.utils import ConsoleReporter

logger = get_logger(__name__)


class CliContext:
    """Shared state for command handlers: config, auth and the transfer client."""

    def __init__(
        self,
        config: Config,
        auth_provider: Optional[AuthProvider] = None,
        session_cache: Optional[SessionCache] = None,
        transfer_client: Optional[TransferClient] = None,
        reporter: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the context.

        Args:
            config: Configuration instance
            auth_provider: Token source (stored token next to the config file if None)
            session_cache: Upload session cache (next to the config file if None)
            transfer_client: Client to reuse (created on first use if None)
            reporter: Receives progress lines (console output if None)
        """
        config_dir = config.config_path.parent
        self.config = config
        self.auth_provider = auth_provider or AuthProvider(AuthStorage(config_dir / 'auth.json'), config)
        self.session_cache = session_cache or SessionCache(config_dir / 'sessions.json')
        self._transfer_client = transfer_client
        self.reporter = reporter or ConsoleReporter()

    @property
    def transfer_client(self) -> TransferClient:
        if self._transfer_client is None:
            logger.debug("Creating new TransferClient instance")
            self._transfer_client = TransferClient(self.config, self.auth_provider)
        return self._transfer_client

    def reset_client(self) -> None:
        """Drop the cached client so the next command picks up config changes."""
        if self._transfer_client is not None:
            self._transfer_client.close()
            self._transfer_client = None

    def build_registry(self, files: Iterable[str] = ()) -> ProviderRegistry:
        """
        Build a provider registry from command-line and configured recipe files.

        Command-line files are registered first at the highest priority, so
        they win dedup against configured sources.
        """
        registry = ProviderRegistry()
        for file in files:
            registry.register(JsonFileRecipeProvider(Path(file), PRIORITY_MOD_API))
        for path, priority in self.config.get_recipe_sources():
            registry.register(JsonFileRecipeProvider(path, priority))
        return registry

    def orchestrator(self, files: Iterable[str] = ()) -> SyncOrchestrator:
        return SyncOrchestrator(
            self.config,
            self.auth_provider,
            self.build_registry(files),
            transfer_client=self.transfer_client,
            session_cache=self.session_cache,
            reporter=self.reporter,
        )


_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """
    Get or create global CliContext instance.

    Returns:
        CliContext instance
    """
    global _context
    if _context is None:
        logger.debug("Creating new CliContext instance")
        _context = CliContext(Config(Path.home() / '.recipeflow' / 'config.json'))
    return _context


def handle_sync(cmd: SyncCommand, ctx: Optional[CliContext] = None) -> str:
    """
    Handle 'sync' command.

    Args:
        cmd: SyncCommand with optional recipe files
        ctx: Optional CliContext for dependency injection (testing)

    Returns:
        One-line sync summary
    """
    logger.info(f"Executing sync command: {len(cmd.files)} file(s)")
    if ctx is None:
        ctx = get_context()

    missing = [file for file in cmd.files if not Path(file).is_file()]
    if missing:
        return f"Error: File not found: {', '.join(missing)}"

    report = ctx.orchestrator(cmd.files).run()
    logger.debug(f"Sync command completed [success={report.success}]")
    return report.summary


def handle_upload(cmd: UploadCommand, ctx: Optional[CliContext] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file, payload type and resume flag
        ctx: Optional CliContext for dependency injection (testing)

    Returns:
        One-line upload summary
    """
    logger.info(f"Executing upload command: {cmd.file} as {cmd.upload_type} [resume={cmd.resume}]")
    if ctx is None:
        ctx = get_context()

    path = Path(cmd.file)
    if not (path.is_file() or (cmd.upload_type == "icons" and path.is_dir())):
        return f"Error: File not found: {cmd.file}"

    report = ctx.orchestrator().upload_file(path, cmd.upload_type, resume=cmd.resume)
    return report.summary


def handle_status(cmd: StatusCommand, ctx: Optional[CliContext] = None) -> str:
    """
    Handle 'status' command.

    Returns:
        Multi-line status report
    """
    if ctx is None:
        ctx = get_context()
    return "\n".join(ctx.orchestrator().status_lines())


def handle_set_token(cmd: SetTokenCommand, ctx: Optional[CliContext] = None) -> str:
    """
    Handle 'set-token' command.

    Args:
        cmd: SetTokenCommand with the bearer token
        ctx: Optional CliContext for dependency injection (testing)

    Returns:
        Confirmation message
    """
    if ctx is None:
        ctx = get_context()
    token = cmd.token.strip()
    if not token:
        return "Error: Token must not be empty"
    ctx.config.set_auth_token(token)
    logger.info("Static token updated")
    return f"Token saved to {ctx.config.config_path}"


def handle_logout(cmd: LogoutCommand, ctx: Optional[CliContext] = None) -> str:
    """
    Handle 'logout' command.

    Clears both the stored token and the static token in the config file.
    """
    if ctx is None:
        ctx = get_context()
    if not ctx.auth_provider.is_authenticated():
        return "Not authenticated"
    ctx.auth_provider.clear_token()
    ctx.config.set_auth_token("")
    ctx.reset_client()
    return "Logged out. Stored credentials cleared."
