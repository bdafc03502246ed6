"""Configuration management for the RecipeFlow sync client."""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from common.constants import (
    DEFAULT_CHUNK_SIZE_BYTES,
    DEFAULT_CHUNK_SIZES,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_SYNC_PAYLOAD_LIMIT,
    PRIORITY_RECIPE_VIEWER,
)
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.recipeflow' / 'config.json'


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a configuration check."""
    valid: bool
    error_message: Optional[str] = None

    @classmethod
    def ok(cls) -> 'ValidationResult':
        return cls(valid=True)

    @classmethod
    def error(cls, message: str) -> 'ValidationResult':
        return cls(valid=False, error_message=message)


class Config:
    """Manages sync client configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "server_url": "",
        "auth_token": "",
        "modpack_slug": "",
        "batch_size": 1000,
        "timeout_ms": 300000,
        "compression_enabled": True,
        "debug_logging": False,
        "version_override": "",
        "max_attempts": DEFAULT_MAX_ATTEMPTS,
        "retry_base_delay": DEFAULT_RETRY_BASE_DELAY,
        "retry_backoff_multiplier": DEFAULT_RETRY_BACKOFF_MULTIPLIER,
        "max_parallel_chunks": 1,
        "chunk_sizes": dict(DEFAULT_CHUNK_SIZES),
        "sync_payload_limit": DEFAULT_SYNC_PAYLOAD_LIMIT,
        "game_dir": "",
        "recipe_sources": [],
    }

    ENV_OVERRIDES = {
        "RECIPEFLOW_SERVER_URL": "server_url",
        "RECIPEFLOW_MODPACK_SLUG": "modpack_slug",
    }

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.recipeflow/config.json)
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.data = self._load()
        self._apply_env_overrides()

    def _defaults(self) -> dict:
        config = self.DEFAULT_CONFIG.copy()
        config["chunk_sizes"] = dict(self.DEFAULT_CONFIG["chunk_sizes"])
        config["recipe_sources"] = []
        return config

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.recipeflow' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self._defaults()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file {self.config_path} is unreadable ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Failed to back up config file: {copy_error}")
                return self._defaults()

        config = self._defaults()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Failed to write default config to {self.config_path}: {e}")
        return config

    def _apply_env_overrides(self) -> None:
        for env_name, key in self.ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.data[key] = value

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Failed to save config to {self.config_path}: {e}")

    def get_server_url(self) -> str:
        """
        Get server base URL with any trailing slash removed.

        Returns:
            Base URL string (e.g., "https://recipes.example.com")
        """
        return (self.data.get('server_url') or '').strip().rstrip('/')

    def get_auth_token(self) -> str:
        """
        Get the static token configured in the file.

        Returns:
            Token string, empty if not set
        """
        return self.data.get('auth_token') or ''

    def set_auth_token(self, token: str) -> None:
        """
        Set static token and save to file.

        Args:
            token: Bearer token string
        """
        self.data['auth_token'] = token
        self.save()

    def get_modpack_slug(self) -> str:
        return (self.data.get('modpack_slug') or '').strip()

    def get_batch_size(self) -> int:
        return int(self.data.get('batch_size', 1000))

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds, converted from timeout_ms
        """
        return self.data.get('timeout_ms', 300000) / 1000.0

    def is_compression_enabled(self) -> bool:
        return bool(self.data.get('compression_enabled', True))

    def is_debug_logging(self) -> bool:
        return bool(self.data.get('debug_logging', False))

    def get_version_override(self) -> str:
        return (self.data.get('version_override') or '').strip()

    def get_chunk_size(self, upload_type: str) -> int:
        """
        Get configured chunk size for a payload type.

        Args:
            upload_type: Payload type ("recipes", "icons", "items")

        Returns:
            Chunk size in bytes
        """
        chunk_sizes = self.data.get('chunk_sizes') or {}
        return int(chunk_sizes.get(upload_type, DEFAULT_CHUNK_SIZES.get(upload_type, DEFAULT_CHUNK_SIZE_BYTES)))

    def get_max_parallel_chunks(self) -> int:
        return max(1, int(self.data.get('max_parallel_chunks', 1)))

    def get_sync_payload_limit(self) -> int:
        return int(self.data.get('sync_payload_limit', DEFAULT_SYNC_PAYLOAD_LIMIT))

    def get_game_dir(self) -> Path:
        game_dir = (self.data.get('game_dir') or '').strip()
        return Path(game_dir).expanduser() if game_dir else Path.cwd()

    def get_recipe_sources(self) -> List[Tuple[Path, int]]:
        """
        Get recipe files to load as providers.

        Entries are either a path string or an object with "path" and an
        optional "priority".

        Returns:
            List of (path, priority) tuples; malformed entries are skipped
        """
        sources = []
        for entry in self.data.get('recipe_sources') or []:
            if isinstance(entry, str) and entry.strip():
                sources.append((Path(entry).expanduser(), PRIORITY_RECIPE_VIEWER))
            elif isinstance(entry, dict) and entry.get('path'):
                priority = int(entry.get('priority', PRIORITY_RECIPE_VIEWER))
                sources.append((Path(entry['path']).expanduser(), priority))
            else:
                logger.warning(f"Ignoring malformed recipe source entry: {entry!r}")
        return sources

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_attempts', 'retry_base_delay' and 'retry_backoff_multiplier'
        """
        return {
            'max_attempts': self.data.get('max_attempts', DEFAULT_MAX_ATTEMPTS),
            'retry_base_delay': self.data.get('retry_base_delay', DEFAULT_RETRY_BASE_DELAY),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', DEFAULT_RETRY_BACKOFF_MULTIPLIER),
        }

    def validate(self, auth_token: Optional[str] = None) -> ValidationResult:
        """
        Check that everything needed for a network call is configured.

        Args:
            auth_token: Effective bearer token (from the auth provider);
                defaults to the static token in the file

        Returns:
            ValidationResult with the first problem found
        """
        server_url = self.get_server_url()
        token = self.get_auth_token() if auth_token is None else auth_token

        if not server_url:
            return ValidationResult.error(
                "Server URL is not configured. Set 'server_url' in the config file."
            )
        if not token:
            return ValidationResult.error(
                "Not authenticated. Run 'set-token <token>' or set 'auth_token' in the config file."
            )
        if not self.get_modpack_slug():
            return ValidationResult.error(
                "Modpack slug is not configured. Set 'modpack_slug' in the config file."
            )
        if not (server_url.startswith('http://') or server_url.startswith('https://')):
            return ValidationResult.error(
                "Server URL must start with http:// or https://"
            )

        chunk_sizes = self.data.get('chunk_sizes') or {}
        if not isinstance(chunk_sizes, dict):
            return ValidationResult.error("'chunk_sizes' must map upload types to sizes in bytes.")
        for upload_type, size in chunk_sizes.items():
            if not _is_positive_int(size):
                return ValidationResult.error(
                    f"Chunk size for '{upload_type}' must be a positive number of bytes, got {size!r}."
                )
        if not _is_positive_int(self.data.get('sync_payload_limit', DEFAULT_SYNC_PAYLOAD_LIMIT)):
            return ValidationResult.error(
                "'sync_payload_limit' must be a positive number of bytes."
            )
        return ValidationResult.ok()


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
