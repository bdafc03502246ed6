"""
Sync orchestration: validate, detect version, extract, upload.

Only one sync or file upload runs at a time per process. Each run ends
with one summarised message; full diagnostic detail goes to the debug log.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from common.auth import AuthProvider
from common.config import Config
from common.exceptions import ConfigurationError, RecipeFlowError, SyncInProgressError
from common.logging_config import get_logger
from recipes.manifest import compute_manifest_hash, detect_version, get_effective_version
from recipes.models import ItemMetadata, RecipeData
from recipes.provider import RecipeProvider
from recipes.registry import ExtractionCallback, ProviderRegistry
from recipes.serializer import to_json
from transfer.chunked_uploader import ChunkedUploader
from transfer.client import TransferClient
from transfer.exporter import HttpExporter, build_sync_body
from transfer.icons import build_icon_bundle, load_icon_metadata
from transfer.results import ExportResult, UploadResult, format_bytes
from transfer.session_cache import SessionCache

logger = get_logger(__name__)

Reporter = Callable[[str], None]

_sync_lock = threading.Lock()


def is_sync_in_progress() -> bool:
    return _sync_lock.locked()


def mask_url(url: str) -> str:
    """
    Reduce a server URL to scheme, host and port for display.

    Args:
        url: Configured server URL

    Returns:
        Masked URL such as "https://example.com/...", or "(not set)"
    """
    if not url:
        return "(not set)"
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return url[:30] + "..." if len(url) > 30 else url
    port = f":{parsed.port}" if parsed.port else ""
    return f"{parsed.scheme}://{parsed.hostname}{port}/..."


@dataclass(frozen=True)
class SyncReport:
    """Outcome of one sync run."""
    success: bool
    summary: str
    recipe_count: int = 0
    version: Optional[str] = None
    manifest_hash: Optional[str] = None
    export_result: Optional[ExportResult] = None
    item_upload_result: Optional[UploadResult] = None


@dataclass(frozen=True)
class FileUploadReport:
    """Outcome of an ad-hoc file upload."""
    success: bool
    summary: str
    skipped: bool = False
    upload_result: Optional[UploadResult] = None


class ReportingCallback(ExtractionCallback):
    """Forwards extraction progress to the user-facing reporter."""

    def __init__(self, reporter: Reporter):
        self.reporter = reporter

    def on_provider_start(self, provider: RecipeProvider) -> None:
        self.reporter(f"  Extracting from {provider.provider_name}...")

    def on_mod_extracted(self, provider: RecipeProvider, mod_id: str, count: int) -> None:
        self.reporter(f"    {mod_id}: {count:,} recipes")

    def on_provider_complete(self, provider: RecipeProvider, new_count: int) -> None:
        self.reporter(f"  {provider.provider_name}: {new_count:,} new recipes")

    def on_complete(self, total_recipes: int, provider_count: int) -> None:
        self.reporter(f"Extracted {total_recipes:,} recipes from {provider_count} provider(s)")


class SyncOrchestrator:
    """Runs a full recipe sync against the configured server."""

    def __init__(
        self,
        config: Config,
        auth_provider: AuthProvider,
        registry: ProviderRegistry,
        transfer_client: Optional[TransferClient] = None,
        session_cache: Optional[SessionCache] = None,
        game_dir: Optional[Path] = None,
        item_metadata: Optional[Dict[str, ItemMetadata]] = None,
        reporter: Optional[Reporter] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration instance
            auth_provider: Supplies the bearer token
            registry: Providers to extract recipes from
            transfer_client: Client to use (built from config if None)
            session_cache: Cache used to resume chunked uploads across restarts
            game_dir: Directory holding the modpack manifest (config game_dir if None)
            item_metadata: Optional item metadata uploaded before the recipes
            reporter: Receives progress lines (logged at INFO if None)
        """
        self.config = config
        self.auth_provider = auth_provider
        self.registry = registry
        self.transfer_client = transfer_client or TransferClient(config, auth_provider)
        self.session_cache = session_cache
        self.game_dir = game_dir or config.get_game_dir()
        self.item_metadata = item_metadata
        self.reporter = reporter or logger.info

    def run(self) -> SyncReport:
        """
        Extract every recipe and sync it to the server.

        Returns:
            SyncReport with a single summary line
        """
        try:
            self._acquire()
        except SyncInProgressError as e:
            logger.warning("Sync requested while another sync is running")
            return SyncReport(success=False, summary=str(e))

        try:
            return self._run()
        except ConfigurationError as e:
            logger.error(f"Sync aborted: {e}")
            return SyncReport(success=False, summary=str(e))
        except RecipeFlowError as e:
            logger.error(f"Sync failed: {e}")
            logger.debug("Sync failure detail", exc_info=True)
            return SyncReport(success=False, summary=f"Sync failed: {e}")
        finally:
            _sync_lock.release()

    def _run(self) -> SyncReport:
        self._validate()
        version = self._resolve_version()
        self.reporter(f"Modpack version: {version}")

        manifest = compute_manifest_hash(self.game_dir)
        manifest_hash = manifest.hash if manifest else None
        if manifest:
            self.reporter(f"Manifest hash: {manifest.hash} ({manifest.mod_count} mods)")
        else:
            self.reporter("No manifest file found - skipping hash")

        self.reporter("Extracting recipes...")
        recipes = self.registry.extract_all(ReportingCallback(self.reporter))
        if not recipes:
            return SyncReport(
                success=False,
                summary="No recipes extracted. Check that the recipe providers are available.",
                version=version,
                manifest_hash=manifest_hash,
            )

        item_result = None
        if self.item_metadata:
            item_result = self._upload_item_metadata(version)

        self.reporter("Uploading to server...")
        export_result = self._sync_recipes(recipes, version, manifest_hash)

        summary = export_result.summary
        if item_result is not None and not item_result.success:
            summary += f" (item metadata upload failed: {item_result.error_message})"
        if not export_result.success and export_result.exception is not None:
            logger.debug("Recipe sync error detail", exc_info=export_result.exception)

        return SyncReport(
            success=export_result.success,
            summary=summary,
            recipe_count=len(recipes),
            version=version,
            manifest_hash=manifest_hash,
            export_result=export_result,
            item_upload_result=item_result,
        )

    def _sync_recipes(self, recipes: List[RecipeData], version: str, manifest_hash: Optional[str]) -> ExportResult:
        body, content_hash = build_sync_body(recipes, manifest_hash)
        limit = self.config.get_sync_payload_limit()
        if len(body) <= limit:
            exporter = HttpExporter(self.transfer_client)
            return exporter.send_body(body, len(recipes), version, self._progress)

        logger.info(f"Recipe payload {format_bytes(len(body))} exceeds {format_bytes(limit)}, using chunked upload")
        result = self._uploader().upload(body, version, "recipes", self._progress)
        if not result.success:
            return ExportResult.error(result.error_message or "Chunked recipe upload failed", result.exception)
        return ExportResult.succeeded(
            received=len(recipes),
            content_hash=result.content_hash or content_hash,
            version=result.version or version,
        )

    def _upload_item_metadata(self, version: str) -> UploadResult:
        items = [item.to_json_map() for item in self.item_metadata.values()]
        data = to_json(items).encode('utf-8')
        self.reporter(f"Uploading item metadata for {len(items):,} items...")

        result = self._uploader().upload(data, version, "items", self._progress)
        if result.success:
            self.reporter(f"Item metadata uploaded successfully ({format_bytes(result.bytes_uploaded)})")
        else:
            self.reporter(f"Warning: Item metadata upload failed: {result.error_message}")
            self.reporter("Continuing with recipe sync...")
        return result

    def upload_file(self, path: Path, upload_type: str, resume: bool = False) -> FileUploadReport:
        """
        Upload a prepared payload file through the chunked protocol.

        Args:
            path: File to upload, or an exported icon directory for "icons"
            upload_type: Payload type ("recipes", "icons", "items")
            resume: Reuse the cached session for this payload if there is one

        Returns:
            FileUploadReport with a single summary line
        """
        try:
            self._acquire()
        except SyncInProgressError as e:
            return FileUploadReport(success=False, summary=str(e))

        try:
            self._validate()
            version = self._resolve_version()

            if upload_type == "icons" and self.transfer_client.check_upload_exists(version, upload_type):
                self.reporter("Icons already exist on server, skipping upload")
                return FileUploadReport(success=True, summary="Icons already exist on server", skipped=True)

            data = self._read_payload(Path(path), upload_type)

            if not resume and self.session_cache is not None:
                self.session_cache.clear(self.config.get_modpack_slug(), version, upload_type)

            self.reporter(f"Uploading {path} ({format_bytes(len(data))}) as {upload_type}...")
            result = self._uploader().upload(data, version, upload_type, self._progress)
            return FileUploadReport(success=result.success, summary=result.summary, upload_result=result)

        except ConfigurationError as e:
            logger.error(f"Upload aborted: {e}")
            return FileUploadReport(success=False, summary=str(e))
        except RecipeFlowError as e:
            logger.error(f"Upload failed: {e}")
            logger.debug("Upload failure detail", exc_info=True)
            return FileUploadReport(success=False, summary=f"Upload failed: {e}")
        finally:
            _sync_lock.release()

    def _read_payload(self, path: Path, upload_type: str) -> bytes:
        if upload_type == "icons" and path.is_dir():
            metadata = load_icon_metadata(path)
            self.reporter(f"Packaging {len(metadata):,} icons ({metadata.animated_count:,} animated)...")
            return build_icon_bundle(path, metadata)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Cannot read {path}: {e.strerror or e}")

    def status_lines(self) -> List[str]:
        """
        Describe the current configuration and sync state.

        Returns:
            Lines for display, ending with the validation verdict
        """
        config = self.config
        lines = ["=== RecipeFlow Status ===", f"Server URL: {mask_url(config.get_server_url())}"]

        if self.auth_provider.is_authenticated():
            auth_status = f"Authenticated via {self.auth_provider.get_auth_source()}"
            expiration = self.auth_provider.get_token_expiration_info()
            if expiration and self.auth_provider.get_auth_source() == AuthProvider.SOURCE_STORED:
                auth_status += f" ({expiration})"
            lines.append(f"Auth: {auth_status}")
        else:
            lines.append("Auth: Not authenticated")

        lines.append(f"Modpack Slug: {config.get_modpack_slug() or '(not set)'}")
        lines.append(f"Compression: {'enabled' if config.is_compression_enabled() else 'disabled'}")
        lines.append(f"Debug Logging: {'enabled' if config.is_debug_logging() else 'disabled'}")

        detected = detect_version(self.game_dir)
        lines.append(f"Auto-detected Version: {detected or '(none)'}")
        if config.get_version_override():
            lines.append(f"Version Override: {config.get_version_override()}")

        lines.append(f"Registered Providers: {len(self.registry)}")
        lines.append(f"Sync in Progress: {'yes' if is_sync_in_progress() else 'no'}")

        validation = config.validate(self.auth_provider.get_auth_token())
        if validation.valid:
            lines.append("Configuration is valid. Ready to sync.")
        else:
            lines.append(validation.error_message)
        return lines

    def _acquire(self) -> None:
        if not _sync_lock.acquire(blocking=False):
            raise SyncInProgressError("A sync operation is already in progress. Please wait.")

    def _validate(self) -> None:
        validation = self.config.validate(self.auth_provider.get_auth_token())
        if not validation.valid:
            raise ConfigurationError(validation.error_message)

    def _resolve_version(self) -> str:
        version = get_effective_version(self.game_dir, self.config.get_version_override())
        if not version:
            raise ConfigurationError(
                "Could not detect modpack version. Set 'version_override' in the config file."
            )
        return version

    def _uploader(self) -> ChunkedUploader:
        return ChunkedUploader(self.config, self.transfer_client, session_cache=self.session_cache)

    def _progress(self, current: int, total: int, message: str) -> None:
        self.reporter(f"  {message}")
