"""Single-shot recipe sync for payloads small enough to send in one request."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

from common.exceptions import RecipeFlowError
from common.hashing import compute_hash
from common.logging_config import get_logger
from recipes.models import RecipeData
from recipes.serializer import to_json, to_records
from transfer.client import TransferClient
from transfer.results import ExportResult

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]


def build_sync_body(recipes: List[RecipeData], manifest_hash: Optional[str] = None) -> Tuple[bytes, str]:
    """
    Build the recipe sync request body.

    contentHash is computed over the body serialized without it, then added.

    Args:
        recipes: Deduplicated recipes
        manifest_hash: Optional modpack fingerprint

    Returns:
        Tuple of (UTF-8 JSON body, content hash)
    """
    body: Dict[str, Any] = {"recipeCount": len(recipes)}
    if manifest_hash is not None:
        body["manifestHash"] = manifest_hash
    body["recipes"] = to_records(recipes)

    content_hash = compute_hash(to_json(body))
    body["contentHash"] = content_hash
    return to_json(body).encode('utf-8'), content_hash


def parse_sync_response(data: Dict[str, Any], recipe_count: int) -> ExportResult:
    """
    Turn a sync response body into an ExportResult.

    An empty or stats-less success body counts as a plain success with the
    local recipe count.
    """
    if not data:
        return ExportResult.succeeded(received=recipe_count)
    if not isinstance(data, dict):
        return ExportResult.error(f"Unparseable sync response: expected an object, got {type(data).__name__}")

    if data.get("success") is False:
        message = data.get("error") or data.get("message") or data.get("detail") or "Server reported failure"
        return ExportResult.error(message)

    stats = data.get("stats")
    if not isinstance(stats, dict):
        return ExportResult.succeeded(
            received=recipe_count,
            content_hash=data.get("contentHash"),
            version=data.get("version"),
        )
    try:
        received = _stat(stats, "received", recipe_count)
        new = _stat(stats, "new")
        updated = _stat(stats, "updated")
        unchanged = _stat(stats, "unchanged")
    except (TypeError, ValueError) as e:
        logger.warning(f"Unparseable sync stats {stats!r}: {e}")
        return ExportResult.error(f"Unparseable sync response: {e}")

    return ExportResult.succeeded(
        received=received,
        new=new,
        updated=updated,
        unchanged=unchanged,
        content_hash=data.get("contentHash"),
        version=data.get("version"),
    )


def _stat(stats: Dict[str, Any], key: str, default: int = 0) -> int:
    # Missing and null both mean "not reported"
    value = stats.get(key)
    if value is None:
        return default
    return int(value)


class HttpExporter:
    """Posts the full recipe set to the sync endpoint."""

    def __init__(self, client: TransferClient):
        self.client = client

    def sync_recipes(
        self,
        recipes: List[RecipeData],
        version: str,
        manifest_hash: Optional[str] = None,
        callback: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Sync recipes in one request.

        Args:
            recipes: Deduplicated recipes
            version: Modpack version
            manifest_hash: Optional modpack fingerprint
            callback: Optional progress hook called with (current, total, message)

        Returns:
            ExportResult with server-side statistics, or an error result
        """
        self._progress(callback, 0, "Preparing data...")
        body, content_hash = build_sync_body(recipes, manifest_hash)
        logger.debug(f"Recipe sync body: {len(body)} bytes [hash={content_hash}]")
        return self.send_body(body, len(recipes), version, callback)

    def sync_recipes_async(
        self,
        recipes: List[RecipeData],
        version: str,
        manifest_hash: Optional[str] = None,
        callback: Optional[ProgressCallback] = None,
    ) -> "Future[ExportResult]":
        """
        Run sync_recipes on a worker thread.

        Returns:
            Future resolving to the ExportResult; it never raises for
            network or server errors, those come back as error results
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='recipe-sync')
        try:
            return executor.submit(self.sync_recipes, recipes, version, manifest_hash, callback)
        finally:
            executor.shutdown(wait=False)

    def send_body(
        self,
        body: bytes,
        recipe_count: int,
        version: str,
        callback: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Send a body produced by build_sync_body.

        Args:
            body: Serialized sync body
            recipe_count: Number of recipes in the body
            version: Modpack version
            callback: Optional progress hook

        Returns:
            ExportResult with server-side statistics, or an error result
        """
        self._progress(callback, 20, f"Uploading {recipe_count} recipes...")
        try:
            data = self.client.post_recipe_sync(version, body)
        except RecipeFlowError as e:
            logger.error(f"Recipe sync failed: {e}")
            logger.debug("Recipe sync failure detail", exc_info=True)
            return ExportResult.error(str(e), e)

        self._progress(callback, 100, "Processing response...")
        logger.debug(f"Recipe sync response: {data}")
        return parse_sync_response(data, recipe_count)

    @staticmethod
    def _progress(callback: Optional[ProgressCallback], current: int, message: str) -> None:
        if callback is None:
            return
        try:
            callback(current, 100, message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
