"""In-memory recipe storage keyed by modpack version and recipe id."""

import threading
from typing import Dict, Iterable, Tuple

from common.hashing import compute_entries_hash, compute_hash
from common.logging_config import get_logger
from recipes.serializer import to_json
from server.schemas.recipes import RecipeRecord, SyncStats

logger = get_logger(__name__)

EMPTY_CONTENT_HASH = compute_hash(b"")


class RecipeStore:
    """Merges synced recipe records and reports what changed."""

    def __init__(self):
        self._lock = threading.Lock()
        self._versions: Dict[Tuple[str, str], Dict[str, str]] = {}

    def sync(self, slug: str, version: str, records: Iterable[RecipeRecord]) -> Tuple[SyncStats, str]:
        """
        Merge records into a modpack version.

        Args:
            slug: Modpack slug
            version: Modpack version
            records: Records to merge (later duplicates in one payload overwrite earlier ones)

        Returns:
            Tuple of (change statistics, content hash over the stored version)
        """
        stats = SyncStats()
        with self._lock:
            stored = self._versions.setdefault((slug, version), {})
            for record in records:
                stats.received += 1
                record_hash = compute_hash(to_json({
                    "type": record.type,
                    "sourceMod": record.source_mod,
                    "data": record.data,
                }))
                previous = stored.get(record.recipe_id)
                if previous is None:
                    stats.new += 1
                elif previous != record_hash:
                    stats.updated += 1
                else:
                    stats.unchanged += 1
                stored[record.recipe_id] = record_hash
            content_hash = self._content_hash(stored)

        logger.info(
            f"Recipe sync for {slug}/{version}: received={stats.received} new={stats.new} "
            f"updated={stats.updated} unchanged={stats.unchanged}"
        )
        return stats, content_hash

    def count(self, slug: str, version: str) -> int:
        with self._lock:
            return len(self._versions.get((slug, version), {}))

    @staticmethod
    def _content_hash(stored: Dict[str, str]) -> str:
        entries = (f"{recipe_id}:{record_hash}" for recipe_id, record_hash in stored.items())
        return compute_entries_hash(entries) or EMPTY_CONTENT_HASH
