"""
Priority-ordered aggregation of recipe providers.

Providers are visited in descending priority (ties keep registration
order). The first record accepted for a recipe id wins; later records with
the same id are discarded. A failing provider contributes nothing and never
aborts the pass.
"""

import threading
from typing import Callable, Iterable, List, Optional

from common.exceptions import ProviderExtractionError
from common.logging_config import get_logger
from recipes.models import RecipeData
from recipes.provider import RecipeProvider

logger = get_logger(__name__)


class ExtractionCallback:
    """
    Progress observer for ProviderRegistry.extract_all.

    Every hook is a no-op by default; override the ones you need. Hooks are
    for reporting only and cannot influence the extraction result.
    """

    def on_provider_start(self, provider: RecipeProvider) -> None:
        pass

    def on_mod_extracted(self, provider: RecipeProvider, mod_id: str, count: int) -> None:
        pass

    def on_provider_complete(self, provider: RecipeProvider, new_count: int) -> None:
        pass

    def on_complete(self, total_recipes: int, provider_count: int) -> None:
        pass


class ProviderRegistry:
    """Holds recipe providers and merges their output with first-wins dedup."""

    def __init__(self):
        self._providers: List[RecipeProvider] = []
        self._lock = threading.Lock()

    def register(self, provider: RecipeProvider) -> None:
        """
        Register a provider.

        Args:
            provider: Provider to add; availability is checked at extraction time
        """
        with self._lock:
            self._providers.append(provider)
        logger.info(f"Registered provider: {provider.provider_name} (priority {provider.priority})")

    @property
    def providers(self) -> List[RecipeProvider]:
        """Providers in visiting order (stable sort, highest priority first)."""
        with self._lock:
            return sorted(self._providers, key=lambda p: p.priority, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._providers.clear()

    def __len__(self) -> int:
        return len(self._providers)

    def extract_all(self, callback: Optional[ExtractionCallback] = None) -> List[RecipeData]:
        """
        Extract recipes from every available provider.

        Args:
            callback: Optional progress observer

        Returns:
            Deduplicated recipes, in provider order then provider-internal order
        """
        seen = set()
        result: List[RecipeData] = []
        visited = 0

        for provider in self.providers:
            if not self._is_available(provider):
                logger.debug(f"Skipping unavailable provider: {provider.provider_name}")
                continue

            visited += 1
            self._notify(callback, 'on_provider_start', provider)

            mod_callback = None
            if callback is not None:
                def mod_callback(mod_id, count, _provider=provider):
                    self._notify(callback, 'on_mod_extracted', _provider, mod_id, count)

            extracted = self._run_provider(provider, lambda p: p.extract_recipes(mod_callback))
            new_count = self._merge(extracted, seen, result)

            logger.info(
                f"Provider {provider.provider_name} extracted {len(extracted)} recipes ({new_count} new)"
            )
            self._notify(callback, 'on_provider_complete', provider, new_count)

        self._notify(callback, 'on_complete', len(result), visited)
        return result

    def extract_recipes_for(self, item_id: str) -> List[RecipeData]:
        """
        Extract recipes producing one item, with the same ordering and dedup rules.

        Args:
            item_id: Namespaced item identifier

        Returns:
            Deduplicated matching recipes
        """
        seen = set()
        result: List[RecipeData] = []
        for provider in self.providers:
            if not self._is_available(provider):
                continue
            extracted = self._run_provider(provider, lambda p: p.extract_recipes_for(item_id))
            self._merge(extracted, seen, result)
        return result

    @staticmethod
    def _merge(extracted: Iterable[RecipeData], seen: set, result: List[RecipeData]) -> int:
        new_count = 0
        for recipe in extracted:
            recipe_id = recipe.id
            if recipe_id is None or recipe_id in seen:
                continue
            seen.add(recipe_id)
            result.append(recipe)
            new_count += 1
        return new_count

    @staticmethod
    def _is_available(provider: RecipeProvider) -> bool:
        try:
            return bool(provider.is_available())
        except Exception as e:
            logger.warning(f"Availability check failed for provider {provider.provider_name}: {e}")
            return False

    @staticmethod
    def _run_provider(
        provider: RecipeProvider,
        extract: Callable[[RecipeProvider], Iterable[RecipeData]]
    ) -> List[RecipeData]:
        try:
            return list(extract(provider))
        except Exception as e:
            error = ProviderExtractionError(provider.provider_id, e)
            logger.warning(f"Error extracting from provider: {error}")
            logger.debug(f"Provider {provider.provider_id} traceback", exc_info=True)
            return []

    @staticmethod
    def _notify(callback: Optional[ExtractionCallback], hook: str, *args) -> None:
        if callback is None:
            return
        try:
            getattr(callback, hook)(*args)
        except Exception as e:
            logger.warning(f"Extraction callback {hook} failed: {e}")
