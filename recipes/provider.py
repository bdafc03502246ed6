"""Recipe provider contract and the stock providers shipped with the client."""

import json
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from common.constants import PRIORITY_MOD_API
from common.logging_config import get_logger
from recipes.models import RawRecipeData, RecipeData

logger = get_logger(__name__)

ModCountCallback = Callable[[str, int], None]


def namespace_of(identifier: Optional[str]) -> str:
    if not identifier or ':' not in identifier:
        return "minecraft"
    return identifier.split(':', 1)[0]


class RecipeProvider(ABC):
    """
    A source that can extract recipe records.

    The registry only depends on this contract; concrete providers decide
    how records are produced and whether empty-output recipes are dropped.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Stable identifier used in logs and callbacks."""

    @property
    def provider_name(self) -> str:
        return self.provider_id

    @property
    @abstractmethod
    def priority(self) -> int:
        """Higher values are visited first and win dedup ties."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying source is present in this environment."""

    @abstractmethod
    def extract_recipes(self, callback: Optional[ModCountCallback] = None) -> Iterable[RecipeData]:
        """
        Extract every recipe this provider knows about.

        Args:
            callback: Optional hook called with (mod_id, count) per namespace

        Returns:
            Recipe records in the provider's own order
        """

    def extract_recipes_for(self, item_id: str) -> List[RecipeData]:
        """
        Extract recipes producing a specific item.

        Args:
            item_id: Namespaced item identifier

        Returns:
            Matching recipe records
        """
        return [recipe for recipe in self.extract_recipes() if recipe.output_item_id == item_id]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.provider_id!r}, priority={self.priority})"


def report_mod_counts(recipes: Iterable[RecipeData], callback: Optional[ModCountCallback]) -> None:
    """Call callback once per namespace with the number of recipes in it."""
    if callback is None:
        return
    counts = Counter(namespace_of(recipe.id) for recipe in recipes)
    for mod_id, count in sorted(counts.items()):
        callback(mod_id, count)


class StaticRecipeProvider(RecipeProvider):
    """Provider backed by an in-memory list of records."""

    def __init__(
        self,
        provider_id: str,
        recipes: Iterable[RecipeData],
        priority: int = PRIORITY_MOD_API,
        available: bool = True,
        skip_empty_outputs: bool = False,
    ):
        self._provider_id = provider_id
        self._recipes = list(recipes)
        self._priority = priority
        self._available = available
        self.skip_empty_outputs = skip_empty_outputs

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def priority(self) -> int:
        return self._priority

    def is_available(self) -> bool:
        return self._available

    def extract_recipes(self, callback: Optional[ModCountCallback] = None) -> List[RecipeData]:
        recipes = self._recipes
        if self.skip_empty_outputs:
            recipes = [recipe for recipe in recipes if recipe.has_outputs()]
        report_mod_counts(recipes, callback)
        return list(recipes)


class JsonFileRecipeProvider(RecipeProvider):
    """
    Provider that loads previously exported sync records from a JSON file.

    The file holds either a list of records or an object with a "recipes"
    list, each record shaped {recipeId, type, sourceMod, data}.
    """

    def __init__(self, path: Path, priority: int = PRIORITY_MOD_API, provider_id: Optional[str] = None):
        self.path = Path(path)
        self._priority = priority
        self._provider_id = provider_id or f"file:{self.path.name}"

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def provider_name(self) -> str:
        return f"Recipe file {self.path}"

    @property
    def priority(self) -> int:
        return self._priority

    def is_available(self) -> bool:
        return self.path.is_file()

    def extract_recipes(self, callback: Optional[ModCountCallback] = None) -> List[RecipeData]:
        """
        Load records from the file.

        Raises:
            ValueError: If the file is not valid JSON or has the wrong shape
            OSError: If the file cannot be read
        """
        with open(self.path, 'r', encoding='utf-8') as f:
            payload = json.load(f)

        records = payload.get("recipes") if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise ValueError(f"{self.path} does not contain a recipe list")

        recipes = [self._to_recipe(record) for record in records if isinstance(record, dict)]
        logger.debug(f"Loaded {len(recipes)} recipes from {self.path}")
        report_mod_counts(recipes, callback)
        return recipes

    @staticmethod
    def _to_recipe(record: dict) -> RawRecipeData:
        data = record.get("data") or {}
        return RawRecipeData(
            id=record.get("recipeId"),
            type=record.get("type") or data.get("type"),
            source_mod=record.get("sourceMod"),
            data=dict(data),
        )
