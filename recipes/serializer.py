"""JSON serialization of recipe records for export and sync."""

import json
from typing import Any, Dict, Iterable, List

from recipes.models import RecipeData

COMPACT_SEPARATORS = (',', ':')


def to_json(data: Any) -> str:
    """Compact JSON with non-ASCII characters preserved."""
    return json.dumps(data, ensure_ascii=False, separators=COMPACT_SEPARATORS)


def to_pretty_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def serialize(recipe: RecipeData) -> str:
    return to_json(recipe.to_json_map())


def serialize_pretty(recipe: RecipeData) -> str:
    return to_pretty_json(recipe.to_json_map())


def serialize_all(recipes: Iterable[RecipeData]) -> str:
    return to_json([recipe.to_json_map() for recipe in recipes])


def serialize_all_pretty(recipes: Iterable[RecipeData]) -> str:
    return to_pretty_json([recipe.to_json_map() for recipe in recipes])


def to_record_map(recipe: RecipeData) -> Dict[str, Any]:
    """
    Wrap a recipe in the record envelope the sync endpoint expects.

    Args:
        recipe: Recipe to wrap

    Returns:
        Dictionary with recipeId, type, sourceMod and data
    """
    return {
        "recipeId": recipe.id,
        "type": recipe.type,
        "sourceMod": recipe.source_mod or "unknown",
        "data": recipe.to_json_map(),
    }


def to_records(recipes: Iterable[RecipeData]) -> List[Dict[str, Any]]:
    return [to_record_map(recipe) for recipe in recipes]


def serialize_for_sync(recipes: Iterable[RecipeData]) -> str:
    return to_json(to_records(recipes))
