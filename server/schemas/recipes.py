"""Pydantic schemas for the recipe sync endpoint."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipeRecord(BaseModel):
    """One recipe in the sync payload."""
    model_config = ConfigDict(populate_by_name=True)

    recipe_id: str = Field(alias="recipeId", min_length=1)
    type: Optional[str] = None
    source_mod: str = Field(default="unknown", alias="sourceMod")
    data: Dict[str, Any] = Field(default_factory=dict)


class RecipeSyncRequest(BaseModel):
    """Request model for recipe sync."""
    model_config = ConfigDict(populate_by_name=True)

    recipe_count: int = Field(alias="recipeCount", ge=0)
    manifest_hash: Optional[str] = Field(default=None, alias="manifestHash")
    content_hash: Optional[str] = Field(default=None, alias="contentHash")
    recipes: List[RecipeRecord]


class SyncStats(BaseModel):
    received: int = 0
    new: int = 0
    updated: int = 0
    unchanged: int = 0


class RecipeSyncResponse(BaseModel):
    """Response model for recipe sync."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    stats: SyncStats
    content_hash: str = Field(alias="contentHash")
    version: str
