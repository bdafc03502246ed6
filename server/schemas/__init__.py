"""Pydantic schemas for API requests and responses."""

from server.schemas.recipes import (
    RecipeRecord,
    RecipeSyncRequest,
    RecipeSyncResponse,
    SyncStats,
)
from server.schemas.uploads import (
    ChunkResponse,
    CompleteUploadRequest,
    CompleteUploadResponse,
    StartUploadRequest,
    StartUploadResponse,
    UploadCheckResponse,
    UploadStatusResponse,
)

__all__ = [
    "RecipeRecord",
    "RecipeSyncRequest",
    "RecipeSyncResponse",
    "SyncStats",
    "ChunkResponse",
    "CompleteUploadRequest",
    "CompleteUploadResponse",
    "StartUploadRequest",
    "StartUploadResponse",
    "UploadCheckResponse",
    "UploadStatusResponse",
]
