"""Pydantic schemas for chunked upload endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StartUploadRequest(BaseModel):
    """Request model for starting an upload session."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(min_length=1)
    total_size: int = Field(alias="totalSize", ge=0)
    chunk_size: int = Field(alias="chunkSize", gt=0)
    total_chunks: Optional[int] = Field(default=None, alias="totalChunks", ge=0)
    final_hash: Optional[str] = Field(default=None, alias="finalHash")


class StartUploadResponse(BaseModel):
    """Response model for a started upload session."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    total_chunks: int = Field(alias="totalChunks")


class UploadStatusResponse(BaseModel):
    """Response model for upload status."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    uploaded_chunks: List[int] = Field(alias="uploadedChunks")
    total_chunks: int = Field(alias="totalChunks")


class ChunkResponse(BaseModel):
    """Response model for an accepted chunk."""
    model_config = ConfigDict(populate_by_name=True)

    index: int
    received: bool = True
    duplicate: bool = False


class CompleteUploadRequest(BaseModel):
    """Request model for completing an upload."""
    model_config = ConfigDict(populate_by_name=True)

    content_hash: str = Field(alias="contentHash", min_length=1)


class CompleteUploadResponse(BaseModel):
    """Response model for a verified upload."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    content_hash: str = Field(alias="contentHash")
    version: str


class UploadCheckResponse(BaseModel):
    """Response model for the upload existence check."""
    exists: bool
