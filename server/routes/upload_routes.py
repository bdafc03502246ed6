"""Chunked upload API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import ValidationError

from common.constants import API_PREFIX
from common.logging_config import get_logger
from server.auth import get_current_token
from server.config import SESSION_TTL_SECONDS
from server.schemas.recipes import RecipeSyncRequest
from server.schemas.uploads import (
    ChunkResponse,
    CompleteUploadRequest,
    CompleteUploadResponse,
    StartUploadRequest,
    StartUploadResponse,
    UploadCheckResponse,
    UploadStatusResponse,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix=API_PREFIX + "/{slug}/versions/{version}/upload",
    tags=["Uploads"],
    dependencies=[Depends(get_current_token)],
)


@router.post("/start", response_model=StartUploadResponse)
async def start_upload(slug: str, version: str, body: StartUploadRequest, request: Request):
    """
    Start a chunked upload session.

    Parameters:
        - type: Payload type ("recipes", "icons", "items")
        - totalSize: Payload size in bytes
        - chunkSize: Chunk size in bytes
        - totalChunks: Optional planned chunk count (validated)
        - finalHash: Optional whole-payload hash, checked again at completion

    Returns:
        - sessionId: Session id to use for status, chunk and complete calls

    Raises:
        - 400: Invalid sizes
        - 401: Invalid or missing token
    """
    store = request.app.state.session_store
    store.expire_stale(SESSION_TTL_SECONDS)
    session = store.start_session(
        slug=slug,
        version=version,
        upload_type=body.type,
        total_size=body.total_size,
        chunk_size=body.chunk_size,
        total_chunks=body.total_chunks,
        final_hash=body.final_hash,
    )
    return StartUploadResponse(session_id=session.session_id, total_chunks=session.total_chunks)


@router.get("/check", response_model=UploadCheckResponse)
async def check_upload(slug: str, version: str, request: Request, type: str = Query(...)):
    """
    Report whether this version already has a completed upload of a type.
    """
    store = request.app.state.session_store
    return UploadCheckResponse(exists=store.check_exists(slug, version, type))


@router.get("/{session_id}/status", response_model=UploadStatusResponse)
async def upload_status(slug: str, version: str, session_id: str, request: Request):
    """
    List chunk indices the server already stores for a session.

    Raises:
        - 404: Unknown session
    """
    store = request.app.state.session_store
    session = store.get_session(session_id, slug, version)
    return UploadStatusResponse(
        session_id=session_id,
        uploaded_chunks=store.get_status(session_id, slug, version),
        total_chunks=session.total_chunks,
    )


@router.post("/{session_id}/chunk/{index}", response_model=ChunkResponse)
async def upload_chunk(
    slug: str,
    version: str,
    session_id: str,
    index: int,
    request: Request,
    x_chunk_hash: Optional[str] = Header(None),
    content_encoding: Optional[str] = Header(None),
):
    """
    Store one chunk; re-sending the same index is safe.

    Parameters:
        - body: Raw chunk bytes (optionally gzip with Content-Encoding: gzip)
        - X-Chunk-Hash: "sha256:<hex>" of the uncompressed chunk

    Raises:
        - 400: Index out of range or wrong size
        - 404: Unknown session
        - 422: Chunk hash mismatch
    """
    store = request.app.state.session_store
    body = await request.body()
    duplicate = store.put_chunk(
        session_id=session_id,
        slug=slug,
        version=version,
        index=index,
        body=body,
        chunk_hash=x_chunk_hash,
        content_encoding=content_encoding,
    )
    return ChunkResponse(index=index, duplicate=duplicate)


@router.post("/{session_id}/complete", response_model=CompleteUploadResponse)
async def complete_upload(
    slug: str,
    version: str,
    session_id: str,
    body: CompleteUploadRequest,
    request: Request,
):
    """
    Reassemble and verify an upload.

    Returns:
        - success: True when the server hash matches
        - contentHash: Server-computed hash of the full payload
        - version: Modpack version

    Raises:
        - 404: Unknown session
        - 409: Missing chunks or content hash mismatch
    """
    store = request.app.state.session_store
    completed = store.complete(session_id, slug, version, body.content_hash)

    session = store.get_session(session_id, slug, version)
    if session.upload_type == "recipes":
        _apply_recipe_payload(request, slug, version, completed.data)

    return CompleteUploadResponse(success=True, content_hash=completed.content_hash, version=version)


def _apply_recipe_payload(request: Request, slug: str, version: str, data: bytes) -> None:
    try:
        payload = RecipeSyncRequest.model_validate_json(data)
    except ValidationError as e:
        logger.warning(f"Uploaded recipe payload for {slug}/{version} is not a sync body: {e.error_count()} error(s)")
        return
    request.app.state.recipe_store.sync(slug, version, payload.recipes)
