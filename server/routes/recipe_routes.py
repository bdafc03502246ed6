"""Recipe sync API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError

from common.constants import API_PREFIX
from server.auth import get_current_token
from server.exceptions import InvalidRequestError
from server.schemas.recipes import RecipeSyncRequest, RecipeSyncResponse
from server.session_store import decode_body

router = APIRouter(
    prefix=API_PREFIX + "/{slug}/versions/{version}/recipes",
    tags=["Recipes"],
    dependencies=[Depends(get_current_token)],
)


@router.post("/sync", response_model=RecipeSyncResponse)
async def sync_recipes(
    slug: str,
    version: str,
    request: Request,
    content_encoding: Optional[str] = Header(None),
):
    """
    Merge a full recipe set into a modpack version.

    Parameters:
        - recipeCount: Number of records sent
        - manifestHash: Optional modpack fingerprint
        - contentHash: Client hash of the body
        - recipes: Records shaped {recipeId, type, sourceMod, data}

    Returns:
        - stats: received/new/updated/unchanged counts
        - contentHash: Server hash over every stored record of the version

    Raises:
        - 400: Body is not a valid sync request
        - 401: Invalid or missing token
    """
    raw = decode_body(await request.body(), content_encoding)
    try:
        payload = RecipeSyncRequest.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid recipe sync body: {e.error_count()} validation error(s)")

    if payload.recipe_count != len(payload.recipes):
        raise InvalidRequestError(
            f"recipeCount {payload.recipe_count} does not match {len(payload.recipes)} recipes"
        )

    stats, content_hash = request.app.state.recipe_store.sync(slug, version, payload.recipes)
    return RecipeSyncResponse(success=True, stats=stats, content_hash=content_hash, version=version)
