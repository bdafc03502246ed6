"""API routes package."""

from server.routes.recipe_routes import router as recipe_router
from server.routes.upload_routes import router as upload_router

__all__ = ["recipe_router", "upload_router"]
