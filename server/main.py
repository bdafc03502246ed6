"""Entry point for the reference upload server."""

import time
import uuid
from typing import Iterable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.constants import REQUEST_ID_HEADER
from common.logging_config import setup_logging
from server.config import API_TOKENS, SERVER_HOST, SERVER_PORT, VERIFY_CHUNK_HASHES
from server.exceptions import ContentHashMismatchError, UploadServerError
from server.recipe_store import RecipeStore
from server.routes import recipe_router, upload_router
from server.session_store import UploadSessionStore

logger = setup_logging('server')


def create_app(
    session_store: Optional[UploadSessionStore] = None,
    recipe_store: Optional[RecipeStore] = None,
    api_tokens: Optional[Iterable[str]] = None,
) -> FastAPI:
    """
    Build the upload server application.

    Args:
        session_store: Upload session storage (new in-memory store if None)
        recipe_store: Recipe storage (new in-memory store if None)
        api_tokens: Accepted bearer tokens; empty accepts any non-empty token

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="RecipeFlow Upload Server",
        description="Reference server for chunked uploads and recipe sync",
        version="1.0.0"
    )
    app.state.session_store = session_store or UploadSessionStore(verify_chunk_hashes=VERIFY_CHUNK_HASHES)
    app.state.recipe_store = recipe_store or RecipeStore()
    app.state.api_tokens = frozenset(api_tokens) if api_tokens is not None else API_TOKENS

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(ContentHashMismatchError)
    async def content_hash_mismatch_handler(request: Request, exc: ContentHashMismatchError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(f"Content hash mismatch: {exc} [request_id={request_id}] path={request.url.path}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "detail": str(exc),
                "code": exc.code,
                "contentHash": exc.server_hash,
            }
        )

    @app.exception_handler(UploadServerError)
    async def upload_server_error_handler(request: Request, exc: UploadServerError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        if exc.status_code >= 500:
            logger.error(f"Server error: {exc} [request_id={request_id}] path={request.url.path}", exc_info=True)
        else:
            logger.warning(f"{exc.code}: {exc} [request_id={request_id}] path={request.url.path}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc), "code": exc.code}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(f"Invalid request: {len(exc.errors())} error(s) [request_id={request_id}] path={request.url.path}")
        return JSONResponse(
            status_code=400,
            content={"detail": f"Invalid request: {len(exc.errors())} validation error(s)", "code": "INVALID_REQUEST"}
        )

    app.include_router(upload_router)
    app.include_router(recipe_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "RecipeFlow Upload Server", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint. Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "server"}

    return app


app = create_app()


def main() -> None:
    """Run the server with uvicorn."""
    logger.info(f"Starting upload server on {SERVER_HOST}:{SERVER_PORT}")
    uvicorn.run("server.main:app", host=SERVER_HOST, port=SERVER_PORT, log_level="info")


if __name__ == "__main__":
    main()
