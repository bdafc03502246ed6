"""Configuration settings for the reference upload server."""

import os

SERVER_HOST = os.environ.get("RECIPEFLOW_SERVER_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("RECIPEFLOW_SERVER_PORT", "8080"))

# Comma-separated; when empty any non-empty bearer token is accepted
API_TOKENS = frozenset(
    token.strip() for token in os.environ.get("RECIPEFLOW_SERVER_TOKENS", "").split(",") if token.strip()
)

SESSION_TTL_SECONDS = int(os.environ.get("RECIPEFLOW_SESSION_TTL", str(24 * 60 * 60)))

VERIFY_CHUNK_HASHES = os.environ.get("RECIPEFLOW_VERIFY_CHUNK_HASHES", "true").lower() != "false"
