"""Project-wide constants (chunk sizes, protocol headers, provider priorities)."""

MIB: int = 1024 * 1024

DEFAULT_CHUNK_SIZE_BYTES: int = 1 * MIB  # Fallback when a payload type has no recommendation

DEFAULT_CHUNK_SIZES: dict = {
    "recipes": 5 * MIB,
    "icons": 5 * MIB,
    "items": 2 * MIB,
}

UPLOAD_TYPES = ("recipes", "icons", "items")

HASH_PREFIX = "sha256:"

USER_AGENT = "RecipeFlow-Mod/1.0"

CHUNK_HASH_HEADER = "X-Chunk-Hash"
REQUEST_ID_HEADER = "X-Request-ID"

API_PREFIX = "/api/modpacks"

# Provider ordering: higher values are visited first and win dedup ties
PRIORITY_MOD_API: int = 100
PRIORITY_RECIPE_VIEWER: int = 50
PRIORITY_VANILLA: int = 10

DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_RETRY_BASE_DELAY: float = 1.0
DEFAULT_RETRY_BACKOFF_MULTIPLIER: float = 2.0
DEFAULT_RETRY_MAX_DELAY: float = 30.0

DEFAULT_SYNC_PAYLOAD_LIMIT: int = 8 * MIB

