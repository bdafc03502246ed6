"""SHA-256 content hashing helpers shared by the client and the server."""

import hashlib
from typing import Iterable, Optional, Union

from common.constants import HASH_PREFIX


def compute_hash(content: Union[bytes, str]) -> str:
    """
    Compute a prefixed SHA-256 hash for the given content.

    Args:
        content: Bytes to hash; strings are encoded as UTF-8

    Returns:
        Hash string in the form "sha256:<lowercase hex>"
    """
    if isinstance(content, str):
        content = content.encode('utf-8')
    return HASH_PREFIX + hashlib.sha256(content).hexdigest()


def compute_entries_hash(entries: Iterable[str]) -> Optional[str]:
    """
    Compute an order-independent hash over a set of string entries.

    Entries are sorted lexicographically and joined with newlines before
    hashing, so the same set always yields the same hash.

    Args:
        entries: Canonical entry strings (e.g. "projectId:fileId")

    Returns:
        Prefixed hash string, or None when there are no entries
    """
    ordered = sorted(entries)
    if not ordered:
        return None
    return compute_hash("\n".join(ordered))


def verify_hash(content: Union[bytes, str], expected: str) -> bool:
    """
    Verify that content matches an expected prefixed hash.

    Args:
        content: Bytes or string to verify
        expected: Expected "sha256:<hex>" string

    Returns:
        True if hash matches, False otherwise
    """
    return compute_hash(content) == expected


class IncrementalHasher:
    """
    Calculate a prefixed SHA-256 hash incrementally for streamed data.

    Usage:
        hasher = IncrementalHasher()
        hasher.update(chunk1)
        hasher.update(chunk2)
        content_hash = hasher.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False

    def update(self, data: bytes) -> None:
        """
        Update hash with new data.

        Args:
            data: Bytes to add to the hash calculation
        """
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)

    def finalize(self) -> str:
        """
        Finalize hash calculation and return result.

        Returns:
            Hash string in the form "sha256:<lowercase hex>"
        """
        self._finalized = True
        return HASH_PREFIX + self._hasher.hexdigest()

    def reset(self) -> None:
        """Reset hasher to initial state."""
        self._hasher = hashlib.sha256()
        self._finalized = False
