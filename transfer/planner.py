"""Splits payloads into fixed-size chunks."""

from typing import List

from common.types import ChunkRange


def count_chunks(total_bytes: int, chunk_size: int) -> int:
    """
    Number of chunks needed for a payload.

    Args:
        total_bytes: Payload size in bytes
        chunk_size: Chunk size in bytes (> 0)

    Returns:
        ceil(total_bytes / chunk_size), 0 for an empty payload
    """
    _check(total_bytes, chunk_size)
    return (total_bytes + chunk_size - 1) // chunk_size


def plan_chunks(total_bytes: int, chunk_size: int) -> List[ChunkRange]:
    """
    Plan contiguous, non-overlapping chunks covering [0, total_bytes).

    Args:
        total_bytes: Payload size in bytes (0 is legal)
        chunk_size: Chunk size in bytes (> 0)

    Returns:
        Chunk ranges ordered by index; the last one may be short

    Raises:
        ValueError: If chunk_size <= 0 or total_bytes < 0
    """
    _check(total_bytes, chunk_size)
    return [
        ChunkRange(index=index, start=start, end=min(start + chunk_size, total_bytes))
        for index, start in enumerate(range(0, total_bytes, chunk_size))
    ]


def slice_chunk(data: bytes, chunk: ChunkRange) -> bytes:
    return data[chunk.start:chunk.end]


def _check(total_bytes: int, chunk_size: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if total_bytes < 0:
        raise ValueError(f"total_bytes must not be negative, got {total_bytes}")
