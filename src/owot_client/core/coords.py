"""Mapping between world cell coordinates and chunk addressing."""

from typing import Iterable

from owot_client.core.constants import CHUNK_HEIGHT, CHUNK_WIDTH


def to_chunk(x: int, y: int) -> tuple[int, int, int, int]:
    """
    Map a world cell to ``(chunk_x, chunk_y, local_x, local_y)``.
    
    Uses floor division, so negative coordinates land in the chunk to
    their left/above with a non-negative local offset.
    """
    chunk_x, local_x = divmod(x, CHUNK_WIDTH)
    chunk_y, local_y = divmod(y, CHUNK_HEIGHT)
    return chunk_x, chunk_y, local_x, local_y


def from_chunk(chunk_x: int, chunk_y: int, local_x: int, local_y: int) -> tuple[int, int]:
    """Inverse of :func:`to_chunk`."""
    return chunk_x * CHUNK_WIDTH + local_x, chunk_y * CHUNK_HEIGHT + local_y


def chunk_bounds(points: Iterable[tuple[int, int]]) -> tuple[int, int, int, int] | None:
    """Inclusive chunk rectangle ``(min_x, min_y, max_x, max_y)`` covering world points."""
    bounds = None
    for x, y in points:
        cx, cy, _, _ = to_chunk(x, y)
        if bounds is None:
            bounds = [cx, cy, cx, cy]
        else:
            bounds[0] = min(bounds[0], cx)
            bounds[1] = min(bounds[1], cy)
            bounds[2] = max(bounds[2], cx)
            bounds[3] = max(bounds[3], cy)
    return tuple(bounds) if bounds is not None else None
