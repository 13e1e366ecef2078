"""Core data structures for the world grid."""

from owot_client.core.cell import Cell, CellSource, CoordLink, UrlLink
from owot_client.core.coords import from_chunk, to_chunk
from owot_client.core.normalize import normalize

__all__ = ["Cell", "CellSource", "CoordLink", "UrlLink", "from_chunk", "to_chunk", "normalize"]
