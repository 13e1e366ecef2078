"""
owot-client: synchronization client for Our World of Text

Keep a local view of a world's cells and write to it politely.

Quick Start:
    >>> import asyncio
    >>> from owot_client import WorldClient, TextEdit
    >>> async def main():
    ...     async with WorldClient("myworld") as world:
    ...         world.stage([TextEdit(0, 0, "Hello").with_fg(0x1E66F5)])
    ...         world.collapse_overlaps()
    ...         await world.remove_duplicates()
    ...         if await world.submit():
    ...             await world.wait_for_drain()
    >>> asyncio.run(main())

Features:
    - World <-> chunk coordinate mapping
    - Canonical cell form so equivalent encodings compare equal
    - Chunk cache with paginated region fetches
    - Batched, rate-limited writes retried until accepted
    - Skips writes the world already shows
"""

__version__ = "0.1.0"

# Core types
from owot_client.core.cell import Cell, CellSource, CoordLink, UrlLink
from owot_client.core.chunk import Chunk
from owot_client.core.coords import from_chunk, to_chunk
from owot_client.core.normalize import normalize

# Components
from owot_client.config import ClientConfig
from owot_client.net.session import ConnectionSession
from owot_client.sync.cache import ChunkCache
from owot_client.sync.queue import EditQueue, PendingEdit
from owot_client.client import WorldClient

# Edit builders
from owot_client.create.edits import RegionEdit, TextEdit, TranslateEdit

# Errors
from owot_client.errors import (
    ConnectionClosedError,
    OwotError,
    ProtocolError,
    ReadTimeoutError,
    ServerError,
)

__all__ = [
    # Version
    "__version__",
    # Core types
    "Cell",
    "CellSource",
    "Chunk",
    "CoordLink",
    "UrlLink",
    "from_chunk",
    "to_chunk",
    "normalize",
    # Components
    "ClientConfig",
    "ConnectionSession",
    "ChunkCache",
    "EditQueue",
    "PendingEdit",
    "WorldClient",
    # Edit builders
    "RegionEdit",
    "TextEdit",
    "TranslateEdit",
    # Errors
    "ConnectionClosedError",
    "OwotError",
    "ProtocolError",
    "ReadTimeoutError",
    "ServerError",
]
