"""Local state kept in sync with the world: chunk cache and edit queue."""

from owot_client.sync.cache import ChunkCache
from owot_client.sync.queue import EditQueue, PendingEdit

__all__ = ["ChunkCache", "EditQueue", "PendingEdit"]
