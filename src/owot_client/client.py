"""WorldClient - one connection, its chunk cache and its edit queue."""

from typing import Iterable

from owot_client.config import ClientConfig
from owot_client.core.cell import Cell, CellSource
from owot_client.core.chunk import Chunk
from owot_client.events import EventHub
from owot_client.net.session import CloseHandler, ConnectionSession, Connector
from owot_client.sync.cache import ChunkCache
from owot_client.sync.queue import EditQueue


class WorldClient:
    """
    High-level client for one world.

    Wires the session's inbound dispatch to the cache (``fetch`` and
    ``tileUpdate``) and to the edit queue (``write`` acknowledgements).

    Example:
        >>> async with WorldClient("myworld") as world:
        ...     world.stage([Cell(0, 0, "A", fg=0x112233)])
        ...     world.collapse_overlaps()
        ...     await world.remove_duplicates()
        ...     if await world.submit():
        ...         await world.wait_for_drain()
    """

    def __init__(
        self,
        world: str = "",
        token: str | None = None,
        *,
        config: ClientConfig | None = None,
        connector: Connector | None = None,
        on_close: CloseHandler | None = None,
    ):
        self.config = config or ClientConfig()
        self.session = ConnectionSession(
            world, token, config=self.config, connector=connector, on_close=on_close,
        )
        self.cache = ChunkCache(self.session.send, self.config)
        self.queue = EditQueue(self.session.send, self.cache, self.config)

        self.session.add_handler("fetch", self.cache.handle_tiles)
        self.session.add_handler("tileUpdate", self.cache.handle_tiles)
        self.session.add_handler("write", self.queue.handle_ack)

    async def __aenter__(self) -> "WorldClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    @property
    def world(self) -> str:
        return self.session.world

    @property
    def events(self) -> EventHub:
        return self.session.events

    @property
    def commands(self) -> EventHub:
        return self.session.commands

    @property
    def is_ready(self) -> bool:
        return self.session.is_ready

    async def connect(self) -> None:
        """Open the connection and wait for the handshake."""
        self.session.start()
        await self.session.ready

    async def close(self) -> None:
        await self.session.close()

    async def subscribe_commands(self) -> None:
        await self.session.subscribe_commands()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_chunk(self, chunk_x: int, chunk_y: int) -> Chunk:
        return await self.cache.get_chunk(chunk_x, chunk_y)

    def try_get_chunk(self, chunk_x: int, chunk_y: int) -> Chunk | None:
        return self.cache.try_get_chunk(chunk_x, chunk_y)

    async def get_cell(self, x: int, y: int) -> Cell | None:
        return await self.cache.get_cell(x, y)

    async def load_region(self, min_x: int, min_y: int, max_x: int, max_y: int) -> None:
        await self.cache.load_region(min_x, min_y, max_x, max_y)

    async def set_update_region(self, min_x: int, min_y: int, max_x: int, max_y: int) -> None:
        await self.cache.set_update_region(min_x, min_y, max_x, max_y)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def stage(self, sources: Iterable[CellSource]) -> list[int]:
        return self.queue.stage(sources)

    queue_edits = stage

    async def submit(self) -> bool:
        return await self.queue.submit()

    async def send_edits(self, sources: Iterable[CellSource]) -> bool:
        """Stage and immediately submit."""
        self.queue.stage(sources)
        return await self.queue.submit()

    async def wait_for_drain(self) -> None:
        await self.queue.wait_for_drain()

    def collapse_overlaps(self) -> int:
        return self.queue.collapse_overlaps()

    async def remove_duplicates(self, load_region: bool = True) -> int:
        return await self.queue.remove_duplicates(load_region)

    def clear(self) -> None:
        self.queue.clear()

    def edit_region(self) -> tuple[int, int, int, int] | None:
        return self.queue.edit_region()

    @property
    def pending_count(self) -> int:
        return len(self.queue)
