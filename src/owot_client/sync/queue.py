"""Edit queue and write synchronization.

Edits are staged under locally assigned ids, sent in batches, and kept
until the server accepts them. After every acknowledgement that leaves
edits behind, the queue resubmits once the rate-limit delay has passed,
so an edit is retried until it is accepted or a reconciliation pass finds
that the world already shows it.

Lifecycle of one edit::

    staged -> submitted -> accepted               (removed)
                        -> rejected, benign       (kept, retried quietly)
                        -> rejected, other        (kept and logged, or dropped
                                                   if the reason is in
                                                   ``drop_rejections``)
                        -> no answer yet          (resubmitted on next tick)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from itertools import islice
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Mapping

from owot_client.codec.wire import Message, encode_edit, link_message, write_message
from owot_client.config import ClientConfig
from owot_client.core.cell import Cell, CellSource
from owot_client.core.coords import chunk_bounds
from owot_client.core.normalize import normalize
from owot_client.errors import ProtocolError
from owot_client.sync.cache import ChunkCache

logger = logging.getLogger(__name__)

Sender = Callable[[Message], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class PendingEdit:
    """A staged cell write waiting for the server to accept it."""
    id: int
    cell: Cell
    timestamp: int

    @property
    def position(self) -> tuple[int, int]:
        return self.cell.x, self.cell.y

    def to_wire(self) -> list:
        return encode_edit(self.id, self.timestamp, self.cell)


class EditQueue:
    """
    Pending edits keyed by local id, in staging order.

    Ids count up from 1 and are only reset once the queue is empty, so an
    id is never reused while an edit that carries it may still be acked.
    """

    def __init__(self, send: Sender, cache: ChunkCache, config: ClientConfig | None = None):
        self._send = send
        self._cache = cache
        self.config = config or ClientConfig()
        self._edits: dict[int, PendingEdit] = {}
        self._next_id = 0
        self._drain_waiters: list[asyncio.Future] = []
        self._retry: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._edits)

    @property
    def pending(self) -> Mapping[int, PendingEdit]:
        """Read-only view of the pending edits by id."""
        return MappingProxyType(self._edits)

    @property
    def next_id(self) -> int:
        """The id counter (last id handed out, 0 after a reset)."""
        return self._next_id

    # -------------------------------------------------------------------------
    # Staging
    # -------------------------------------------------------------------------

    def stage(self, sources: Iterable[CellSource]) -> list[int]:
        """Normalize and queue every cell the sources produce. Returns the new ids."""
        timestamp = int(time.time() * 1000)
        ids = []
        for source in sources:
            for cell in source.into_cells():
                self._next_id += 1
                self._edits[self._next_id] = PendingEdit(self._next_id, normalize(cell), timestamp)
                ids.append(self._next_id)
        return ids

    def clear(self) -> None:
        """
        Discard every pending edit and start numbering from scratch.

        Ids restart at 1 even if a batch is still in flight. A late ack for
        one of the discarded edits carries an id that may by then belong to
        a newly staged edit, which would be removed as accepted. Wait for
        outstanding acks before clearing if that matters. The same holds when
        :meth:`remove_duplicates` empties the queue.
        """
        self._edits.clear()
        self._drained()

    def collapse_overlaps(self) -> int:
        """Keep only the latest edit per coordinate. Returns how many were dropped."""
        latest: dict[tuple[int, int], int] = {}
        for edit_id, edit in self._edits.items():
            latest[edit.position] = edit_id
        keep = set(latest.values())
        dropped = [edit_id for edit_id in self._edits if edit_id not in keep]
        for edit_id in dropped:
            del self._edits[edit_id]
        if dropped:
            logger.debug("Collapsed %d overlapping edits", len(dropped))
        return len(dropped)

    def edit_region(self) -> tuple[int, int, int, int] | None:
        """Inclusive chunk rectangle covering every pending edit."""
        return chunk_bounds(edit.position for edit in self._edits.values())

    async def remove_duplicates(self, load_region: bool = True) -> int:
        """
        Drop pending edits the world already shows.

        Each pending edit is compared with the normalized remote cell at its
        position; matching edits are removed without ever being sent. With
        ``load_region`` the whole edited area is fetched up front instead of
        chunk by chunk.
        """
        region = self.edit_region()
        if region is None:
            return 0
        if load_region:
            min_x, min_y, max_x, max_y = region
            logger.info("Loading edited region (%dx%d chunks)",
                        max_x - min_x + 1, max_y - min_y + 1)
            await self._cache.load_region(*region)

        removed = 0
        for edit_id, edit in list(self._edits.items()):
            current = await self._cache.get_cell(*edit.position)
            if current is not None and current == edit.cell and edit_id in self._edits:
                del self._edits[edit_id]
                removed += 1
        logger.info("Deleted %d duplicate edits", removed)
        if not self._edits:
            self._drained()
        return removed

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def submit(self) -> bool:
        """Send the next batch of pending edits. Returns False if there was nothing to send."""
        if not self._edits:
            self._next_id = 0
            return False

        logger.info("Syncing %d edits", len(self._edits))
        batch = [edit.to_wire() for edit in islice(self._edits.values(), self.config.max_batch)]
        await self._send(write_message(batch))
        return True

    async def wait_for_drain(self) -> None:
        """Wait until every pending edit has been accepted or removed."""
        if not self._edits:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._drain_waiters.append(waiter)
        await waiter
        # Link messages for the last accepted edits may still be in flight
        if self._tasks:
            await asyncio.wait(list(self._tasks))

    def handle_ack(self, message: Message) -> None:
        """Process a ``write`` acknowledgement from the server."""
        try:
            accepted = [int(edit_id) for edit_id in message.get("accepted") or []]
            rejected = {int(key): reason for key, reason in (message.get("rejected") or {}).items()}
        except (AttributeError, TypeError, ValueError):
            raise ProtocolError(f"Malformed write acknowledgement: {message!r:.120}") from None

        for edit_id in accepted:
            edit = self._edits.pop(edit_id, None)
            if edit is not None and edit.cell.link is not None:
                self._spawn(self._send(link_message(edit.cell.x, edit.cell.y, edit.cell.link)))

        for edit_id, reason in rejected.items():
            if reason in self.config.drop_rejections:
                self._edits.pop(edit_id, None)
                logger.warning("Edit %d rejected (%s); dropping it", edit_id, reason)
            elif reason != self.config.benign_rejection:
                logger.warning("Edit %d rejected: %s", edit_id, reason)

        if self._edits:
            self._schedule_retry()
        else:
            self._drained()

    def _schedule_retry(self) -> None:
        if self._retry is not None:
            return
        loop = asyncio.get_running_loop()
        self._retry = loop.call_later(self.config.rate_limit_ms / 1000, self._retry_due)

    def _retry_due(self) -> None:
        self._retry = None
        self._spawn(self.submit())

    def _cancel_retry(self) -> None:
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None

    def _drained(self) -> None:
        self._cancel_retry()
        self._next_id = 0
        waiters, self._drain_waiters = self._drain_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background send failed", exc_info=task.exception())
