"""Chunk - immutable snapshot of a 16x8 tile of the world."""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Iterator

from owot_client.codec.wire import decode_color, decode_content, decode_link, style_flags
from owot_client.core.cell import Cell
from owot_client.core.constants import CHUNK_AREA, CHUNK_WIDTH
from owot_client.core.coords import from_chunk
from owot_client.core.normalize import normalize
from owot_client.errors import ProtocolError


@dataclass(frozen=True)
class Chunk:
    """
    A fetched chunk as the server last reported it.

    Snapshots are never patched: a fetch response or update notification
    produces a new Chunk that replaces the cached one. An empty chunk (the
    server sent ``null``) is a normal value with ``is_empty`` set.
    """
    x: int
    y: int
    content: str = ""
    color: tuple[int, ...] = ()
    bgcolor: tuple[int, ...] = ()
    cell_props: dict[int, dict[int, Any]] = field(default_factory=dict)
    writability: int | None = None
    is_empty: bool = False

    @classmethod
    def empty(cls, x: int, y: int) -> "Chunk":
        return cls(x=x, y=y, is_empty=True)

    @classmethod
    def from_wire(cls, x: int, y: int, data: dict[str, Any] | None) -> "Chunk":
        """Build a snapshot from a ``tiles`` entry (``None`` means empty)."""
        if data is None:
            return cls.empty(x, y)
        try:
            props = data.get("properties") or {}
            cell_props = {
                int(row): {int(col): value for col, value in cols.items()}
                for row, cols in (props.get("cell_props") or {}).items()
            }
            return cls(
                x=x,
                y=y,
                content=str(data.get("content") or ""),
                color=tuple(props.get("color") or ()),
                bgcolor=tuple(props.get("bgcolor") or ()),
                cell_props=cell_props,
                writability=props.get("writability"),
            )
        except (AttributeError, TypeError, ValueError):
            raise ProtocolError(f"Malformed tile ({x}, {y}): {data!r:.80}") from None

    @cached_property
    def _decoded(self) -> list[tuple[str, int]]:
        return decode_content(self.content)

    def cell(self, local_x: int, local_y: int) -> Cell | None:
        """Decode the cell at a local offset, or None for an empty chunk."""
        if self.is_empty:
            return None
        index = local_y * CHUNK_WIDTH + local_x
        if not 0 <= index < CHUNK_AREA:
            raise IndexError(f"Local offset ({local_x}, {local_y}) outside chunk")

        decoded = self._decoded
        char, bits = decoded[index] if index < len(decoded) else (' ', 0)
        fg = decode_color(self.color[index]) if index < len(self.color) else None
        bg = decode_color(self.bgcolor[index]) if index < len(self.bgcolor) else None
        link = decode_link(self.cell_props.get(local_y, {}).get(local_x))

        x, y = from_chunk(self.x, self.y, local_x, local_y)
        return normalize(Cell(x, y, char, fg=fg, bg=bg, link=link, **style_flags(bits)))

    def cells(self) -> Iterator[Cell]:
        """Iterate over all cells in row-major order (nothing for an empty chunk)."""
        if self.is_empty:
            return
        for index in range(CHUNK_AREA):
            cell = self.cell(index % CHUNK_WIDTH, index // CHUNK_WIDTH)
            if cell is not None:
                yield cell
