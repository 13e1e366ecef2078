"""Cell - atomic unit of the world grid."""

from dataclasses import dataclass, replace
from typing import Iterable, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class UrlLink:
    """Link annotation pointing at a URL."""
    url: str


@dataclass(frozen=True, slots=True)
class CoordLink:
    """Link annotation pointing at another world coordinate."""
    x: int
    y: int


Link = UrlLink | CoordLink


@dataclass(frozen=True, slots=True)
class Cell:
    """
    A single character cell at a world position.
    
    ``fg``/``bg`` are packed 24-bit colors, ``None`` meaning unset: an
    unset foreground renders black, an unset background shows the world's
    ambient background.
    """
    x: int
    y: int
    char: str = ' '
    fg: int | None = None
    bg: int | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    link: Link | None = None
    
    def into_cells(self) -> Iterable["Cell"]:
        """A cell is its own, single-cell source."""
        yield self
    
    def moved(self, dx: int, dy: int) -> "Cell":
        """Return a copy shifted by (dx, dy)."""
        return replace(self, x=self.x + dx, y=self.y + dy)
    
    @property
    def position(self) -> tuple[int, int]:
        return self.x, self.y
    
    @property
    def has_style(self) -> bool:
        return self.bold or self.italic or self.underline or self.strikethrough


@runtime_checkable
class CellSource(Protocol):
    """Anything that can be flattened into cells: a Cell or an edit builder."""
    
    def into_cells(self) -> Iterable[Cell]:
        ...
