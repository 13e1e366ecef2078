"""Fluent builders that lay out cells for staging.

Each builder is a :class:`~owot_client.core.cell.CellSource`: the edit
queue only calls ``into_cells()`` and never looks at how the cells were
laid out.

Example:
    >>> title = (TextEdit(10, 2, "Hello, world")
    ...     .with_fg(0x89B4FA)
    ...     .with_bg(0x1E1E2E)
    ...     .bolded())
    >>> panel = RegionEdit(8, 1, 16, 3, " ").with_bg(0x1E1E2E)
    >>> world.stage([panel, title])
"""

from typing import Iterable, Iterator

import grapheme

from owot_client.core.cell import Cell, CellSource, CoordLink, Link, UrlLink


class StyledEdit:
    """Colors, styles and link shared by every builder."""

    def __init__(self) -> None:
        self.fg: int | None = None
        self.bg: int | None = None
        self.bold = False
        self.italic = False
        self.underline = False
        self.strikethrough = False
        self.link: Link | None = None

    def with_fg(self, color: int) -> "StyledEdit":
        """Set foreground color (0xRRGGBB)."""
        self.fg = color
        return self

    def with_bg(self, color: int) -> "StyledEdit":
        """Set background color (0xRRGGBB)."""
        self.bg = color
        return self

    def bolded(self, on: bool = True) -> "StyledEdit":
        self.bold = on
        return self

    def italicized(self, on: bool = True) -> "StyledEdit":
        self.italic = on
        return self

    def underlined(self, on: bool = True) -> "StyledEdit":
        self.underline = on
        return self

    def struck(self, on: bool = True) -> "StyledEdit":
        self.strikethrough = on
        return self

    def with_link(self, link: Link | str) -> "StyledEdit":
        """Attach a link; a plain string is taken as a URL."""
        self.link = UrlLink(link) if isinstance(link, str) else link
        return self

    def with_coord_link(self, x: int, y: int) -> "StyledEdit":
        self.link = CoordLink(x, y)
        return self

    def _cell(self, x: int, y: int, char: str) -> Cell:
        return Cell(
            x,
            y,
            char,
            fg=self.fg,
            bg=self.bg,
            bold=self.bold,
            italic=self.italic,
            underline=self.underline,
            strikethrough=self.strikethrough,
            link=self.link,
        )


class TextEdit(StyledEdit):
    """
    A string laid out from (x, y), one grapheme per cell.

    Newlines return to column ``x``. ``max_width`` wraps long lines and
    ``max_height`` cuts off the rest. By default wrapping moves whole words
    to the next line; :meth:`break_anywhere` wraps mid-word instead.
    """

    def __init__(self, x: int, y: int, text: str):
        super().__init__()
        self.x = x
        self.y = y
        self.text = text
        self.max_width: int | None = None
        self.max_height: int | None = None
        self.vertical = False
        self.break_words = False

    def with_max_width(self, width: int) -> "TextEdit":
        self.max_width = width
        return self

    def with_max_height(self, height: int) -> "TextEdit":
        self.max_height = height
        return self

    def vertically(self) -> "TextEdit":
        """Lay the text out top to bottom."""
        self.vertical = True
        return self

    def break_anywhere(self) -> "TextEdit":
        self.break_words = True
        return self

    def _lines(self) -> Iterator[str]:
        width = self.max_width
        for paragraph in self.text.split("\n"):
            if width is None or grapheme.length(paragraph) <= width:
                yield paragraph
            elif self.break_words:
                clusters = list(grapheme.graphemes(paragraph))
                for start in range(0, len(clusters), width):
                    yield "".join(clusters[start:start + width])
            else:
                line = ""
                for word in paragraph.split(" "):
                    candidate = f"{line} {word}" if line else word
                    if grapheme.length(candidate) <= width:
                        line = candidate
                        continue
                    if line:
                        yield line
                    while grapheme.length(word) > width:
                        yield grapheme.slice(word, 0, width)
                        word = grapheme.slice(word, width)
                    line = word
                yield line

    def into_cells(self) -> Iterator[Cell]:
        if self.vertical:
            text = self.text.replace("\n", "")
            for offset, char in enumerate(grapheme.graphemes(text)):
                yield self._cell(self.x, self.y + offset, char)
            return

        for row, line in enumerate(self._lines()):
            if self.max_height is not None and row >= self.max_height:
                break
            for col, char in enumerate(grapheme.graphemes(line)):
                yield self._cell(self.x + col, self.y + row, char)


class RegionEdit(StyledEdit):
    """A rectangle filled with one character."""

    def __init__(self, x: int, y: int, width: int, height: int, char: str = " "):
        super().__init__()
        if width < 0 or height < 0:
            raise ValueError(f"Region size must not be negative, got {width}x{height}")
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.char = char

    def into_cells(self) -> Iterator[Cell]:
        for y in range(self.y, self.y + self.height):
            for x in range(self.x, self.x + self.width):
                yield self._cell(x, y, self.char)


class TranslateEdit:
    """Shift a group of sources by (dx, dy)."""

    def __init__(self, dx: int, dy: int, children: Iterable[CellSource]):
        self.dx = dx
        self.dy = dy
        self.children = list(children)

    def into_cells(self) -> Iterator[Cell]:
        for child in self.children:
            for cell in child.into_cells():
                yield cell.moved(self.dx, self.dy)
