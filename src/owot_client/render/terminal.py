"""Render world cells to terminal-compatible escape sequences."""

from typing import Iterable

from owot_client.core.cell import Cell
from owot_client.core.color import hex_to_rgb
from owot_client.core.constants import BLACK, WHITE


class TerminalRenderer:
    """
    Render rows of cells to 24-bit ANSI escape sequences.

    Optimizes output by only emitting SGR codes when attributes change.
    ``None`` entries (cells in empty chunks) render as blanks. Cells with no
    background are drawn on ``ambient_bg``, the world's page color; pass
    ``None`` to use the terminal's own background instead.
    """

    def __init__(self, reset_at_end: bool = True, ambient_bg: int | None = WHITE):
        self.reset_at_end = reset_at_end
        self.ambient_bg = ambient_bg

    def render(self, rows: Iterable[Iterable[Cell | None]]) -> str:
        """Render rows to an ANSI string."""
        lines: list[str] = []

        for row in rows:
            line_parts: list[str] = []
            last: tuple | None = None

            for cell in row:
                if cell is None:
                    cell = Cell(0, 0)

                state = (
                    BLACK if cell.fg is None else cell.fg,
                    self.ambient_bg if cell.bg is None else cell.bg,
                    cell.bold,
                    cell.italic,
                    cell.underline,
                    cell.strikethrough,
                )
                if state != last:
                    line_parts.append(self._sgr(*state))
                    last = state

                line_parts.append(cell.char)

            # Reset at end of each line to prevent color bleeding into clear-to-EOL
            line_parts.append('\x1b[0m')
            lines.append(''.join(line_parts))

        result = '\n'.join(lines)

        if self.reset_at_end:
            result += '\x1b[0m'

        return result

    @staticmethod
    def _sgr(fg: int, bg: int | None, bold: bool, italic: bool, underline: bool, strike: bool) -> str:
        parts = ['0']
        if bold:
            parts.append('1')
        if italic:
            parts.append('3')
        if underline:
            parts.append('4')
        if strike:
            parts.append('9')
        r, g, b = hex_to_rgb(fg)
        parts.append(f"38;2;{r};{g};{b}")
        if bg is not None:
            r, g, b = hex_to_rgb(bg)
            parts.append(f"48;2;{r};{g};{b}")
        return f"\x1b[{';'.join(parts)}m"
