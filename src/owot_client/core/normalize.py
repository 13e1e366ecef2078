"""Canonical form for cells.

Several visual encodings of a cell look identical on screen (a full block
is a space painted with the block's color, a lower half block is an upper
half block with its colors swapped, text drawn in its own background color
is invisible). Writes and reads are both passed through :func:`normalize`
so that cells can be compared field-for-field.
"""

import unicodedata
from dataclasses import replace

from owot_client.core.cell import Cell
from owot_client.core.color import same_color
from owot_client.core.constants import BLACK, BLOCK


def normalize(cell: Cell) -> Cell:
    """Return the canonical form of ``cell``. Idempotent."""
    char = unicodedata.normalize("NFC", cell.char)
    fg = cell.fg
    bg = cell.bg
    
    if char == BLOCK["full"]:
        char, fg, bg = ' ', BLACK, BLACK if fg is None else fg
    elif bg is not None and same_color(BLACK if fg is None else fg, bg):
        char, fg, bg = ' ', BLACK, bg
    elif char == BLOCK["lower"] and bg is not None:
        char, fg, bg = BLOCK["upper"], bg, BLACK if fg is None else fg
    
    bold = cell.bold
    italic = cell.italic
    if char == ' ':
        bold = italic = False
        if not (cell.underline or cell.strikethrough or cell.link is not None):
            fg = None
    
    # Black is the default foreground
    if fg == BLACK:
        fg = None
    
    return replace(cell, char=char, fg=fg, bg=bg, bold=bold, italic=italic)
