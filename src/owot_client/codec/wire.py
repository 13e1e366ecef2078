"""Encoding and decoding of the JSON wire protocol.

Chunks are addressed on the wire by ``"<chunk_y>,<chunk_x>"`` keys. Cell
content is packed one grapheme per cell, where a grapheme may carry a
trailing decoration codepoint in ``U+20F0..U+20FF`` whose low nibble holds
the style flags. Everything outside this module sees styles as four named
booleans.
"""

import json
from typing import Any

import grapheme

from owot_client.core.cell import Cell, CoordLink, Link, UrlLink
from owot_client.core.constants import (
    BLACK,
    NO_COLOR,
    STYLE_BASE,
    STYLE_BOLD,
    STYLE_ITALIC,
    STYLE_MAX,
    STYLE_STRIKE,
    STYLE_UNDERLINE,
)
from owot_client.core.coords import to_chunk
from owot_client.errors import ProtocolError

Message = dict[str, Any]


# -----------------------------------------------------------------------------
# Styles
# -----------------------------------------------------------------------------

def is_style_mark(char: str) -> bool:
    return len(char) == 1 and STYLE_BASE <= ord(char) <= STYLE_MAX


def style_bits(bold: bool, italic: bool, underline: bool, strikethrough: bool) -> int:
    return (
        (STYLE_BOLD if bold else 0)
        | (STYLE_ITALIC if italic else 0)
        | (STYLE_UNDERLINE if underline else 0)
        | (STYLE_STRIKE if strikethrough else 0)
    )


def style_flags(bits: int) -> dict[str, bool]:
    """Unpack a style bitmask into Cell keyword arguments."""
    return {
        "bold": bool(bits & STYLE_BOLD),
        "italic": bool(bits & STYLE_ITALIC),
        "underline": bool(bits & STYLE_UNDERLINE),
        "strikethrough": bool(bits & STYLE_STRIKE),
    }


def encode_char(cell: Cell) -> str:
    """Character plus its decoration codepoint, if any style is set."""
    bits = style_bits(cell.bold, cell.italic, cell.underline, cell.strikethrough)
    if not bits:
        return cell.char
    return cell.char + chr(STYLE_BASE + bits)


def decode_content(content: str) -> list[tuple[str, int]]:
    """
    Split packed chunk content into ``(char, style_bits)`` per cell.
    
    Decoration codepoints are consumed rather than counted as cells. They
    normally cluster with the preceding grapheme, but unassigned marks in
    the band segment on their own, so both shapes are handled.
    """
    cells: list[tuple[str, int]] = []
    for cluster in grapheme.graphemes(content):
        base = ''.join(c for c in cluster if not is_style_mark(c))
        bits = 0
        for c in cluster:
            if is_style_mark(c):
                bits |= ord(c) - STYLE_BASE
        if not base:
            if cells:
                char, previous = cells[-1]
                cells[-1] = (char, previous | bits)
            continue
        cells.append((base, bits))
    return cells


# -----------------------------------------------------------------------------
# Addressing
# -----------------------------------------------------------------------------

def tile_key(chunk_x: int, chunk_y: int) -> str:
    return f"{chunk_y},{chunk_x}"


def parse_tile_key(key: str) -> tuple[int, int]:
    """Parse a ``"<chunk_y>,<chunk_x>"`` key into ``(chunk_x, chunk_y)``."""
    try:
        y, x = key.split(",")
        return int(x), int(y)
    except ValueError:
        raise ProtocolError(f"Malformed tile key: {key!r}") from None


# -----------------------------------------------------------------------------
# Outbound messages
# -----------------------------------------------------------------------------

def encode_edit(edit_id: int, timestamp: int, cell: Cell) -> list:
    """
    Build one positional write entry.
    
    ``[chunk_y, chunk_x, local_y, local_x, timestamp, char, id, fg?, bg?]``;
    bg can only be sent after fg, so an unset fg becomes black when bg is set.
    """
    cx, cy, lx, ly = to_chunk(cell.x, cell.y)
    entry: list = [cy, cx, ly, lx, timestamp, encode_char(cell), edit_id]
    if cell.fg is not None or cell.bg is not None:
        entry.append(BLACK if cell.fg is None else cell.fg)
    if cell.bg is not None:
        entry.append(cell.bg)
    return entry


def write_message(entries: list[list]) -> Message:
    return {"kind": "write", "edits": entries}


def fetch_message(min_x: int, min_y: int, max_x: int, max_y: int) -> Message:
    return {
        "kind": "fetch",
        "fetchRectangles": [{"minX": min_x, "minY": min_y, "maxX": max_x, "maxY": max_y}],
    }


def boundary_message(min_x: int, min_y: int, max_x: int, max_y: int) -> Message:
    return {
        "kind": "boundary",
        "minX": min_x,
        "minY": min_y,
        "maxX": max_x,
        "maxY": max_y,
        "centerX": (min_x + max_x) // 2,
        "centerY": (min_y + max_y) // 2,
    }


def link_message(x: int, y: int, link: Link) -> Message:
    """Attach ``link`` to the cell at world position (x, y)."""
    cx, cy, lx, ly = to_chunk(x, y)
    data: dict[str, Any] = {"tileY": cy, "tileX": cx, "charY": ly, "charX": lx}
    if isinstance(link, UrlLink):
        data["url"] = link.url
        return {"kind": "link", "type": "url", "data": data}
    data["link_tileX"] = link.x
    data["link_tileY"] = link.y
    return {"kind": "link", "type": "coord", "data": data}


# -----------------------------------------------------------------------------
# Inbound payloads
# -----------------------------------------------------------------------------

def decode_color(value: Any) -> int | None:
    if value is None or value == NO_COLOR:
        return None
    return int(value)


def decode_link(props: Any) -> Link | None:
    """Read the link out of one ``cell_props`` entry."""
    if not isinstance(props, dict):
        return None
    link = props.get("link")
    if not link:
        return None
    kind = link.get("type")
    if kind == "url":
        return UrlLink(link["url"])
    if kind == "coord":
        return CoordLink(int(link["link_tileX"]), int(link["link_tileY"]))
    raise ProtocolError(f"Unknown link type: {kind!r}")


def parse_message(raw: str | bytes) -> Message:
    """Decode one inbound frame."""
    try:
        message = json.loads(raw)
    except ValueError as exc:
        raise ProtocolError(f"Frame is not JSON: {exc}") from exc
    if not isinstance(message, dict) or "kind" not in message:
        raise ProtocolError(f"Frame has no message kind: {raw!r:.80}")
    return message
