"""24-bit color helpers.

Colors travel over the wire as plain ints (``0xRRGGBB``). These helpers
convert between that form and RGB tuples and measure how far apart two
colors are.
"""

import re

RGB = tuple[int, int, int]


def hex_to_rgb(color: int) -> RGB:
    """Split a packed ``0xRRGGBB`` int into an RGB tuple."""
    if not 0 <= color <= 0xFFFFFF:
        raise ValueError(f"Color must be 0x000000-0xFFFFFF, got {color:#x}")
    return ((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF)


def rgb_to_hex(rgb: RGB) -> int:
    """Pack an RGB tuple into a ``0xRRGGBB`` int."""
    r, g, b = rgb
    if not all(0 <= c <= 255 for c in (r, g, b)):
        raise ValueError(f"RGB values must be 0-255, got ({r}, {g}, {b})")
    return (r << 16) | (g << 8) | b


def color_distance(a: int, b: int) -> float:
    """Euclidean distance between two packed colors in RGB space."""
    if a == b:
        return 0.0
    ar, ag, ab = hex_to_rgb(a)
    br, bg, bb = hex_to_rgb(b)
    return ((ar - br)**2 + (ag - bg)**2 + (ab - bb)**2) ** 0.5


def same_color(a: int | None, b: int | None) -> bool:
    """True if both colors are unset, or both set and visually identical."""
    if a is None or b is None:
        return a is b
    return color_distance(a, b) == 0


def parse_color(color: str) -> int:
    """Parse a color string to a packed int.
    
    Accepts:
        - Named colors: "black", "white", "red", "green", "blue", "magenta", "cyan", "yellow"
        - Hex colors: "#FF00FF", "FF00FF", "#F0F", "F0F", "0xFF00FF"
        - RGB tuples: "255,0,255" or "255 0 255"
    """
    color = color.strip().lower()
    
    named = {
        "black": 0x000000,
        "white": 0xFFFFFF,
        "red": 0xFF0000,
        "green": 0x00FF00,
        "blue": 0x0000FF,
        "magenta": 0xFF00FF,
        "cyan": 0x00FFFF,
        "yellow": 0xFFFF00,
    }
    if color in named:
        return named[color]
    
    # RGB tuple: "255,0,255" or "255 0 255"
    match = re.fullmatch(r'(\d+)[,\s]+(\d+)[,\s]+(\d+)', color)
    if match:
        return rgb_to_hex((int(match.group(1)), int(match.group(2)), int(match.group(3))))
    
    # Hex color
    for prefix in ("#", "0x"):
        if color.startswith(prefix):
            color = color[len(prefix):]
    if len(color) == 3:
        # Short form: F0F -> FF00FF
        color = color[0]*2 + color[1]*2 + color[2]*2
    if len(color) == 6:
        try:
            return int(color, 16)
        except ValueError:
            pass
    
    raise ValueError(f"Cannot parse color: {color!r}")
