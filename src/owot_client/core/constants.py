"""Shared constants for the world grid and its wire protocol."""

# Chunk geometry (cells per chunk)
CHUNK_WIDTH = 16
CHUNK_HEIGHT = 8
CHUNK_AREA = CHUNK_WIDTH * CHUNK_HEIGHT

# Colors are 24-bit RGB packed into an int
BLACK = 0x000000
WHITE = 0xFFFFFF
NO_COLOR = -1  # bgcolor value the server uses for "unset"

# Block drawing characters
BLOCK = {
    "full": "█",       # Full block
    "upper": "▀",      # Upper half block
    "lower": "▄",      # Lower half block
    "left": "▌",       # Left half block
    "right": "▐",      # Right half block
}

# Text decorations ride along as one extra codepoint after the character.
# The low nibble is a bitmask: bold, italic, underline, strikethrough.
STYLE_BASE = 0x20F0
STYLE_MAX = 0x20FF
STYLE_BOLD = 0b1000
STYLE_ITALIC = 0b0100
STYLE_UNDERLINE = 0b0010
STYLE_STRIKE = 0b0001

# Server limits
MAX_EDITS_PER_WRITE = 512
MAX_FETCH_AREA = 2048  # chunks per fetch rectangle

# Write rejection reason the server sends for expected, harmless refusals
BENIGN_REJECTION = 2

DEFAULT_BASE_URL = "wss://ourworldoftext.com"
