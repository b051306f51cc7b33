"""
Palette
=======

Fixed 8-color palette used for data dots (3 bits per dot).

Colors are chosen for maximum perceptual distance on a dark background
and are spread around the hue wheel, which lets the sampler classify
by hue instead of raw RGB distance.

Anchor dots are always pure white, independent of the palette.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Color:
    """RGB color, 0-255 per channel."""

    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        """CSS hex string, e.g. '#ff4444'."""
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)


PALETTE: Tuple[Color, ...] = (
    Color(0xFF, 0x44, 0x44),  # 000: Red
    Color(0xFF, 0x8C, 0x00),  # 001: Orange
    Color(0xFF, 0xD7, 0x00),  # 010: Gold
    Color(0x44, 0xFF, 0x44),  # 011: Green
    Color(0x00, 0xCE, 0xD1),  # 100: Cyan
    Color(0x44, 0x88, 0xFF),  # 101: Blue
    Color(0xAA, 0x44, 0xFF),  # 110: Purple
    Color(0xFF, 0x44, 0xFF),  # 111: Magenta
)

PALETTE_NAMES: Tuple[str, ...] = (
    "red",
    "orange",
    "gold",
    "green",
    "cyan",
    "blue",
    "purple",
    "magenta",
)

ANCHOR_COLOR = Color(0xFF, 0xFF, 0xFF)

# Rendered frame background (#0a0a1a)
BACKGROUND_COLOR = Color(0x0A, 0x0A, 0x1A)
