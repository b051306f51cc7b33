"""
Layout Models
=============

Precomputed geometry for a protocol configuration.

All positions are NORMALIZED: the full pattern fits inside a unit circle
centered at (0, 0). X increases rightward and Y increases downward
(screen convention), so an angle of 270 degrees points to the bottom.

Produced once per session by geometry.compute_layout() and never mutated.
"""

from dataclasses import dataclass
from typing import List, Tuple

from dotbeam.models.protocol import ProtocolConfig


@dataclass(frozen=True, slots=True)
class Position:
    """
    Normalized point in pattern space.

    Attributes:
        x: Horizontal coordinate (-1.0 to 1.0)
        y: Vertical coordinate (-1.0 to 1.0, downward positive)
        angle: Polar angle in degrees (mathematical convention)
    """

    x: float
    y: float
    angle: float


@dataclass(frozen=True, slots=True)
class RingLayout:
    """
    Dot positions for a single ring.

    Attributes:
        ring: Ring number (1-indexed)
        radius: Normalized ring radius
        positions: Dot positions in ring order (starting at angle 0)
    """

    ring: int
    radius: float
    positions: Tuple[Position, ...]

    @property
    def dot_count(self) -> int:
        return len(self.positions)


@dataclass(frozen=True, slots=True)
class Layout:
    """
    Complete pattern geometry.

    Attributes:
        config: Protocol configuration this layout was computed for
        anchors: The three anchor positions (270, 30, 150 degrees)
        rings: Data rings ordered by increasing radius
    """

    config: ProtocolConfig
    anchors: Tuple[Position, Position, Position]
    rings: Tuple[RingLayout, ...]

    @property
    def total_dots(self) -> int:
        return sum(ring.dot_count for ring in self.rings)

    @property
    def dot_positions(self) -> List[Position]:
        """All data dot positions flattened in ring order."""
        return [pos for ring in self.rings for pos in ring.positions]
