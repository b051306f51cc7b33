"""
Layout Computation
==================

Maps a protocol configuration to normalized anchor and dot positions.

Geometry:
    Anchors: 3 white dots at radius 0.82, at 270, 30 and 150 degrees
             (bottom-center, top-right, top-left on screen).
    Rings:   Ring n (1-indexed) has 6n dots, evenly spaced from angle 0.
             Radii are spread linearly from 0.22 (ring 1) to 0.70
             (outermost ring). A single ring sits at the midpoint.

Angles use the mathematical convention (0 = right, counter-clockwise
positive); Y is negated so that positions are in screen coordinates.

Example:
    from dotbeam.geometry import compute_layout
    from dotbeam.models.protocol import ProtocolConfig

    layout = compute_layout(ProtocolConfig())
    print(layout.total_dots)  # 60
"""

import math
from typing import Tuple

from dotbeam.models.layout import Layout, Position, RingLayout
from dotbeam.models.protocol import ProtocolConfig


ANCHOR_RADIUS = 0.82
ANCHOR_ANGLES_DEG = (270.0, 30.0, 150.0)
RING_RADIUS_MIN = 0.22
RING_RADIUS_MAX = 0.70

# Fraction of the half-canvas used by the pattern (5% margin)
CANVAS_FILL = 0.95


def compute_layout(config: ProtocolConfig) -> Layout:
    """
    Compute anchor and dot positions for a configuration.

    Args:
        config: Protocol configuration (validated, rings >= 1)

    Returns:
        Immutable Layout in normalized coordinates
    """
    anchors = tuple(angle_to_point(angle, ANCHOR_RADIUS) for angle in ANCHOR_ANGLES_DEG)

    rings = []
    for ring in range(1, config.rings + 1):
        dot_count = 6 * ring
        radius = ring_radius(ring, config.rings)
        positions = tuple(
            angle_to_point(j * 360.0 / dot_count, radius)
            for j in range(dot_count)
        )
        rings.append(RingLayout(ring=ring, radius=radius, positions=positions))

    return Layout(config=config, anchors=anchors, rings=tuple(rings))


def ring_radius(ring: int, total_rings: int) -> float:
    """Normalized radius of a ring (1-indexed)."""
    if total_rings == 1:
        return (RING_RADIUS_MIN + RING_RADIUS_MAX) / 2
    fraction = (ring - 1) / (total_rings - 1)
    return RING_RADIUS_MIN + (RING_RADIUS_MAX - RING_RADIUS_MIN) * fraction


def angle_to_point(angle_deg: float, radius: float) -> Position:
    """Polar (degrees, radius) to screen-space Cartesian."""
    rad = math.radians(angle_deg)
    return Position(
        x=radius * math.cos(rad),
        y=-radius * math.sin(rad),  # screen Y is inverted
        angle=angle_deg,
    )


def scale_to_canvas(
    nx: float,
    ny: float,
    width: float,
    height: float,
) -> Tuple[float, float]:
    """
    Convert normalized coordinates to canvas pixels.

    Args:
        nx: Normalized X (-1..1)
        ny: Normalized Y (-1..1)
        width: Canvas width in pixels
        height: Canvas height in pixels

    Returns:
        (x, y) pixel coordinates
    """
    cx = width / 2
    cy = height / 2
    scale = canvas_scale(width, height)
    return cx + nx * scale, cy + ny * scale


def canvas_scale(width: float, height: float) -> float:
    """Pixels per normalized unit for a canvas."""
    return min(width, height) / 2 * CANVAS_FILL
