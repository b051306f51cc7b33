"""
Geometry Module
===============

Pure functions mapping a protocol configuration to normalized positions.

The layout is computed once per session and shared by the encoder,
renderer, transform estimator and color sampler.
"""

from dotbeam.geometry.layout import (
    ANCHOR_ANGLES_DEG,
    ANCHOR_RADIUS,
    RING_RADIUS_MAX,
    RING_RADIUS_MIN,
    angle_to_point,
    canvas_scale,
    compute_layout,
    ring_radius,
    scale_to_canvas,
)

__all__ = [
    "ANCHOR_RADIUS",
    "ANCHOR_ANGLES_DEG",
    "RING_RADIUS_MIN",
    "RING_RADIUS_MAX",
    "compute_layout",
    "ring_radius",
    "angle_to_point",
    "scale_to_canvas",
    "canvas_scale",
]
