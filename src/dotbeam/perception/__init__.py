"""
Perception Module
=================

Turns a raw capture into dot values.

This module provides:
    - Anchor blob detection on a coarse brightness grid
    - Anchor-triangle transform estimation and temporal stabilization
    - Hue-based color matching with anchor white balance
"""

from dotbeam.perception.anchors import AnchorDetector, find_blobs
from dotbeam.perception.color import (
    hue_distance,
    hues,
    match_color,
    match_colors,
    rgb_to_hue,
    saturation,
)
from dotbeam.perception.pixels import as_pixel_array, patch_mean
from dotbeam.perception.sampler import ColorSampler
from dotbeam.perception.transform import (
    TransformEstimator,
    TransformStabilizer,
    is_anchor_triangle,
    normalize_angle,
    stabilize,
)

__all__ = [
    # Pixels
    "as_pixel_array",
    "patch_mean",
    # Anchors
    "AnchorDetector",
    "find_blobs",
    # Transform
    "TransformEstimator",
    "TransformStabilizer",
    "is_anchor_triangle",
    "normalize_angle",
    "stabilize",
    # Color
    "ColorSampler",
    "match_color",
    "match_colors",
    "hues",
    "rgb_to_hue",
    "hue_distance",
    "saturation",
]
