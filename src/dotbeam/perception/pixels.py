"""
Pixel Buffers
=============

Helpers for the raw capture buffers handed to the pipeline.

Captures arrive either as a flat RGBA byte buffer plus dimensions (what
a browser canvas or camera glue hands over) or as an (H, W, 3|4) uint8
array (what OpenCV produces). Everything downstream works on the array
form; channel order is always R, G, B[, A].
"""

import math
from typing import Optional, Tuple, Union

import numpy as np


PixelInput = Union[np.ndarray, bytes, bytearray, memoryview]


def as_pixel_array(
    pixels: PixelInput,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> np.ndarray:
    """
    Normalize a capture to an (H, W, C) uint8 array.

    Args:
        pixels: Flat RGBA buffer or (H, W, 3|4) array
        width: Image width (required for flat buffers)
        height: Image height (required for flat buffers)

    Returns:
        (H, W, C) uint8 view or copy, C in {3, 4}

    Raises:
        ValueError: If the buffer size or shape is inconsistent
    """
    if isinstance(pixels, np.ndarray) and pixels.ndim == 3:
        if pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected 3 or 4 channels, got shape {pixels.shape}")
        if width is not None and pixels.shape[1] != width:
            raise ValueError(f"Width mismatch: {pixels.shape[1]} != {width}")
        if height is not None and pixels.shape[0] != height:
            raise ValueError(f"Height mismatch: {pixels.shape[0]} != {height}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Pixels must be uint8, got {pixels.dtype}")
        return pixels

    if width is None or height is None:
        raise ValueError("width and height are required for flat pixel buffers")

    if isinstance(pixels, np.ndarray):
        flat = pixels.astype(np.uint8, copy=False).reshape(-1)
    else:
        flat = np.frombuffer(pixels, dtype=np.uint8)
    expected = width * height * 4
    if flat.size != expected:
        raise ValueError(
            f"RGBA buffer has {flat.size} bytes, expected {expected} "
            f"for {width}x{height}"
        )
    return flat.reshape(height, width, 4)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf."""
    return int(math.floor(value + 0.5))


def patch_mean(
    pixels: np.ndarray,
    x: float,
    y: float,
    radius: int,
    circular: bool = True,
) -> Optional[Tuple[float, float, float]]:
    """
    Average RGB over a neighborhood, clipped to the image.

    Args:
        pixels: (H, W, C) uint8 array
        x: Neighborhood center X (pixels, rounded)
        y: Neighborhood center Y (pixels, rounded)
        radius: Half-size of the neighborhood
        circular: Keep only offsets with dx^2 + dy^2 <= radius^2

    Returns:
        Mean (r, g, b), or None if the neighborhood lies outside the image
    """
    height, width = pixels.shape[:2]
    cx = round_half_up(x)
    cy = round_half_up(y)

    x0, x1 = max(cx - radius, 0), min(cx + radius, width - 1)
    y0, y1 = max(cy - radius, 0), min(cy + radius, height - 1)
    if x0 > x1 or y0 > y1:
        return None

    window = pixels[y0:y1 + 1, x0:x1 + 1, :3].astype(np.float64)

    if circular:
        dy, dx = np.mgrid[y0 - cy:y1 - cy + 1, x0 - cx:x1 - cx + 1]
        mask = dx * dx + dy * dy <= radius * radius
        if not mask.any():
            return None
        selected = window[mask]
    else:
        selected = window.reshape(-1, 3)

    r, g, b = selected.mean(axis=0)
    return float(r), float(g), float(b)
