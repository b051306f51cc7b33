"""
Color Math
==========

Color classification against the dot palette.

Matching Strategy:
    Saturated samples (saturation > 0.15, max channel > 30) are matched
    by nearest HUE angle. Hue is invariant to exposure and brightness
    shifts from the camera, while raw RGB distance is not: (200, 40, 40)
    and (255, 80, 80) are far apart in RGB but share the same hue.

    Achromatic or near-black samples have no meaningful hue and fall
    back to Euclidean RGB distance.

Formulas:
    saturation = (max - min) / max
    hue        = standard HSV hue in degrees [0, 360)
    hue_dist   = min(|h1 - h2|, 360 - |h1 - h2|)
"""

from functools import lru_cache
from typing import Optional, Sequence, Tuple

import numpy as np

from dotbeam.models.palette import PALETTE, Color


# max - min below this is treated as achromatic (no hue)
ACHROMATIC_DELTA = 10

HUE_MIN_SATURATION = 0.15
HUE_MIN_VALUE = 30


def saturation(r: float, g: float, b: float) -> float:
    """HSV saturation in [0, 1]."""
    high = max(r, g, b)
    if high <= 0:
        return 0.0
    return (high - min(r, g, b)) / high


def hues(rgb) -> np.ndarray:
    """
    Hue in degrees for every row of an (N, 3) RGB array.

    Returns:
        (N,) float array in [0, 360), NaN where a row is near-achromatic
    """
    rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    high = rgb.max(axis=1)
    delta = high - rgb.min(axis=1)
    safe = np.where(delta > 0, delta, 1.0)

    hue = np.where(
        high == r,
        np.mod((g - b) / safe, 6),
        np.where(high == g, (b - r) / safe + 2, (r - g) / safe + 4),
    ) * 60
    hue = np.where(hue < 0, hue + 360, hue)
    return np.where(delta < ACHROMATIC_DELTA, np.nan, hue)


def rgb_to_hue(r: float, g: float, b: float) -> Optional[float]:
    """
    Convert RGB (0-255) to hue in degrees.

    Returns:
        Hue in [0, 360), or None if the color is near-achromatic
    """
    hue = hues((r, g, b))[0]
    return None if np.isnan(hue) else float(hue)


def hue_distance(h1: float, h2: float) -> float:
    """Angular distance between two hues (0-180)."""
    d = abs(h1 - h2) % 360
    return 360 - d if d > 180 else d


def match_colors(
    samples,
    palette: Sequence[Color] = PALETTE,
    min_saturation: float = HUE_MIN_SATURATION,
    min_value: float = HUE_MIN_VALUE,
) -> np.ndarray:
    """
    Return the nearest palette index for every sample.

    Args:
        samples: (N, 3) array of sampled (r, g, b)
        palette: Candidate colors
        min_saturation: Saturation above which hue matching is used
        min_value: Max channel above which hue matching is used

    Returns:
        (N,) int array of palette indices. Ties go to the lower index.
    """
    rgb = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
    colors, palette_hues = _palette_arrays(tuple(palette))

    high = rgb.max(axis=1)
    sat = np.where(high > 0, (high - rgb.min(axis=1)) / np.where(high > 0, high, 1.0), 0.0)
    sample_hues = hues(rgb)
    use_hue = (sat > min_saturation) & (high > min_value) & ~np.isnan(sample_hues)

    d = np.abs(np.nan_to_num(sample_hues)[:, None] - palette_hues[None, :]) % 360
    by_hue = np.argmin(np.where(d > 180, 360 - d, d), axis=1)
    by_rgb = np.argmin(((rgb[:, None, :] - colors[None, :, :]) ** 2).sum(axis=2), axis=1)

    return np.where(use_hue, by_hue, by_rgb)


def match_color(
    rgb: Tuple[float, float, float],
    palette: Sequence[Color] = PALETTE,
    min_saturation: float = HUE_MIN_SATURATION,
    min_value: float = HUE_MIN_VALUE,
) -> int:
    """Return the palette index nearest to a single sample."""
    return int(match_colors([rgb], palette, min_saturation, min_value)[0])


@lru_cache(maxsize=None)
def _palette_arrays(palette: Tuple[Color, ...]) -> Tuple[np.ndarray, np.ndarray]:
    colors = np.array([c.as_tuple() for c in palette], dtype=np.float64)
    # Achromatic palette entries sit at hue 0
    palette_hues = np.nan_to_num(hues(colors))
    colors.setflags(write=False)
    palette_hues.setflags(write=False)
    return colors, palette_hues
