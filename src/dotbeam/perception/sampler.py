"""
Color Sampler
=============

Reads the palette index of every data dot under a transform.

Steps:
    1. Sample radius = max(min_radius, floor(scale * radius_factor)).
    2. White balance: average the three projected anchors (known white).
       If they are bright enough, per-channel gain = 255 / measured,
       clamped to wb_max_gain.
    3. For each data dot in ring order, average a circular neighborhood
       and apply the gains (clipped at 255).
    4. Match all corrected samples at once against the first
       2 ** bits_per_dot palette entries.

Dots projected outside the image read as value 0 and are flagged in the
debug samples.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from dotbeam.models.detection import DotSample, SampleResult, Transform, WhiteBalance
from dotbeam.models.layout import Layout
from dotbeam.models.palette import PALETTE, Color
from dotbeam.perception.color import match_colors
from dotbeam.perception.pixels import patch_mean


logger = logging.getLogger(__name__)


RGB = Tuple[float, float, float]

_UNITY_GAIN: RGB = (1.0, 1.0, 1.0)


class ColorSampler:
    """
    Samples dot colors and maps them to dot values.

    Attributes:
        layout: Pattern geometry (anchor and dot positions)
        candidates: Palette entries that can be matched
        radius_factor: Sample radius as a fraction of the transform scale
        min_radius: Lower bound on the sample radius (pixels)
        wb_min_brightness: Anchor brightness needed to apply white balance
        wb_max_gain: Upper bound on each channel gain

    Example:
        sampler = ColorSampler(compute_layout(config))
        result = sampler.sample(pixels, transform)
        print(result.dot_values[:6])
    """

    def __init__(
        self,
        layout: Layout,
        palette: Sequence[Color] = PALETTE,
        radius_factor: float = 0.025,
        min_radius: int = 2,
        wb_min_brightness: float = 150.0,
        wb_max_gain: float = 1.5,
    ) -> None:
        bits_per_dot = layout.config.bits_per_dot
        value_count = 2 ** bits_per_dot
        if value_count > len(palette):
            raise ValueError(
                f"bits_per_dot={bits_per_dot} needs {value_count} colors, "
                f"palette has {len(palette)}"
            )

        self.layout = layout
        self.candidates = tuple(palette[:value_count])
        self.radius_factor = radius_factor
        self.min_radius = min_radius
        self.wb_min_brightness = wb_min_brightness
        self.wb_max_gain = wb_max_gain

        self._anchor_points = np.array([(p.x, p.y) for p in layout.anchors], dtype=np.float64)
        self._dot_points = np.array(
            [(p.x, p.y) for p in layout.dot_positions], dtype=np.float64
        )

        logger.info(
            f"ColorSampler initialized: dots={layout.total_dots}, "
            f"colors={value_count}, radius_factor={radius_factor}, "
            f"wb_min={wb_min_brightness}, wb_max_gain={wb_max_gain}"
        )

    def sample_radius(self, transform: Transform) -> int:
        return max(self.min_radius, int(math.floor(transform.scale * self.radius_factor)))

    def sample(self, pixels: np.ndarray, transform: Transform) -> SampleResult:
        """
        Read every data dot.

        Args:
            pixels: (H, W, 3|4) uint8 capture
            transform: Pattern-to-pixel mapping

        Returns:
            SampleResult with one value per dot, in ring order
        """
        radius = self.sample_radius(transform)
        white_balance = self.white_balance(pixels, transform, radius)
        gain = white_balance.gain

        points = transform.project(self._dot_points)
        raws = [patch_mean(pixels, x, y, radius) for x, y in points]

        inside = np.array([raw is not None for raw in raws], dtype=bool)
        raw_rgb = np.array(
            [raw if raw is not None else (0.0, 0.0, 0.0) for raw in raws],
            dtype=np.float64,
        ).reshape(-1, 3)
        corrected_rgb = np.minimum(raw_rgb * np.asarray(gain), 255.0)
        matched = np.where(inside, match_colors(corrected_rgb, self.candidates), 0)

        values: List[int] = [int(v) for v in matched]
        samples: List[DotSample] = []
        for (x, y), raw, corrected, value, in_bounds in zip(
            points, raw_rgb, corrected_rgb, values, inside
        ):
            if not in_bounds:
                corrected = raw
            samples.append(DotSample(
                x=float(x), y=float(y),
                raw=tuple(float(c) for c in raw),
                corrected=tuple(float(c) for c in corrected),
                value=value, in_bounds=bool(in_bounds),
            ))

        return SampleResult(dot_values=values, samples=samples, white_balance=white_balance)

    def white_balance(
        self,
        pixels: np.ndarray,
        transform: Transform,
        radius: Optional[int] = None,
    ) -> WhiteBalance:
        """
        Measure the anchors and derive per-channel gains.

        Returns:
            WhiteBalance with unity gain when the anchors are too dark
            (or outside the image)
        """
        if radius is None:
            radius = self.sample_radius(transform)

        readings = [
            patch_mean(pixels, x, y, radius)
            for x, y in transform.project(self._anchor_points)
        ]
        readings = [r for r in readings if r is not None]
        if not readings:
            return WhiteBalance(measured=(0.0, 0.0, 0.0), gain=_UNITY_GAIN, applied=False)

        measured = tuple(float(v) for v in np.mean(readings, axis=0))
        if sum(measured) / 3 < self.wb_min_brightness:
            return WhiteBalance(measured=measured, gain=_UNITY_GAIN, applied=False)

        gain = tuple(
            min(255.0 / channel, self.wb_max_gain) if channel > 0 else self.wb_max_gain
            for channel in measured
        )
        return WhiteBalance(measured=measured, gain=gain, applied=True)
