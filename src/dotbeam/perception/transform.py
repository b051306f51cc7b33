"""
Transform Estimator
===================

Derives the pattern-to-pixel mapping from three anchor blobs, and keeps
it stable across ticks.

Triangle Check:
    The three anchors sit on an equilateral triangle, so a valid triple
    has every side within side_tolerance of the mean side, a mean side
    of at least min_side pixels, and comparable blob sizes (largest at
    most max_size_ratio times the smallest).

Formulas:
    center   = centroid of the three blobs
    scale    = mean(|blob - center|) / ANCHOR_RADIUS
    rotation = atan2(bottom.y - cy, bottom.x - cx) - pi/2
               (bottom = blob with the largest screen Y)

Stabilization:
    A fresh estimate replaces the cached one only when it stays within
    the drift limits (center 15% of scale, scale 20%, rotation 15 deg).
    Without a fresh estimate the cached one is reused, so a single
    dropped detection does not interrupt decoding.
"""

import logging
import math
from itertools import combinations
from typing import Optional, Sequence, Tuple

import numpy as np

from dotbeam.geometry.layout import ANCHOR_RADIUS
from dotbeam.models.detection import Blob, Transform
from dotbeam.models.status import TransformSource
from dotbeam.perception.pixels import patch_mean


logger = logging.getLogger(__name__)


def normalize_angle(angle: float) -> float:
    """Wrap an angle in radians into (-pi, pi]."""
    wrapped = math.atan2(math.sin(angle), math.cos(angle))
    if wrapped <= -math.pi:
        wrapped += 2 * math.pi
    return wrapped


def is_anchor_triangle(
    a: Blob,
    b: Blob,
    c: Blob,
    side_tolerance: float = 0.3,
    max_size_ratio: float = 3.0,
    min_side: float = 20.0,
) -> bool:
    """
    Check whether three blobs plausibly form the anchor triangle.

    Args:
        a, b, c: Candidate blobs
        side_tolerance: Relative deviation of a side from the mean at which
            the triple is rejected
        max_size_ratio: Allowed largest/smallest blob size ratio
        min_side: Minimum mean side length in pixels

    Returns:
        True if the triple passes every check
    """
    sides = (
        math.hypot(a.x - b.x, a.y - b.y),
        math.hypot(b.x - c.x, b.y - c.y),
        math.hypot(c.x - a.x, c.y - a.y),
    )
    mean_side = sum(sides) / 3
    if mean_side < min_side:
        return False

    for side in sides:
        if abs(side - mean_side) / mean_side >= side_tolerance:
            return False

    sizes = (a.size, b.size, c.size)
    if max(sizes) > max_size_ratio * min(sizes):
        return False

    return True


class TransformEstimator:
    """
    Finds the anchor triangle among detected blobs.

    Attributes:
        candidate_limit: Only the largest N blobs are considered
        side_tolerance: See is_anchor_triangle
        max_size_ratio: See is_anchor_triangle
        min_side: See is_anchor_triangle
        validate_center: Reject triples whose centroid is bright
        center_brightness_max: Brightness (0-255) above which a centroid
            is considered occupied
        center_patch_radius: Half-size of the centroid patch
    """

    def __init__(
        self,
        candidate_limit: int = 10,
        side_tolerance: float = 0.3,
        max_size_ratio: float = 3.0,
        min_side: float = 20.0,
        validate_center: bool = True,
        center_brightness_max: float = 80.0,
        center_patch_radius: int = 3,
    ) -> None:
        self.candidate_limit = candidate_limit
        self.side_tolerance = side_tolerance
        self.max_size_ratio = max_size_ratio
        self.min_side = min_side
        self.validate_center = validate_center
        self.center_brightness_max = center_brightness_max
        self.center_patch_radius = center_patch_radius

        logger.info(
            f"TransformEstimator initialized: candidates={candidate_limit}, "
            f"side_tol={side_tolerance}, min_side={min_side}px, "
            f"validate_center={validate_center}"
        )

    def derive(
        self,
        blobs: Sequence[Blob],
        pixels: Optional[np.ndarray] = None,
    ) -> Optional[Transform]:
        """
        Estimate the transform from the first valid anchor triple.

        Args:
            blobs: Candidates, largest first
            pixels: Capture used for the center check (optional)

        Returns:
            Transform, or None if no triple qualifies
        """
        candidates = list(blobs[:self.candidate_limit])
        if len(candidates) < 3:
            return None

        for a, b, c in combinations(candidates, 3):
            if not is_anchor_triangle(
                a, b, c,
                side_tolerance=self.side_tolerance,
                max_size_ratio=self.max_size_ratio,
                min_side=self.min_side,
            ):
                continue

            cx = (a.x + b.x + c.x) / 3
            cy = (a.y + b.y + c.y) / 3

            if pixels is not None and self.validate_center:
                if self._center_is_bright(pixels, cx, cy):
                    logger.debug(f"Triple rejected: bright center at ({cx:.0f}, {cy:.0f})")
                    continue

            return self._from_triple((a, b, c), cx, cy)

        return None

    def _center_is_bright(self, pixels: np.ndarray, cx: float, cy: float) -> bool:
        mean = patch_mean(pixels, cx, cy, self.center_patch_radius, circular=False)
        if mean is None:
            return False
        return sum(mean) / 3 > self.center_brightness_max

    @staticmethod
    def _from_triple(
        anchors: Tuple[Blob, Blob, Blob],
        cx: float,
        cy: float,
    ) -> Transform:
        distance = sum(math.hypot(blob.x - cx, blob.y - cy) for blob in anchors) / 3
        scale = distance / ANCHOR_RADIUS

        bottom = max(anchors, key=lambda blob: blob.y)
        observed = math.atan2(bottom.y - cy, bottom.x - cx)
        rotation = normalize_angle(observed - math.pi / 2)

        return Transform(
            center_x=cx,
            center_y=cy,
            scale=scale,
            rotation=rotation,
            anchors=anchors,
        )


def stabilize(
    cached: Optional[Transform],
    fresh: Optional[Transform],
    center_drift: float = 0.15,
    scale_drift: float = 0.20,
    rotation_drift_deg: float = 15.0,
) -> Tuple[Optional[Transform], TransformSource]:
    """
    Choose between a cached and a freshly derived transform.

    Args:
        cached: Transform kept from earlier ticks
        fresh: Transform derived from the current capture
        center_drift: Max center shift, as a fraction of cached scale
        scale_drift: Max scale change, as a fraction of cached scale
        rotation_drift_deg: Max rotation change in degrees (wrapped)

    Returns:
        (transform to use, source). The transform to use is also the
        new cache value.
    """
    if fresh is None:
        if cached is None:
            return None, TransformSource.NONE
        return cached, TransformSource.CACHED

    if cached is None:
        return fresh, TransformSource.FRESH

    shift = math.hypot(fresh.center_x - cached.center_x, fresh.center_y - cached.center_y)
    if shift >= center_drift * cached.scale:
        return cached, TransformSource.DRIFT_REJECTED

    if abs(fresh.scale - cached.scale) >= scale_drift * cached.scale:
        return cached, TransformSource.DRIFT_REJECTED

    turn = abs(normalize_angle(fresh.rotation - cached.rotation))
    if turn >= math.radians(rotation_drift_deg):
        return cached, TransformSource.DRIFT_REJECTED

    return fresh, TransformSource.FRESH


class TransformStabilizer:
    """
    Owns the single cached transform of a scan session.

    Example:
        stabilizer = TransformStabilizer()
        transform, source = stabilizer.update(estimator.derive(blobs))
    """

    def __init__(
        self,
        center_drift: float = 0.15,
        scale_drift: float = 0.20,
        rotation_drift_deg: float = 15.0,
    ) -> None:
        self.center_drift = center_drift
        self.scale_drift = scale_drift
        self.rotation_drift_deg = rotation_drift_deg
        self._cached: Optional[Transform] = None
        self._rejections = 0

    @property
    def cached(self) -> Optional[Transform]:
        return self._cached

    def update(
        self,
        fresh: Optional[Transform],
    ) -> Tuple[Optional[Transform], TransformSource]:
        """Feed this tick's estimate and get the transform to decode with."""
        transform, source = stabilize(
            self._cached,
            fresh,
            center_drift=self.center_drift,
            scale_drift=self.scale_drift,
            rotation_drift_deg=self.rotation_drift_deg,
        )
        self._cached = transform

        if source == TransformSource.DRIFT_REJECTED:
            self._rejections += 1
            logger.debug(f"Drift rejected: fresh={fresh}, keeping {self._cached}")

        return transform, source

    def reset(self) -> None:
        """Forget the cached transform."""
        self._cached = None
        self._rejections = 0
        logger.debug("TransformStabilizer reset")

    def get_metrics(self) -> dict:
        return {
            "cached": self._cached is not None,
            "drift_rejections": self._rejections,
        }
