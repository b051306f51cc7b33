"""
Transform Estimator Tests
=========================

Anchor triangle validation, transform derivation and drift rejection.
"""

import math

import numpy as np
import pytest

from dotbeam.models.detection import Blob, Transform
from dotbeam.models.status import TransformSource
from dotbeam.perception import (
    AnchorDetector,
    TransformEstimator,
    TransformStabilizer,
    is_anchor_triangle,
    normalize_angle,
    stabilize,
)

from conftest import blank_capture, rotate_capture


# Anchor triangle of the default 600px rendering
SCALE = 285.0
ANCHORS = [
    Blob(x=300.0, y=300.0 + 0.82 * SCALE, size=20),
    Blob(x=300.0 + 0.82 * SCALE * math.cos(math.radians(30)), y=300.0 - 0.41 * SCALE, size=20),
    Blob(x=300.0 - 0.82 * SCALE * math.cos(math.radians(30)), y=300.0 - 0.41 * SCALE, size=20),
]


class TestAnchorTriangle:
    """Triangle plausibility checks."""

    def test_equilateral_accepted(self):
        a, b, c = Blob(0, 0, 10), Blob(100, 0, 10), Blob(50, 86.6, 10)
        assert is_anchor_triangle(a, b, c)

    def test_too_small_rejected(self):
        a, b, c = Blob(0, 0, 10), Blob(10, 0, 10), Blob(5, 8.66, 10)
        assert not is_anchor_triangle(a, b, c)

    def test_skewed_rejected(self):
        a, b, c = Blob(0, 0, 10), Blob(100, 0, 10), Blob(50, 300, 10)
        assert not is_anchor_triangle(a, b, c)

    def test_side_deviation_at_tolerance_rejected(self):
        # Sides 30, 40, 50: the short and long sides deviate from the mean by 25%
        a, b, c = Blob(0, 0, 10), Blob(30, 0, 10), Blob(30, 40, 10)
        assert not is_anchor_triangle(a, b, c, side_tolerance=0.25)
        assert is_anchor_triangle(a, b, c, side_tolerance=0.26)

    def test_size_ratio_rejected(self):
        a, b, c = Blob(0, 0, 2), Blob(100, 0, 10), Blob(50, 86.6, 10)
        assert not is_anchor_triangle(a, b, c)


class TestDerive:
    """Transform estimation from blobs."""

    def test_too_few_blobs(self):
        assert TransformEstimator().derive(ANCHORS[:2]) is None

    def test_ideal_anchors(self):
        transform = TransformEstimator().derive(ANCHORS)
        assert transform.center_x == pytest.approx(300.0)
        assert transform.center_y == pytest.approx(300.0)
        assert transform.scale == pytest.approx(SCALE)
        assert transform.rotation == pytest.approx(0.0, abs=1e-9)

    def test_distractor_skipped(self):
        blobs = [Blob(300.0, 300.0, 40)] + ANCHORS
        transform = TransformEstimator().derive(blobs)
        assert transform is not None
        assert transform.center_x == pytest.approx(300.0)
        assert Blob(300.0, 300.0, 40) not in transform.anchors

    def test_bright_center_skipped(self):
        pixels = blank_capture()
        pixels[290:311, 290:311, :3] = 255

        assert TransformEstimator().derive(ANCHORS, pixels) is None
        assert TransformEstimator(validate_center=False).derive(ANCHORS, pixels) is not None
        assert TransformEstimator().derive(ANCHORS) is not None

    def test_rendered_frame(self, hi_frame, render):
        image = render(hi_frame)
        transform = TransformEstimator().derive(AnchorDetector().find_blobs(image), image)
        assert transform is not None
        assert transform.center_x == pytest.approx(300.0, abs=4.0)
        assert transform.center_y == pytest.approx(300.0, abs=4.0)
        assert transform.scale == pytest.approx(SCALE, rel=0.02)
        assert math.degrees(transform.rotation) == pytest.approx(0.0, abs=1.5)

    def test_rotated_frame(self, hi_frame, render):
        # cv2 rotates counter-clockwise on screen, moving the bottom anchor right
        image = rotate_capture(render(hi_frame), 20.0)
        transform = TransformEstimator().derive(AnchorDetector().find_blobs(image), image)
        assert transform is not None
        assert math.degrees(transform.rotation) == pytest.approx(-20.0, abs=2.0)

        bottom = max(transform.anchors, key=lambda b: b.y)
        px, py = transform.to_pixel(0.0, 0.82)
        assert math.hypot(px - bottom.x, py - bottom.y) < 6.0


class TestTransformModel:
    """Normalized to pixel mapping."""

    def test_to_pixel_identity_rotation(self):
        transform = Transform(center_x=100, center_y=50, scale=10, rotation=0.0)
        assert transform.to_pixel(1.0, -1.0) == pytest.approx((110.0, 40.0))

    def test_to_pixel_quarter_turn(self):
        transform = Transform(center_x=0, center_y=0, scale=1, rotation=math.pi / 2)
        assert transform.to_pixel(1.0, 0.0) == pytest.approx((0.0, 1.0))

    def test_project_matches_to_pixel(self):
        transform = Transform(center_x=320, center_y=240, scale=150, rotation=0.4)
        points = np.array([[0.1, 0.2], [-0.5, 0.7], [0.82, 0.0]])
        projected = transform.project(points)
        for (nx, ny), (px, py) in zip(points, projected):
            assert (px, py) == pytest.approx(transform.to_pixel(nx, ny))

    def test_invalid_scale(self):
        with pytest.raises(ValueError):
            Transform(center_x=0, center_y=0, scale=0, rotation=0)

    def test_normalize_angle(self):
        assert normalize_angle(-math.pi) == pytest.approx(math.pi)
        assert normalize_angle(3 * math.pi / 2) == pytest.approx(-math.pi / 2)
        assert normalize_angle(0.25) == pytest.approx(0.25)


def _cached():
    return Transform(center_x=300.0, center_y=300.0, scale=200.0, rotation=0.0)


def _fresh(dx=0.0, scale=200.0, rotation_deg=0.0):
    return Transform(
        center_x=300.0 + dx,
        center_y=300.0,
        scale=scale,
        rotation=normalize_angle(math.radians(rotation_deg)),
    )


class TestStabilize:
    """Temporal drift rejection."""

    def test_no_cache_accepts_fresh(self):
        fresh = _fresh(dx=100)
        assert stabilize(None, fresh) == (fresh, TransformSource.FRESH)

    def test_no_fresh_reuses_cache(self):
        cached = _cached()
        assert stabilize(cached, None) == (cached, TransformSource.CACHED)

    def test_neither(self):
        assert stabilize(None, None) == (None, TransformSource.NONE)

    def test_center_drift_15_percent_rejected(self):
        cached = _cached()
        result, source = stabilize(cached, _fresh(dx=0.15 * 200.0))
        assert result is cached
        assert source == TransformSource.DRIFT_REJECTED

    def test_center_drift_10_percent_accepted(self):
        fresh = _fresh(dx=0.10 * 200.0)
        assert stabilize(_cached(), fresh) == (fresh, TransformSource.FRESH)

    def test_scale_drift(self):
        assert stabilize(_cached(), _fresh(scale=245.0))[1] == TransformSource.DRIFT_REJECTED
        assert stabilize(_cached(), _fresh(scale=230.0))[1] == TransformSource.FRESH

    def test_rotation_drift(self):
        assert stabilize(_cached(), _fresh(rotation_deg=16.0))[1] == TransformSource.DRIFT_REJECTED
        assert stabilize(_cached(), _fresh(rotation_deg=10.0))[1] == TransformSource.FRESH

    def test_rotation_drift_wraps(self):
        cached = Transform(center_x=300.0, center_y=300.0, scale=200.0, rotation=3.1)
        fresh = Transform(center_x=300.0, center_y=300.0, scale=200.0, rotation=-3.1)
        assert stabilize(cached, fresh)[1] == TransformSource.FRESH


class TestTransformStabilizer:
    """Cache ownership across ticks."""

    def test_update_and_reset(self):
        stabilizer = TransformStabilizer()
        first = _cached()

        assert stabilizer.update(first) == (first, TransformSource.FRESH)
        assert stabilizer.update(None) == (first, TransformSource.CACHED)
        assert stabilizer.update(_fresh(dx=60.0)) == (first, TransformSource.DRIFT_REJECTED)
        assert stabilizer.cached is first
        assert stabilizer.get_metrics()["drift_rejections"] == 1

        stabilizer.reset()
        assert stabilizer.cached is None
        assert stabilizer.update(None) == (None, TransformSource.NONE)
