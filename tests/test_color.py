"""
Color Tests
===========

Hue math, palette matching and the dot sampler.
"""

import numpy as np
import pytest

from dotbeam.geometry import compute_layout
from dotbeam.models.detection import Transform
from dotbeam.models.palette import PALETTE
from dotbeam.models.protocol import ProtocolConfig
from dotbeam.perception import (
    AnchorDetector,
    ColorSampler,
    TransformEstimator,
    hue_distance,
    hues,
    match_color,
    match_colors,
    rgb_to_hue,
    saturation,
)

from conftest import rotate_capture


def _transform_for(image):
    return TransformEstimator().derive(AnchorDetector().find_blobs(image), image)


def _expose(image, factor):
    out = image.copy()
    out[:, :, :3] = np.clip(image[:, :, :3].astype(np.float64) * factor, 0, 255).astype(np.uint8)
    return out


class TestColorMath:
    """Saturation, hue and hue distance."""

    def test_saturation(self):
        assert saturation(255, 255, 255) == 0.0
        assert saturation(0, 0, 0) == 0.0
        assert saturation(200, 100, 0) == pytest.approx(1.0)

    def test_primary_hues(self):
        assert rgb_to_hue(255, 0, 0) == pytest.approx(0.0)
        assert rgb_to_hue(0, 255, 0) == pytest.approx(120.0)
        assert rgb_to_hue(0, 0, 255) == pytest.approx(240.0)
        assert rgb_to_hue(255, 0, 255) == pytest.approx(300.0)

    def test_achromatic_has_no_hue(self):
        assert rgb_to_hue(128, 128, 128) is None
        assert rgb_to_hue(100, 105, 109) is None

    def test_hue_distance_wraps(self):
        assert hue_distance(350, 10) == pytest.approx(20)
        assert hue_distance(0, 180) == pytest.approx(180)
        assert hue_distance(90, 30) == pytest.approx(60)


class TestMatchColor:
    """Palette classification."""

    def test_palette_matches_itself(self):
        for index, color in enumerate(PALETTE):
            assert match_color(color.as_tuple()) == index

    def test_hue_invariance(self):
        dark = match_color((200, 40, 40))
        bright = match_color((255, 80, 80))
        assert dark == bright == 0

    def test_exposure_shift_keeps_hue(self):
        blue = PALETTE[5]
        dimmed = (blue.r * 0.6, blue.g * 0.6, blue.b * 0.6)
        assert match_color(dimmed) == 5

    def test_restricted_candidates(self):
        # Magenta falls back to the nearest of red/orange by hue
        assert match_color(PALETTE[7].as_tuple(), PALETTE[:2]) == 0

    def test_batch_matches_single_samples(self):
        samples = [
            (200, 40, 40),
            (255, 80, 80),
            (128, 128, 128),
            (0, 0, 0),
            (20, 10, 5),
        ] + [color.as_tuple() for color in PALETTE]
        batch = match_colors(np.array(samples, dtype=np.float64))
        assert batch.shape == (len(samples),)
        assert list(batch) == [match_color(s) for s in samples]

    def test_batch_hues(self):
        result = hues(np.array([[255, 0, 0], [0, 0, 255], [128, 128, 128]]))
        assert result[0] == pytest.approx(0.0)
        assert result[1] == pytest.approx(240.0)
        assert np.isnan(result[2])


class TestColorSampler:
    """Dot sampling with white balance."""

    def test_reads_rendered_frame(self, hi_frame, render, layout):
        image = render(hi_frame)
        result = ColorSampler(layout).sample(image, _transform_for(image))
        assert result.dot_values == hi_frame.dot_values
        assert len(result.samples) == 60
        assert all(sample.in_bounds for sample in result.samples)
        assert result.white_balance.gain == pytest.approx((1.0, 1.0, 1.0))

    def test_reads_rotated_frame(self, encoder, render, layout):
        frame = encoder.encode(bytes(range(7, 27)))[0]
        image = rotate_capture(render(frame), 20.0)
        result = ColorSampler(layout).sample(image, _transform_for(image))
        assert result.dot_values == frame.dot_values

    def test_sample_radius(self, layout):
        sampler = ColorSampler(layout)
        assert sampler.sample_radius(Transform(0, 0, 285.0, 0.0)) == 7
        assert sampler.sample_radius(Transform(0, 0, 40.0, 0.0)) == 2

    def test_white_balance_applied_when_dim(self, hi_frame, render, layout):
        image = _expose(render(hi_frame), 0.7)
        result = ColorSampler(layout).sample(image, _transform_for(render(hi_frame)))
        wb = result.white_balance
        assert wb.applied
        assert wb.gain[0] == pytest.approx(255 / 178, rel=0.01)
        assert result.dot_values == hi_frame.dot_values

    def test_white_balance_skipped_when_dark(self, hi_frame, render, layout):
        image = _expose(render(hi_frame), 0.5)
        result = ColorSampler(layout).sample(image, _transform_for(render(hi_frame)))
        assert not result.white_balance.applied
        assert result.white_balance.gain == (1.0, 1.0, 1.0)

    def test_gain_is_clamped(self, hi_frame, render, layout):
        sampler = ColorSampler(layout, wb_min_brightness=100)
        image = _expose(render(hi_frame), 0.5)
        wb = sampler.sample(image, _transform_for(render(hi_frame))).white_balance
        assert wb.applied
        assert wb.gain == pytest.approx((1.5, 1.5, 1.5))

    def test_out_of_image_dots(self, hi_frame, render, layout):
        image = render(hi_frame)
        transform = Transform(center_x=-150.0, center_y=300.0, scale=285.0, rotation=0.0)
        result = ColorSampler(layout).sample(image, transform)
        outside = [s for s in result.samples if not s.in_bounds]
        assert outside
        assert all(s.value == 0 for s in outside)
        assert len(result.dot_values) == 60

    def test_too_many_bits_rejected(self):
        layout = compute_layout(ProtocolConfig(bits_per_dot=4))
        with pytest.raises(ValueError):
            ColorSampler(layout)
