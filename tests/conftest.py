"""
Test Configuration
==================

Pytest fixtures and test configuration for dotbeam.

Synthetic captures are produced by rendering encoded frames with the
display-side renderer, optionally rotated with OpenCV.
"""

import cv2
import numpy as np
import pytest

from dotbeam.codec import Encoder
from dotbeam.geometry import compute_layout
from dotbeam.models.palette import BACKGROUND_COLOR
from dotbeam.models.protocol import ProtocolConfig
from dotbeam.render import render_frame


CANVAS = 600


@pytest.fixture
def protocol_config():
    """Default protocol configuration (4 rings, 3 bits per dot)."""
    return ProtocolConfig()


@pytest.fixture
def layout(protocol_config):
    """Layout for the default configuration."""
    return compute_layout(protocol_config)


@pytest.fixture
def encoder(protocol_config):
    """Encoder for the default configuration."""
    return Encoder(protocol_config)


@pytest.fixture
def hi_frame(encoder):
    """The single frame encoding b"hi"."""
    return encoder.encode(b"hi")[0]


@pytest.fixture
def render(layout):
    """Render a frame to a CANVAS x CANVAS RGBA capture."""
    def _render(frame, size=CANVAS):
        return render_frame(frame, layout, size, size)
    return _render


def rotate_capture(rgba: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate a capture about its center, filling with the background."""
    height, width = rgba.shape[:2]
    matrix = cv2.getRotationMatrix2D((width / 2, height / 2), degrees, 1.0)
    return cv2.warpAffine(
        rgba,
        matrix,
        (width, height),
        flags=cv2.INTER_NEAREST,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(*BACKGROUND_COLOR.as_tuple(), 255),
    )


def blank_capture(size: int = CANVAS) -> np.ndarray:
    """A capture showing only the background."""
    image = np.empty((size, size, 4), dtype=np.uint8)
    image[:, :, :3] = BACKGROUND_COLOR.as_tuple()
    image[:, :, 3] = 255
    return image
