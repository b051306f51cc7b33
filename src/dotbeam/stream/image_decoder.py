"""
Image Decoder
=============

Decodes encoded images (PNG, JPEG, ...) into RGBA pixel arrays.

Design Rules:
    - This is the ONLY place in the codebase that decodes image files
    - Output is always (H, W, 4) uint8 in R, G, B, A order
    - Validates shape and dtype
    - Fails fast on corrupt images

Captures from a browser usually arrive as base64 data URLs
("data:image/png;base64,..."); both bare base64 and data URLs are
accepted.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image decoding fails."""
    pass


def decode_image_rgba(image_bytes: bytes) -> np.ndarray:
    """
    Decode an encoded image to an RGBA array.

    Args:
        image_bytes: Encoded image file contents

    Returns:
        RGBA image as np.ndarray (H, W, 4), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    if not image_bytes:
        raise ImageDecodeError("Empty image data")

    nparr = np.frombuffer(image_bytes, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ImageDecodeError("Failed to decode image: cv2.imdecode returned None")

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise ImageDecodeError(f"Invalid image shape: {bgr.shape}")

    if bgr.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid dtype: {bgr.dtype}")

    return bgr_to_rgba(bgr)


def decode_image_b64(image_b64: str) -> np.ndarray:
    """
    Decode a base64 image (or data URL) to an RGBA array.

    Raises:
        ImageDecodeError: If base64 or image decoding fails
    """
    if image_b64.startswith("data:"):
        _, _, image_b64 = image_b64.partition(",")

    try:
        image_bytes = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Base64 decode failed: {e}") from e

    return decode_image_rgba(image_bytes)


def load_image_rgba(path: Union[str, Path]) -> np.ndarray:
    """
    Read an image file from disk as RGBA.

    Raises:
        ImageDecodeError: If the file is missing or unreadable
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Cannot read image {path}: {e}") from e

    try:
        return decode_image_rgba(data)
    except ImageDecodeError as e:
        raise ImageDecodeError(f"{path}: {e}") from e


def bgr_to_rgba(bgr: np.ndarray) -> np.ndarray:
    """Convert an OpenCV BGR frame to RGBA."""
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)
