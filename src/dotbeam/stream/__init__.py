"""
Stream Module
=============

Image ingestion for captures that do not come straight from a camera.

This module provides:
    - ImageDecodeError: Raised for corrupt or unreadable images
    - decode_image_rgba / decode_image_b64 / load_image_rgba: Encoded
      image to RGBA array
"""

from dotbeam.stream.image_decoder import (
    ImageDecodeError,
    bgr_to_rgba,
    decode_image_b64,
    decode_image_rgba,
    load_image_rgba,
)


__all__ = [
    "ImageDecodeError",
    "bgr_to_rgba",
    "decode_image_b64",
    "decode_image_rgba",
    "load_image_rgba",
]
