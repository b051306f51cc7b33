"""
Codec Module
============

The dotbeam wire format: frame byte images and their dot values.

This module provides:
    - Bit-packing between bytes and dot values (MSB-first, ring order)
    - Frame header build/parse
    - Encoder that splits payloads into frames
"""

from dotbeam.codec.frame_codec import (
    FrameCodecError,
    FrameHeader,
    FrameTooShortError,
    PayloadTooLargeError,
    build_frame_image,
    bytes_to_dot_values,
    decode_dot_values,
    dot_values_to_bytes,
    parse_frame_image,
)
from dotbeam.codec.encoder import Encoder

__all__ = [
    # Errors
    "FrameCodecError",
    "FrameTooShortError",
    "PayloadTooLargeError",
    # Codec
    "FrameHeader",
    "bytes_to_dot_values",
    "dot_values_to_bytes",
    "build_frame_image",
    "parse_frame_image",
    "decode_dot_values",
    # Encoder
    "Encoder",
]
