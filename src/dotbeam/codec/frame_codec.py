"""
Frame Codec
===========

Deterministic bit-packing between a frame's byte image and dot values.

Wire Format (bit exact):
    byte 0       frame index (0-254)
    byte 1       frame total (1-255)
    bytes 2..    payload, up to floor(total_dots * bits_per_dot / 8) - 2
    padding      zeros up to ceil(total_dots * bits_per_dot / 8)

Bit Order:
    Bytes are unpacked MSB-first and regrouped into bits_per_dot-wide
    values, MSB-first within each group. Dots are consumed in ring order
    (ring 1 dot 0, ring 1 dot 1, ..., outward).

Design Rules:
    - Pure functions, no state
    - Decoding never panics on short input: it raises FrameTooShortError,
      which callers treat as a malformed capture
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from dotbeam.models.protocol import HEADER_BYTES, ProtocolConfig


class FrameCodecError(Exception):
    """Base error for frame encoding/decoding."""
    pass


class FrameTooShortError(FrameCodecError):
    """Raised when fewer than 2 header bytes can be decoded."""
    pass


class PayloadTooLargeError(FrameCodecError):
    """Raised when a payload needs more frames than the header can count."""
    pass


@dataclass(frozen=True, slots=True)
class FrameHeader:
    """
    Decoded frame byte image.

    Attributes:
        index: Frame index from byte 0
        total: Frame total from byte 1
        payload: Everything after the header (padding included)
    """

    index: int
    total: int
    payload: bytes


def bytes_to_dot_values(
    data: bytes,
    bits_per_dot: int,
    dot_count: Optional[int] = None,
) -> List[int]:
    """
    Pack bytes into dot values.

    Args:
        data: Frame byte image (header + payload + padding)
        bits_per_dot: Width of each dot value in bits
        dot_count: Maximum number of values to emit (None = as many as fit)

    Returns:
        Dot values in ring order. A trailing partial group is dropped.
    """
    _check_bits_per_dot(bits_per_dot)

    bits = np.unpackbits(np.frombuffer(bytes(data), dtype=np.uint8))
    groups = len(bits) // bits_per_dot
    if dot_count is not None:
        groups = min(groups, dot_count)

    if groups == 0:
        return []

    grouped = bits[: groups * bits_per_dot].reshape(groups, bits_per_dot)
    weights = 1 << np.arange(bits_per_dot - 1, -1, -1)
    return [int(v) for v in grouped.astype(np.int64) @ weights]


def dot_values_to_bytes(values: Sequence[int], bits_per_dot: int) -> bytes:
    """
    Unpack dot values back into bytes.

    Args:
        values: Dot values in ring order
        bits_per_dot: Width of each dot value in bits

    Returns:
        Bytes regrouped MSB-first. A trailing partial byte is dropped.

    Raises:
        ValueError: If a value does not fit in bits_per_dot bits
    """
    _check_bits_per_dot(bits_per_dot)

    arr = np.asarray(values, dtype=np.int64).reshape(-1)
    if arr.size and (arr.min() < 0 or arr.max() >= 1 << bits_per_dot):
        raise ValueError(
            f"dot values must be in 0..{(1 << bits_per_dot) - 1} "
            f"for {bits_per_dot} bits per dot"
        )

    shifts = np.arange(bits_per_dot - 1, -1, -1)
    bits = ((arr[:, None] >> shifts) & 1).astype(np.uint8).reshape(-1)

    usable = (len(bits) // 8) * 8
    return np.packbits(bits[:usable]).tobytes()


def build_frame_image(
    index: int,
    total: int,
    payload: bytes,
    config: ProtocolConfig,
) -> bytes:
    """
    Build a frame's padded byte image.

    Args:
        index: Frame index
        total: Frame total
        payload: Frame payload (at most config.bytes_per_frame bytes)
        config: Protocol configuration

    Returns:
        [index][total][payload] zero-padded to config.frame_image_size
    """
    if len(payload) > config.bytes_per_frame:
        raise FrameCodecError(
            f"payload of {len(payload)} bytes exceeds frame capacity "
            f"of {config.bytes_per_frame}"
        )

    image = bytes([index, total]) + bytes(payload)
    return image.ljust(config.frame_image_size, b"\x00")


def parse_frame_image(data: bytes) -> FrameHeader:
    """
    Split a decoded byte image into header and payload.

    Raises:
        FrameTooShortError: If fewer than 2 bytes are available
    """
    if len(data) < HEADER_BYTES:
        raise FrameTooShortError(
            f"frame image has {len(data)} bytes, need at least {HEADER_BYTES}"
        )
    return FrameHeader(index=data[0], total=data[1], payload=bytes(data[HEADER_BYTES:]))


def decode_dot_values(values: Sequence[int], bits_per_dot: int) -> FrameHeader:
    """Dot values -> bytes -> header and payload."""
    return parse_frame_image(dot_values_to_bytes(values, bits_per_dot))


def _check_bits_per_dot(bits_per_dot: int) -> None:
    if not 1 <= bits_per_dot <= 8:
        raise ValueError(f"bits_per_dot must be in 1..8, got {bits_per_dot}")
