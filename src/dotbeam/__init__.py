"""
dotbeam
=======

Receive-side decoder for animated dot-constellation data transfer.

Arbitrary bytes are encoded as a sequence of frames, each rendered as
colored dots on concentric rings plus three white orientation anchors.
A camera observes the animation; this package reconstructs the original
bytes from noisy, distorted captures.

Components:
    - geometry: Ring/anchor layout in normalized coordinates
    - codec: Bit-packing between bytes and dot values (wire format)
    - perception: Anchor detection, transform estimation, color sampling
    - consensus: Per-dot majority voting and frame-total locking
    - scanner: Tick-driven scan session, capture loop, camera source

Example:
    from dotbeam import ScanSession

    session = ScanSession.from_settings()
    result = session.tick(pixels)
    if result.complete:
        data = session.final_bytes()
"""

__version__ = "0.1.0"
__author__ = "dotbeam Project"

from dotbeam.models.protocol import ProtocolConfig
from dotbeam.geometry import compute_layout
from dotbeam.codec import Encoder
from dotbeam.consensus import ConsensusDecoder, IncompleteDataError
from dotbeam.scanner import (
    ScanSession,
    decode_tick,
    final_bytes,
    reset_decoder,
)

__all__ = [
    "__version__",
    "ProtocolConfig",
    "compute_layout",
    "Encoder",
    "ConsensusDecoder",
    "IncompleteDataError",
    "ScanSession",
    "decode_tick",
    "final_bytes",
    "reset_decoder",
]
