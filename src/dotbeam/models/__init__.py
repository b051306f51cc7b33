"""
Data Models
===========

Typed models shared across the dotbeam pipeline.

This module re-exports all data models for convenient access.

Models:
    Protocol:
        - ProtocolConfig: Rings, bits per dot, frame rate
        - Color, PALETTE: Fixed 8-color palette

    Geometry:
        - Position, RingLayout, Layout: Normalized pattern geometry

    Frames:
        - Dot, Frame: Encoded animation frames

    Detection:
        - Blob, Transform: Anchor candidates and camera mapping
        - DotSample, WhiteBalance, SampleResult: Color sampling output
        - DebugSnapshot, TickResult: Per-tick results

    Status:
        - DetectionStatus, TransformSource, DecoderPhase, CaptureOutcome
"""

from dotbeam.models.protocol import HEADER_BYTES, MAX_FRAMES, ProtocolConfig
from dotbeam.models.palette import (
    ANCHOR_COLOR,
    BACKGROUND_COLOR,
    PALETTE,
    PALETTE_NAMES,
    Color,
)
from dotbeam.models.layout import Layout, Position, RingLayout
from dotbeam.models.frame import Dot, Frame
from dotbeam.models.detection import (
    Blob,
    DebugSnapshot,
    DotSample,
    FrameHeaderInfo,
    SampleResult,
    TickResult,
    Transform,
    WhiteBalance,
)
from dotbeam.models.status import (
    CaptureOutcome,
    DecoderPhase,
    DetectionStatus,
    TransformSource,
)

__all__ = [
    # Protocol
    "HEADER_BYTES",
    "MAX_FRAMES",
    "ProtocolConfig",
    "Color",
    "PALETTE",
    "PALETTE_NAMES",
    "ANCHOR_COLOR",
    "BACKGROUND_COLOR",
    # Geometry
    "Position",
    "RingLayout",
    "Layout",
    # Frames
    "Dot",
    "Frame",
    # Detection
    "Blob",
    "Transform",
    "DotSample",
    "WhiteBalance",
    "SampleResult",
    "FrameHeaderInfo",
    "DebugSnapshot",
    "TickResult",
    # Status
    "DetectionStatus",
    "TransformSource",
    "DecoderPhase",
    "CaptureOutcome",
]
