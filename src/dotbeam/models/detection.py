"""
Detection Models
================

Data passed between the perception stages and returned from each tick.

Pipeline:
    pixels -> [Blob] -> Transform -> SampleResult -> CaptureOutcome

All coordinates in this module are in IMAGE SPACE (pixels), origin at
the top-left, X rightward, Y downward.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from dotbeam.models.status import CaptureOutcome, DetectionStatus, TransformSource


@dataclass(frozen=True, slots=True)
class Blob:
    """
    Detected bright region, candidate anchor.

    Attributes:
        x: Centroid X (pixels)
        y: Centroid Y (pixels)
        size: Number of grid cells in the component
    """

    x: float
    y: float
    size: int


@dataclass(frozen=True, slots=True)
class Transform:
    """
    Pattern-space to pixel-space mapping.

    A normalized pattern point (nx, ny) maps to pixels as:
        px = center_x + (nx cos r - ny sin r) * scale
        py = center_y + (nx sin r + ny cos r) * scale

    Attributes:
        center_x: Pattern center X (pixels)
        center_y: Pattern center Y (pixels)
        scale: Pixels per normalized unit (> 0)
        rotation: Rotation in radians, in (-pi, pi]
        anchors: The three blobs the estimate was derived from
    """

    center_x: float
    center_y: float
    scale: float
    rotation: float
    anchors: Tuple[Blob, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if not -math.pi < self.rotation <= math.pi:
            raise ValueError(f"rotation must be in (-pi, pi], got {self.rotation}")

    def to_pixel(self, nx: float, ny: float) -> Tuple[float, float]:
        """Map one normalized point to pixel coordinates."""
        cos_r = math.cos(self.rotation)
        sin_r = math.sin(self.rotation)
        rx = nx * cos_r - ny * sin_r
        ry = nx * sin_r + ny * cos_r
        return self.center_x + rx * self.scale, self.center_y + ry * self.scale

    def project(self, points: np.ndarray) -> np.ndarray:
        """
        Map an (N, 2) array of normalized points to pixel coordinates.

        Args:
            points: Normalized (x, y) rows

        Returns:
            (N, 2) float array of pixel (x, y) rows
        """
        cos_r = math.cos(self.rotation)
        sin_r = math.sin(self.rotation)
        rotation = np.array([[cos_r, -sin_r], [sin_r, cos_r]])
        offset = np.array([self.center_x, self.center_y])
        return points @ rotation.T * self.scale + offset

    def __repr__(self) -> str:
        return (
            f"Transform(center=({self.center_x:.1f}, {self.center_y:.1f}), "
            f"scale={self.scale:.2f}, rot={math.degrees(self.rotation):+.1f}deg)"
        )


@dataclass(frozen=True, slots=True)
class WhiteBalance:
    """
    Per-channel gain derived from the anchors.

    Attributes:
        measured: Mean anchor color before correction (r, g, b)
        gain: Multiplicative gain per channel (1.0 when uncalibrated)
        applied: False when the anchors were too dark to trust
    """

    measured: Tuple[float, float, float]
    gain: Tuple[float, float, float]
    applied: bool


@dataclass(frozen=True, slots=True)
class DotSample:
    """
    Sampled color of one data dot (debug only).

    Attributes:
        x: Sample center X (pixels)
        y: Sample center Y (pixels)
        raw: Averaged color before white balance
        corrected: Color after white balance
        value: Matched palette index
        in_bounds: False when the dot fell outside the image
    """

    x: float
    y: float
    raw: Tuple[float, float, float]
    corrected: Tuple[float, float, float]
    value: int
    in_bounds: bool = True


@dataclass(frozen=True, slots=True)
class SampleResult:
    """Output of the color sampler."""

    dot_values: List[int]
    samples: List[DotSample]
    white_balance: WhiteBalance


@dataclass(frozen=True, slots=True)
class FrameHeaderInfo:
    """Header decoded from the latest capture (debug only)."""

    frame_index: int
    frame_total: int


@dataclass(slots=True)
class DebugSnapshot:
    """
    Diagnostic view of one tick.

    Returned alongside every TickResult. Purely descriptive: the caller
    decides whether to render it, and nothing in it feeds back into
    decoding.
    """

    status: DetectionStatus = DetectionStatus.NO_BLOBS
    blob_count: int = 0
    blobs: List[Blob] = field(default_factory=list)
    transform: Optional[Transform] = None
    transform_source: TransformSource = TransformSource.NONE
    samples: List[DotSample] = field(default_factory=list)
    white_balance: Optional[WhiteBalance] = None
    header: Optional[FrameHeaderInfo] = None
    received: int = 0


@dataclass(frozen=True, slots=True)
class TickResult:
    """
    Result of pushing one capture through the pipeline.

    Attributes:
        progress: Reconstruction progress in [0, 1]
        complete: True once every frame has been received
        detected: False when no transform (fresh or cached) was available
        outcome: What the consensus decoder did (None when not detected)
        debug: Diagnostic snapshot for overlays and logging
    """

    progress: float
    complete: bool
    detected: bool
    outcome: Optional[CaptureOutcome]
    debug: DebugSnapshot

    def __repr__(self) -> str:
        outcome = self.outcome.value if self.outcome else None
        return (
            f"TickResult(progress={self.progress:.2f}, complete={self.complete}, "
            f"detected={self.detected}, outcome={outcome})"
        )
