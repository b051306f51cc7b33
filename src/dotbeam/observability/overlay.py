"""
Debug Overlay
=============

Draws a tick's DebugSnapshot on top of the capture.

This module generates PURELY DESCRIPTIVE artifacts.
Overlays do NOT influence decoding.

Markers (RGB):
    - Every reported blob: green ring, radius ~ blob size
    - Anchors of the transform in use: red ring
    - Pattern center: yellow crosshair
    - Each sampled dot: small disc in its matched palette color
      (out-of-image dots are skipped)
    - Status line: detection status, transform source, header, received
"""

import logging
import math
from typing import Tuple

import cv2
import numpy as np

from dotbeam.models.detection import DebugSnapshot
from dotbeam.models.palette import PALETTE


logger = logging.getLogger(__name__)


GREEN = (0, 255, 0)
RED = (255, 0, 0)
YELLOW = (255, 255, 0)
WHITE = (255, 255, 255)


def draw_debug_overlay(pixels: np.ndarray, snapshot: DebugSnapshot) -> np.ndarray:
    """
    Annotate a capture.

    Args:
        pixels: (H, W, 3|4) uint8 capture (not modified)
        snapshot: Debug snapshot of the tick that processed it

    Returns:
        Annotated copy with the same shape as pixels
    """
    canvas = np.ascontiguousarray(pixels).copy()
    channels = canvas.shape[2]

    for blob in snapshot.blobs:
        radius = max(3, int(math.sqrt(blob.size) * 4))
        cv2.circle(canvas, _pt(blob.x, blob.y), radius, _color(GREEN, channels), 1)

    transform = snapshot.transform
    if transform is not None:
        for anchor in transform.anchors:
            cv2.circle(canvas, _pt(anchor.x, anchor.y), 12, _color(RED, channels), 2)

        cx, cy = _pt(transform.center_x, transform.center_y)
        arm = max(6, int(transform.scale * 0.08))
        yellow = _color(YELLOW, channels)
        cv2.line(canvas, (cx - arm, cy), (cx + arm, cy), yellow, 1)
        cv2.line(canvas, (cx, cy - arm), (cx, cy + arm), yellow, 1)

    for sample in snapshot.samples:
        if not sample.in_bounds:
            continue
        center = _pt(sample.x, sample.y)
        cv2.circle(canvas, center, 3, _color(PALETTE[sample.value].as_tuple(), channels), -1)
        cv2.circle(canvas, center, 4, _color(WHITE, channels), 1)

    cv2.putText(
        canvas,
        _status_line(snapshot),
        (8, 20),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        _color(WHITE, channels),
        1,
        cv2.LINE_AA,
    )

    return canvas


def _status_line(snapshot: DebugSnapshot) -> str:
    parts = [
        snapshot.status.value,
        f"blobs={snapshot.blob_count}",
        f"tf={snapshot.transform_source.value}",
    ]
    if snapshot.header is not None:
        parts.append(f"frame={snapshot.header.frame_index}/{snapshot.header.frame_total}")
    parts.append(f"rx={snapshot.received}")
    return " ".join(parts)


def _pt(x: float, y: float) -> Tuple[int, int]:
    return int(round(x)), int(round(y))


def _color(rgb: Tuple[int, int, int], channels: int) -> Tuple[int, ...]:
    if channels == 4:
        return (*rgb, 255)
    return tuple(rgb)
