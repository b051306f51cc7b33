"""
Frame Renderer
==============

Draws encoded frames as images, the way the display side shows them.

Drawing Order:
    1. Background (#0a0a1a)
    2. Data dots, radius 0.06 * scale, palette color per value
    3. Anchors, radius 0.065 * scale, white (drawn last, on top)

scale = min(width, height) / 2 * 0.95, pattern centered on the canvas.

Used to produce synthetic captures for tests, and by the CLI to export
a frame sequence for display.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

import cv2
import numpy as np

from dotbeam.geometry.layout import canvas_scale
from dotbeam.models.frame import Frame
from dotbeam.models.layout import Layout
from dotbeam.models.palette import ANCHOR_COLOR, BACKGROUND_COLOR, PALETTE


logger = logging.getLogger(__name__)


DOT_RADIUS = 0.06
ANCHOR_DOT_RADIUS = 0.065


def render_frame(frame: Frame, layout: Layout, width: int, height: int) -> np.ndarray:
    """
    Render one frame.

    Args:
        frame: Encoded frame (dot values in ring order)
        layout: Layout the frame was encoded for
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        RGBA image as np.ndarray (H, W, 4), dtype=uint8
    """
    image = np.empty((height, width, 4), dtype=np.uint8)
    image[:, :, :3] = BACKGROUND_COLOR.as_tuple()
    image[:, :, 3] = 255

    scale = canvas_scale(width, height)
    cx = width / 2
    cy = height / 2

    dot_radius = max(1, int(round(DOT_RADIUS * scale)))
    for dot in frame.dots:
        color = PALETTE[dot.value]
        _circle(image, cx + dot.x * scale, cy + dot.y * scale, dot_radius, color.as_tuple())

    anchor_radius = max(1, int(round(ANCHOR_DOT_RADIUS * scale)))
    for anchor in layout.anchors:
        _circle(
            image,
            cx + anchor.x * scale,
            cy + anchor.y * scale,
            anchor_radius,
            ANCHOR_COLOR.as_tuple(),
        )

    return image


def save_frames(
    frames: Sequence[Frame],
    layout: Layout,
    out_dir: Union[str, Path],
    size: int = 600,
) -> List[Path]:
    """
    Render frames to frame_NNN.png files.

    Args:
        frames: Frames in index order
        layout: Layout the frames were encoded for
        out_dir: Output directory (created if missing)
        size: Square image edge in pixels

    Returns:
        Written file paths
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for frame in frames:
        rgba = render_frame(frame, layout, size, size)
        path = out_dir / f"frame_{frame.index:03d}.png"
        if not cv2.imwrite(str(path), cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)):
            raise OSError(f"Failed to write {path}")
        paths.append(path)

    logger.info(f"Saved {len(paths)} frames to {out_dir}")
    return paths


def _circle(image: np.ndarray, x: float, y: float, radius: int, rgb) -> None:
    r, g, b = rgb
    cv2.circle(
        image,
        (int(round(x)), int(round(y))),
        radius,
        (int(r), int(g), int(b), 255),
        thickness=-1,
        lineType=cv2.LINE_8,
    )
