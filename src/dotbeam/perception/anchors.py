"""
Anchor Detector
===============

Finds bright, white blobs that may be the pattern's anchor dots.

Algorithm:
    1. Quantize the image into cell_size x cell_size cells.
    2. Sample every sample_step-th pixel; a cell is BRIGHT if any sample
       in it has all channels above brightness_threshold.
    3. Group bright cells into 4-connected components.
    4. Drop components smaller than min_blob_cells (noise, text) or
       larger than max_blob_cells (screen glare).
    5. Average a small patch at each centroid and drop blobs whose
       saturation exceeds max_saturation: a bright colored data dot
       can clip all channels through a camera, but its center is
       still colored. Real white anchors read below ~0.15.

Output is sorted by size descending. An empty list is a valid result.
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from dotbeam.models.detection import Blob
from dotbeam.perception.color import saturation
from dotbeam.perception.pixels import PixelInput, as_pixel_array, patch_mean


logger = logging.getLogger(__name__)


class AnchorDetector:
    """
    Grid-based white blob finder.

    Attributes:
        cell_size: Grid cell edge in pixels
        brightness_threshold: Per-channel brightness a sample must exceed
        sample_step: Pixel stride of the sparse sample grid
        min_blob_cells: Smallest accepted component (cells)
        max_blob_cells: Largest accepted component (cells)
        max_saturation: Largest accepted centroid saturation
        patch_radius: Half-size of the square centroid patch

    Example:
        detector = AnchorDetector()
        blobs = detector.find_blobs(rgba)
        print([b.size for b in blobs])
    """

    def __init__(
        self,
        cell_size: int = 8,
        brightness_threshold: int = 180,
        sample_step: int = 2,
        min_blob_cells: int = 2,
        max_blob_cells: int = 60,
        max_saturation: float = 0.25,
        patch_radius: int = 2,
    ) -> None:
        if cell_size < 1 or sample_step < 1:
            raise ValueError("cell_size and sample_step must be >= 1")
        if min_blob_cells < 1 or max_blob_cells < min_blob_cells:
            raise ValueError(
                f"invalid blob bounds: min={min_blob_cells}, max={max_blob_cells}"
            )

        self.cell_size = cell_size
        self.brightness_threshold = brightness_threshold
        self.sample_step = sample_step
        self.min_blob_cells = min_blob_cells
        self.max_blob_cells = max_blob_cells
        self.max_saturation = max_saturation
        self.patch_radius = patch_radius

        logger.info(
            f"AnchorDetector initialized: cell={cell_size}px, "
            f"threshold={brightness_threshold}, "
            f"cells=[{min_blob_cells}, {max_blob_cells}], "
            f"max_sat={max_saturation}"
        )

    def find_blobs(self, pixels: np.ndarray) -> List[Blob]:
        """
        Detect anchor candidates.

        Args:
            pixels: (H, W, 3|4) uint8 RGB(A) image

        Returns:
            Blobs sorted by size, largest first
        """
        grid = self._bright_cells(pixels)

        count, _, stats, centroids = cv2.connectedComponentsWithStats(
            grid, connectivity=4
        )

        blobs = []
        half_cell = self.cell_size / 2
        # Label 0 is the background
        for label in range(1, count):
            cells = int(stats[label, cv2.CC_STAT_AREA])
            if cells < self.min_blob_cells or cells > self.max_blob_cells:
                continue

            # Mean of cell centers, in pixels
            gx, gy = centroids[label]
            x = float(gx) * self.cell_size + half_cell
            y = float(gy) * self.cell_size + half_cell

            if not self._is_white(pixels, x, y):
                continue

            blobs.append(Blob(x=x, y=y, size=cells))

        blobs.sort(key=lambda blob: blob.size, reverse=True)

        logger.debug(f"find_blobs: {count - 1} components, {len(blobs)} blobs kept")
        return blobs

    def _bright_cells(self, pixels: np.ndarray) -> np.ndarray:
        """Mark grid cells containing at least one bright sample."""
        height, width = pixels.shape[:2]
        grid_h = -(-height // self.cell_size)
        grid_w = -(-width // self.cell_size)
        grid = np.zeros((grid_h, grid_w), dtype=np.uint8)

        step = self.sample_step
        sampled = pixels[::step, ::step, :3]
        bright = np.all(sampled > self.brightness_threshold, axis=-1)

        ys, xs = np.nonzero(bright)
        grid[(ys * step) // self.cell_size, (xs * step) // self.cell_size] = 1
        return grid

    def _is_white(self, pixels: np.ndarray, x: float, y: float) -> bool:
        mean = patch_mean(pixels, x, y, self.patch_radius, circular=False)
        if mean is None:
            return True
        return saturation(*mean) <= self.max_saturation


def find_blobs(
    pixels: PixelInput,
    width: Optional[int] = None,
    height: Optional[int] = None,
    detector: Optional[AnchorDetector] = None,
) -> List[Blob]:
    """
    Detect anchor candidates in a raw capture buffer.

    Args:
        pixels: Flat RGBA buffer or (H, W, 3|4) array
        width: Image width (flat buffers only)
        height: Image height (flat buffers only)
        detector: Detector to use (default parameters if None)

    Returns:
        Blobs sorted by size, largest first
    """
    detector = detector or AnchorDetector()
    return detector.find_blobs(as_pixel_array(pixels, width, height))
