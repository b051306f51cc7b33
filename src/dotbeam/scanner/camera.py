"""
Frame Sources
=============

Where captures come from.

A FrameSource hands the capture loop one RGBA frame per read. Sources
are opened before the first read and released when the loop stops.

Sources:
    - CameraSource: Live OpenCV camera device
    - ImageSequenceSource: Image files replayed in order (tests, offline
      decoding of recorded captures)

Design Rules:
    - read() returns None when no frame is available right now; the
      loop simply tries again next tick
    - The camera being unavailable is the only fatal condition
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

import cv2
import numpy as np

from dotbeam.stream.image_decoder import ImageDecodeError, bgr_to_rgba


logger = logging.getLogger(__name__)


class CameraUnavailableError(Exception):
    """Raised when the camera device cannot be opened or has gone away."""
    pass


class FrameSource(Protocol):
    """Capture provider consumed by ScanRunner."""

    def open(self) -> None:
        ...

    def read(self) -> Optional[np.ndarray]:
        ...

    def release(self) -> None:
        ...


class CameraSource:
    """
    OpenCV camera device.

    Attributes:
        device_index: cv2.VideoCapture device index
        width: Requested capture width
        height: Requested capture height

    Example:
        camera = CameraSource(0)
        camera.open()
        rgba = camera.read()
        camera.release()
    """

    def __init__(
        self,
        device_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        self.device_index = device_index
        self.width = width
        self.height = height
        self._capture: Optional[cv2.VideoCapture] = None
        self._failed_reads = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self) -> None:
        """
        Open the device.

        Raises:
            CameraUnavailableError: If the device cannot be opened
        """
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(
                f"Cannot open camera device {self.device_index}"
            )

        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        self._capture = capture
        logger.info(
            f"Camera {self.device_index} opened: "
            f"{int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def read(self) -> Optional[np.ndarray]:
        """
        Grab one frame.

        Returns:
            RGBA frame, or None if the device produced nothing this time

        Raises:
            CameraUnavailableError: If the device is not open
        """
        if not self.is_open:
            raise CameraUnavailableError(f"Camera {self.device_index} is not open")

        ok, bgr = self._capture.read()
        if not ok or bgr is None:
            self._failed_reads += 1
            logger.debug(f"Camera {self.device_index}: empty read ({self._failed_reads})")
            return None

        return bgr_to_rgba(bgr)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.device_index} released")


class ImageSequenceSource:
    """
    Replays image files as captures.

    Attributes:
        paths: Image files in playback order
        loop: Start over after the last image (otherwise read() returns None)
    """

    def __init__(self, paths: Sequence[Union[str, Path]], loop: bool = True) -> None:
        if not paths:
            raise ValueError("ImageSequenceSource needs at least one image")
        self.paths: List[Path] = [Path(p) for p in paths]
        self.loop = loop
        self._frames: Optional[List[np.ndarray]] = None
        self._position = 0

    def open(self) -> None:
        """
        Load every image up front.

        Raises:
            ImageDecodeError: If an image cannot be read
        """
        frames = []
        for path in self.paths:
            bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
            if bgr is None:
                raise ImageDecodeError(f"Cannot read image: {path}")
            frames.append(bgr_to_rgba(bgr))

        self._frames = frames
        self._position = 0
        logger.info(f"Image sequence opened: {len(frames)} images, loop={self.loop}")

    def read(self) -> Optional[np.ndarray]:
        if self._frames is None:
            self.open()

        if self._position >= len(self._frames):
            if not self.loop:
                return None
            self._position = 0

        frame = self._frames[self._position]
        self._position += 1
        return frame

    def release(self) -> None:
        self._frames = None
        self._position = 0
