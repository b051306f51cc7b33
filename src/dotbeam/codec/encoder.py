"""
Frame Encoder
=============

Splits a payload into dotbeam frames.

This is the display-side half of the protocol. The decoder never calls
it; it exists so that renderers, tools and tests can produce frames
that match the wire format exactly.
"""

import logging
from typing import List, Tuple

from dotbeam.codec.frame_codec import (
    FrameCodecError,
    PayloadTooLargeError,
    build_frame_image,
    bytes_to_dot_values,
)
from dotbeam.geometry import compute_layout
from dotbeam.models.frame import Dot, Frame
from dotbeam.models.protocol import MAX_FRAMES, ProtocolConfig


logger = logging.getLogger(__name__)


class Encoder:
    """
    Converts arbitrary bytes into a sequence of frames.

    Example:
        encoder = Encoder(ProtocolConfig())
        frames = encoder.encode(b"hello")
        print(frames[0].dot_values)
    """

    def __init__(self, config: ProtocolConfig) -> None:
        """
        Initialize encoder.

        Args:
            config: Protocol configuration

        Raises:
            FrameCodecError: If the configuration leaves no room for payload
        """
        if config.bytes_per_frame <= 0:
            raise FrameCodecError(
                f"config carries {config.bits_per_frame} bits per frame, "
                f"too few for a header and payload"
            )
        self.config = config
        self.layout = compute_layout(config)

    def frame_count(self, length: int) -> int:
        """Frames needed for a payload of the given length."""
        per_frame = self.config.bytes_per_frame
        return (length + per_frame - 1) // per_frame

    def encode(self, data: bytes) -> List[Frame]:
        """
        Encode a payload.

        Args:
            data: Payload bytes

        Returns:
            Frames in index order (empty for empty input)

        Raises:
            PayloadTooLargeError: If more than 255 frames would be needed
        """
        per_frame = self.config.bytes_per_frame
        total = self.frame_count(len(data))
        if total > MAX_FRAMES:
            raise PayloadTooLargeError(
                f"payload of {len(data)} bytes needs {total} frames, "
                f"limit is {MAX_FRAMES} ({self.config.max_payload_bytes} bytes)"
            )

        frames = []
        for index in range(total):
            chunk = bytes(data[index * per_frame:(index + 1) * per_frame])
            image = build_frame_image(index, total, chunk, self.config)
            frames.append(
                Frame(
                    index=index,
                    total=total,
                    dots=self._to_dots(image),
                    payload=chunk,
                )
            )

        logger.debug(f"Encoded {len(data)} bytes into {total} frames")
        return frames

    def _to_dots(self, image: bytes) -> Tuple[Dot, ...]:
        values = bytes_to_dot_values(
            image, self.config.bits_per_dot, self.layout.total_dots
        )
        dots = []
        positions = (
            (ring.ring, j, pos)
            for ring in self.layout.rings
            for j, pos in enumerate(ring.positions)
        )
        for value, (ring_number, j, pos) in zip(values, positions):
            dots.append(Dot(ring=ring_number, index=j, value=value, x=pos.x, y=pos.y))
        return tuple(dots)
