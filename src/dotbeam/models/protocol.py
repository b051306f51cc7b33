"""
Protocol Configuration
======================

Parameters that define the dotbeam wire format.

A configuration is fixed for the lifetime of a scan session: the encoder
on the display side and the decoder on the camera side must agree on it,
since nothing in the frame itself describes the geometry.

Derived Quantities (default config):
    rings=4            -> 6 + 12 + 18 + 24 = 60 dots
    bits_per_dot=3     -> 180 bits per frame
    bits_per_frame / 8 -> 22 bytes per frame
    minus 2 header     -> 20 payload bytes per frame
    max 255 frames     -> 5,100 byte payload ceiling

Example:
    from dotbeam.models.protocol import ProtocolConfig

    config = ProtocolConfig()
    print(config.total_dots)       # 60
    print(config.bytes_per_frame)  # 20
"""

from pydantic import BaseModel, ConfigDict, Field


# Frame header: [frame index][frame total]
HEADER_BYTES = 2

# Frame index and total are single bytes
MAX_FRAMES = 255


class ProtocolConfig(BaseModel):
    """
    Encoding parameters shared by encoder and decoder.

    Attributes:
        rings: Number of concentric data rings (ring n holds 6n dots)
        bits_per_dot: Bits carried by each dot's color
        fps: Display rate of the animation (frames per second)
    """

    rings: int = Field(
        default=4,
        ge=1,
        description="Number of concentric data rings",
    )

    bits_per_dot: int = Field(
        default=3,
        ge=1,
        le=8,
        description="Bits encoded per dot (3 = 8-color palette)",
    )

    fps: int = Field(
        default=5,
        gt=0,
        description="Animation frame rate",
    )

    # Configs are immutable for a session
    model_config = ConfigDict(frozen=True)

    @property
    def total_dots(self) -> int:
        """Total data dots across all rings."""
        return sum(6 * ring for ring in range(1, self.rings + 1))

    @property
    def bits_per_frame(self) -> int:
        """Data bits carried by one frame."""
        return self.total_dots * self.bits_per_dot

    @property
    def bytes_per_frame(self) -> int:
        """Usable payload bytes per frame (excluding the 2-byte header)."""
        return self.bits_per_frame // 8 - HEADER_BYTES

    @property
    def frame_image_size(self) -> int:
        """Padded byte image size of one frame (header + payload + padding)."""
        return (self.bits_per_frame + 7) // 8

    @property
    def max_payload_bytes(self) -> int:
        """Largest payload that fits in MAX_FRAMES frames."""
        return max(0, self.bytes_per_frame) * MAX_FRAMES
