"""
Frame Models
============

One animation step of the dotbeam protocol.

Frame Byte Image:
    [frame_index:1][frame_total:1][payload...][zero padding]

The byte image is spread over the layout's dots, bits_per_dot bits per
dot, MSB-first, in ring order.
"""

from dataclasses import dataclass
from typing import List, Tuple

from dotbeam.models.protocol import MAX_FRAMES


@dataclass(frozen=True, slots=True)
class Dot:
    """
    One encoded symbol slot.

    Attributes:
        ring: Ring number (1-indexed)
        index: Position within the ring (0-indexed)
        value: Encoded value (0 .. 2**bits_per_dot - 1)
        x: Normalized X position
        y: Normalized Y position
    """

    ring: int
    index: int
    value: int
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Encoded animation frame.

    Attributes:
        index: Frame number (0-indexed)
        total: Total frames in the sequence
        dots: Data dots in ring order
        payload: Payload bytes carried by this frame (unpadded)
    """

    index: int
    total: int
    dots: Tuple[Dot, ...]
    payload: bytes

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not 0 < self.total <= MAX_FRAMES:
            raise ValueError(f"frame total must be in 1..{MAX_FRAMES}, got {self.total}")
        if not 0 <= self.index < self.total:
            raise ValueError(
                f"frame index must be in 0..{self.total - 1}, got {self.index}"
            )

    @property
    def dot_values(self) -> List[int]:
        """Dot values in ring order, as the decoder receives them."""
        return [dot.value for dot in self.dots]

    def __repr__(self) -> str:
        return (
            f"Frame(index={self.index}, total={self.total}, "
            f"dots={len(self.dots)}, payload={len(self.payload)}B)"
        )
