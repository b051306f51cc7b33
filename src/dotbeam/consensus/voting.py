"""
Per-Dot Voting
==============

Sliding vote windows per frame index and the per-dot plurality vote.

A single capture routinely misreads a few dots (blur, glare, a frame
transition caught halfway). Voting across the last N captures of the
same frame index recovers the rendered values as long as each dot is
read correctly more often than any single wrong value.

Tie Rule:
    When two values share the highest count the smaller value wins.
"""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence

import numpy as np

from dotbeam.codec.frame_codec import FrameHeader, decode_dot_values


logger = logging.getLogger(__name__)


def majority_vote(captures: Sequence[Sequence[int]], value_count: int) -> List[int]:
    """
    Per-dot plurality across captures.

    Args:
        captures: Equal-length dot value vectors
        value_count: Number of possible values (2 ** bits_per_dot)

    Returns:
        Voted value per dot (smallest value wins ties)

    Raises:
        ValueError: If captures is empty or lengths differ
    """
    if not captures:
        raise ValueError("majority_vote needs at least one capture")

    arr = np.asarray(captures, dtype=np.int64)
    if arr.ndim != 2:
        raise ValueError("captures must all have the same length")

    dot_count = arr.shape[1]
    counts = np.zeros((dot_count, value_count), dtype=np.int64)
    dots = np.broadcast_to(np.arange(dot_count), arr.shape)
    np.add.at(counts, (dots, arr), 1)

    # argmax returns the first maximum, i.e. the smallest value
    return [int(v) for v in counts.argmax(axis=1)]


def vote_frame(
    captures: Sequence[Sequence[int]],
    expected_index: int,
    expected_total: int,
    bits_per_dot: int,
) -> Optional[FrameHeader]:
    """
    Vote a full bucket and decode the result.

    Args:
        captures: Captures stored under expected_index
        expected_index: Bucket key
        expected_total: Locked frame total
        bits_per_dot: Width of each dot value in bits

    Returns:
        Decoded header and payload, or None if the voted header
        disagrees with the bucket key (contaminated bucket)
    """
    voted = majority_vote(captures, 1 << bits_per_dot)
    header = decode_dot_values(voted, bits_per_dot)

    if header.index != expected_index or header.total != expected_total:
        logger.debug(
            f"Voted header ({header.index}/{header.total}) disagrees with "
            f"bucket ({expected_index}/{expected_total})"
        )
        return None

    return header


class VoteSet:
    """
    Bounded capture history per frame index.

    Each index keeps only its last `cap` captures; older ones fall out.

    Example:
        votes = VoteSet(cap=5)
        if votes.add(0, values) == votes.cap:
            header = vote_frame(votes.captures(0), 0, total, bits)
    """

    def __init__(self, cap: int = 5) -> None:
        if cap < 1:
            raise ValueError(f"cap must be >= 1, got {cap}")
        self.cap = cap
        self._buckets: Dict[int, Deque[List[int]]] = {}

    def add(self, index: int, values: Sequence[int]) -> int:
        """Store a capture and return the bucket's new size."""
        bucket = self._buckets.get(index)
        if bucket is None:
            bucket = deque(maxlen=self.cap)
            self._buckets[index] = bucket
        bucket.append(list(values))
        return len(bucket)

    def count(self, index: int) -> int:
        bucket = self._buckets.get(index)
        return len(bucket) if bucket else 0

    def is_full(self, index: int) -> bool:
        return self.count(index) >= self.cap

    def captures(self, index: int) -> List[List[int]]:
        return list(self._buckets.get(index, ()))

    def clear(self, index: int) -> None:
        self._buckets.pop(index, None)

    def clear_all(self) -> None:
        self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)
