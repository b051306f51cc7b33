"""
Consensus Decoder
=================

Accumulates per-capture dot values into a reconstructed payload.

Phases:
    IDLE      -> no valid capture yet
    LOCKING   -> tallying frame totals until one is trustworthy
    DECODING  -> total locked; voting frames per index
    COMPLETE  -> every frame received; further captures are ignored

Locking:
    The frame total is read from every capture's header, and a single
    misread header must not decide how many frames to wait for. After
    lock_min_captures valid captures the plurality total is locked if it
    holds at least lock_min_share of the tally. Captures seen while
    locking are buffered and replayed once the total is known, so early
    frames are not wasted. After lock the total never changes.

Progress:
    (received + sum(partial bucket fill / vote_cap)) / total
"""

import logging
from collections import Counter, deque
from typing import Deque, List, Optional, Sequence, Set, Tuple

from dotbeam.codec.frame_codec import FrameHeader, FrameTooShortError, decode_dot_values
from dotbeam.consensus.voting import VoteSet, vote_frame
from dotbeam.models.protocol import MAX_FRAMES, ProtocolConfig
from dotbeam.models.status import CaptureOutcome, DecoderPhase


logger = logging.getLogger(__name__)


class IncompleteDataError(Exception):
    """Raised when final bytes are requested before every frame is received."""
    pass


class ConsensusDecoder:
    """
    Frame-total locking plus per-index majority voting.

    Attributes:
        config: Protocol configuration
        lock_min_captures: Valid captures needed before locking
        lock_min_share: Plurality share needed to lock (0-1)
        vote_cap: Captures per frame index before voting

    Example:
        decoder = ConsensusDecoder(ProtocolConfig())
        for values in captures:
            decoder.add_capture(values)
        if decoder.is_complete:
            data = decoder.final_bytes()
    """

    def __init__(
        self,
        config: ProtocolConfig,
        lock_min_captures: int = 10,
        lock_min_share: float = 0.30,
        vote_cap: int = 5,
    ) -> None:
        if lock_min_captures < 1:
            raise ValueError(f"lock_min_captures must be >= 1, got {lock_min_captures}")
        if not 0.0 < lock_min_share <= 1.0:
            raise ValueError(f"lock_min_share must be in (0, 1], got {lock_min_share}")

        self.config = config
        self.lock_min_captures = lock_min_captures
        self.lock_min_share = lock_min_share
        self.vote_cap = vote_cap

        self._value_count = 1 << config.bits_per_dot
        self._votes = VoteSet(cap=vote_cap)
        self._pending: Deque[Tuple[FrameHeader, List[int]]] = deque(
            maxlen=lock_min_captures * vote_cap
        )

        self._phase = DecoderPhase.IDLE
        self._tally: Counter = Counter()
        self._valid_captures = 0
        self._locked_total: Optional[int] = None
        self._payloads: List[Optional[bytes]] = [None] * (MAX_FRAMES + 1)
        self._received: Set[int] = set()
        self._last_header: Optional[FrameHeader] = None

        # Metrics
        self._captures = 0
        self._malformed = 0
        self._mismatched = 0
        self._contaminated = 0

        logger.info(
            f"ConsensusDecoder initialized: dots={config.total_dots}, "
            f"bits_per_dot={config.bits_per_dot}, lock_min={lock_min_captures}, "
            f"lock_share={lock_min_share}, vote_cap={vote_cap}"
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> DecoderPhase:
        return self._phase

    @property
    def locked_total(self) -> Optional[int]:
        return self._locked_total

    @property
    def received_count(self) -> int:
        return len(self._received)

    @property
    def is_complete(self) -> bool:
        return self._phase == DecoderPhase.COMPLETE

    @property
    def last_header(self) -> Optional[FrameHeader]:
        """Header of the latest well-formed capture."""
        return self._last_header

    @property
    def progress(self) -> float:
        """Reconstruction progress in [0, 1]; 0 until the total is locked."""
        total = self._locked_total
        if not total:
            return 0.0

        done = 0.0
        for index in range(total):
            if index in self._received:
                done += 1.0
            else:
                done += self._votes.count(index) / self.vote_cap

        return min(max(done / total, 0.0), 1.0)

    def is_received(self, index: int) -> bool:
        return index in self._received

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    def add_capture(self, dot_values: Sequence[int]) -> CaptureOutcome:
        """
        Feed one capture's dot values.

        Args:
            dot_values: One value per data dot, in ring order

        Returns:
            What the decoder did with the capture
        """
        if self._phase == DecoderPhase.COMPLETE:
            return CaptureOutcome.IGNORED

        self._captures += 1

        values = list(dot_values)
        header = self._parse(values)
        if header is None:
            self._malformed += 1
            return CaptureOutcome.MALFORMED

        self._last_header = header

        if self._locked_total is None:
            return self._tally_capture(header, values)

        if header.total != self._locked_total:
            self._mismatched += 1
            logger.debug(
                f"Capture total {header.total} != locked {self._locked_total}, discarded"
            )
            return CaptureOutcome.TOTAL_MISMATCH

        return self._accumulate(header.index, values)

    def _parse(self, values: List[int]) -> Optional[FrameHeader]:
        """Decode the header, or None if the capture is malformed."""
        if len(values) != self.config.total_dots:
            logger.debug(f"Malformed: {len(values)} values, expected {self.config.total_dots}")
            return None

        if any(v < 0 or v >= self._value_count for v in values):
            logger.debug("Malformed: dot value out of range")
            return None

        try:
            header = decode_dot_values(values, self.config.bits_per_dot)
        except FrameTooShortError:
            logger.debug("Malformed: fewer than 2 header bytes")
            return None

        if header.total == 0 or header.total > MAX_FRAMES or header.index >= header.total:
            logger.debug(f"Malformed header: index={header.index}, total={header.total}")
            return None

        return header

    def _tally_capture(self, header: FrameHeader, values: List[int]) -> CaptureOutcome:
        self._phase = DecoderPhase.LOCKING
        self._tally[header.total] += 1
        self._valid_captures += 1
        self._pending.append((header, values))

        if self._valid_captures < self.lock_min_captures:
            return CaptureOutcome.TALLIED

        # Plurality, smallest total on ties
        total, votes = max(self._tally.items(), key=lambda item: (item[1], -item[0]))
        share = votes / self._valid_captures
        if share < self.lock_min_share:
            logger.debug(f"No lock yet: best total {total} holds {share:.0%}")
            return CaptureOutcome.TALLIED

        self._lock(total, share)

        outcome = CaptureOutcome.LOCKED
        pending = [(h, v) for h, v in self._pending if h.total == total]
        self._pending.clear()
        for pending_header, pending_values in pending:
            if self._accumulate(pending_header.index, pending_values) == CaptureOutcome.COMPLETE:
                outcome = CaptureOutcome.COMPLETE
                break

        return outcome

    def _lock(self, total: int, share: float) -> None:
        self._locked_total = total
        self._phase = DecoderPhase.DECODING
        logger.info(
            f"Locked frame total {total} after {self._valid_captures} captures "
            f"({share:.0%} share, tally={dict(self._tally)})"
        )

    def _accumulate(self, index: int, values: List[int]) -> CaptureOutcome:
        if self._votes.add(index, values) < self.vote_cap:
            return CaptureOutcome.ACCUMULATED

        header = vote_frame(
            self._votes.captures(index),
            expected_index=index,
            expected_total=self._locked_total,
            bits_per_dot=self.config.bits_per_dot,
        )
        if header is None:
            self._votes.clear(index)
            self._contaminated += 1
            logger.warning(f"Frame {index}: contaminated votes, bucket cleared")
            return CaptureOutcome.VOTES_CONTAMINATED

        if index not in self._received:
            self._received.add(index)
            logger.info(
                f"Frame {index} voted ({len(self._received)}/{self._locked_total})"
            )
        self._payloads[index] = header.payload

        if len(self._received) == self._locked_total:
            self._phase = DecoderPhase.COMPLETE
            logger.info(
                f"Decode complete: {self._locked_total} frames, "
                f"{self._captures} captures"
            )
            return CaptureOutcome.COMPLETE

        return CaptureOutcome.FRAME_VOTED

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def final_bytes(self) -> bytes:
        """
        Concatenate frame payloads in index order.

        Trailing padding of the last frame is kept; the payload length
        travels out of band.

        Raises:
            IncompleteDataError: If any frame is still missing
        """
        if not self.is_complete:
            raise IncompleteDataError(
                f"{self.received_count}/{self._locked_total or '?'} frames received"
            )
        return b"".join(self._payloads[i] for i in range(self._locked_total))

    def reset(self) -> None:
        """Discard all state and return to IDLE."""
        self._votes.clear_all()
        self._pending.clear()
        self._phase = DecoderPhase.IDLE
        self._tally.clear()
        self._valid_captures = 0
        self._locked_total = None
        self._payloads = [None] * (MAX_FRAMES + 1)
        self._received = set()
        self._last_header = None
        self._captures = 0
        self._malformed = 0
        self._mismatched = 0
        self._contaminated = 0
        logger.info("ConsensusDecoder reset")

    def get_metrics(self) -> dict:
        """Get decoder metrics."""
        return {
            "phase": self._phase.value,
            "captures": self._captures,
            "malformed": self._malformed,
            "total_mismatch": self._mismatched,
            "contaminated": self._contaminated,
            "locked_total": self._locked_total,
            "received": len(self._received),
            "progress": round(self.progress, 3),
        }
