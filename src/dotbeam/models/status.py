"""
Status Codes
============

Fixed set of machine-readable codes describing what happened on a tick.

Rules:
    - No free-text explanations
    - One clear cause per code
    - Internal self-correction (drift rejection, contamination) is
      reported here, never raised as an exception
"""

from enum import Enum


class DetectionStatus(str, Enum):
    """
    Outcome of the geometry stage for one capture.

    Attributes:
        NO_BLOBS: No anchor candidates found
        NO_TRIANGLE: Candidates found but no valid anchor triple among them
        DETECTED: A fresh transform was derived from this capture
        SKIPPED: Decoder already complete, capture not analysed
    """

    NO_BLOBS = "NO_BLOBS"
    NO_TRIANGLE = "NO_TRIANGLE"
    DETECTED = "DETECTED"
    SKIPPED = "SKIPPED"


class TransformSource(str, Enum):
    """
    Where the transform used on a tick came from.

    Attributes:
        FRESH: Fresh estimate accepted (and now cached)
        CACHED: No fresh estimate this tick, cached transform reused
        DRIFT_REJECTED: Fresh estimate disagreed with the cache and was discarded
        NONE: Neither a fresh estimate nor a cache exists
    """

    FRESH = "FRESH"
    CACHED = "CACHED"
    DRIFT_REJECTED = "DRIFT_REJECTED"
    NONE = "NONE"


class DecoderPhase(str, Enum):
    """
    Consensus decoder state machine.

    IDLE -> LOCKING -> DECODING -> COMPLETE
    """

    IDLE = "IDLE"
    LOCKING = "LOCKING"
    DECODING = "DECODING"
    COMPLETE = "COMPLETE"


class CaptureOutcome(str, Enum):
    """
    What the consensus decoder did with one dot-value capture.

    Attributes:
        MALFORMED: Header unparseable or out of range, discarded
        TALLIED: Frame total counted toward the lock, not yet locked
        LOCKED: This capture completed the lock on the frame total
        TOTAL_MISMATCH: Locked, but the capture reported another total
        ACCUMULATED: Added to its frame's vote bucket
        FRAME_VOTED: Bucket full, voted payload stored
        VOTES_CONTAMINATED: Voted header disagreed with bucket key, bucket cleared
        COMPLETE: All frames received
        IGNORED: Decoder already complete
    """

    MALFORMED = "MALFORMED"
    TALLIED = "TALLIED"
    LOCKED = "LOCKED"
    TOTAL_MISMATCH = "TOTAL_MISMATCH"
    ACCUMULATED = "ACCUMULATED"
    FRAME_VOTED = "FRAME_VOTED"
    VOTES_CONTAMINATED = "VOTES_CONTAMINATED"
    COMPLETE = "COMPLETE"
    IGNORED = "IGNORED"
