"""
Consensus Module
================

Noise-tolerant reconstruction from many imperfect captures.

This module provides:
    - Frame-total locking over a tally of headers
    - Sliding per-index vote windows and per-dot plurality voting
    - Payload assembly once every frame is received
"""

from dotbeam.consensus.decoder import ConsensusDecoder, IncompleteDataError
from dotbeam.consensus.voting import VoteSet, majority_vote, vote_frame

__all__ = [
    "ConsensusDecoder",
    "IncompleteDataError",
    "VoteSet",
    "majority_vote",
    "vote_frame",
]
