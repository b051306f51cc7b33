"""
Consensus Decoder Tests
=======================

Majority voting, frame-total locking and payload assembly.
"""

import pytest

from dotbeam.codec import build_frame_image, bytes_to_dot_values
from dotbeam.consensus import (
    ConsensusDecoder,
    IncompleteDataError,
    VoteSet,
    majority_vote,
    vote_frame,
)
from dotbeam.models.protocol import ProtocolConfig
from dotbeam.models.status import CaptureOutcome, DecoderPhase


DATA_45 = bytes(range(100, 145))


def _header_values(index, total, config=None):
    """Dot values of a frame with the given header and an empty payload."""
    config = config or ProtocolConfig()
    image = bytes([index, total]).ljust(config.frame_image_size, b"\x00")
    return bytes_to_dot_values(image, config.bits_per_dot, config.total_dots)


class TestMajorityVote:
    """Per-dot plurality."""

    def test_plurality_per_dot(self):
        captures = [[1, 2, 3], [1, 2, 0], [1, 5, 3]]
        assert majority_vote(captures, 8) == [1, 2, 3]

    def test_ties_go_to_smallest_value(self):
        assert majority_vote([[4, 7], [2, 6]], 8) == [2, 6]

    def test_recovers_from_minority_errors(self, hi_frame):
        clean = hi_frame.dot_values
        captures = [list(clean) for _ in range(5)]
        # Two captures misread different dots
        for i in range(0, 60, 3):
            captures[0][i] = (clean[i] + 1) % 8
            captures[1][i] = (clean[i] + 2) % 8
        assert majority_vote(captures, 8) == clean

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            majority_vote([], 8)


class TestVoteSet:
    """Sliding capture windows."""

    def test_keeps_last_cap_captures(self):
        votes = VoteSet(cap=3)
        for value in range(5):
            votes.add(0, [value])
        assert votes.count(0) == 3
        assert votes.captures(0) == [[2], [3], [4]]
        assert votes.is_full(0)

    def test_clear(self):
        votes = VoteSet(cap=2)
        votes.add(0, [1])
        votes.add(1, [1])
        votes.clear(0)
        assert votes.count(0) == 0
        assert votes.count(1) == 1
        assert len(votes) == 1

    def test_vote_frame_decodes(self, encoder):
        frames = encoder.encode(DATA_45)
        captures = [frames[1].dot_values] * 5
        header = vote_frame(captures, expected_index=1, expected_total=3, bits_per_dot=3)
        assert header.payload == DATA_45[20:40]

    def test_vote_frame_contaminated(self, encoder):
        frames = encoder.encode(DATA_45)
        votes = VoteSet(cap=5)
        for _ in range(2):
            votes.add(0, frames[0].dot_values)
        for _ in range(3):
            votes.add(0, frames[1].dot_values)

        assert vote_frame(votes.captures(0), 0, 3, 3) is None


class TestMalformed:
    """Captures rejected before tallying."""

    @pytest.mark.parametrize("values", [
        [0] * 59,
        [0] * 61,
        [8] + [0] * 59,
        [-1] + [0] * 59,
    ])
    def test_bad_vectors(self, values):
        decoder = ConsensusDecoder(ProtocolConfig())
        assert decoder.add_capture(values) == CaptureOutcome.MALFORMED
        assert decoder.phase == DecoderPhase.IDLE

    @pytest.mark.parametrize("index,total", [(0, 0), (3, 3), (9, 2)])
    def test_bad_headers(self, index, total):
        decoder = ConsensusDecoder(ProtocolConfig())
        assert decoder.add_capture(_header_values(index, total)) == CaptureOutcome.MALFORMED
        assert decoder.get_metrics()["malformed"] == 1


class TestLocking:
    """Frame-total lock."""

    def test_tallies_until_min_captures(self, hi_frame):
        decoder = ConsensusDecoder(ProtocolConfig())
        for _ in range(9):
            assert decoder.add_capture(hi_frame.dot_values) == CaptureOutcome.TALLIED
        assert decoder.phase == DecoderPhase.LOCKING
        assert decoder.locked_total is None
        assert decoder.progress == 0.0

    def test_no_lock_without_share(self):
        decoder = ConsensusDecoder(ProtocolConfig())
        for total in range(1, 11):
            assert decoder.add_capture(_header_values(0, total)) == CaptureOutcome.TALLIED
        assert decoder.locked_total is None

    def test_lock_is_stable(self, encoder):
        frames = encoder.encode(DATA_45)
        stray = _header_values(0, 7)
        decoder = ConsensusDecoder(ProtocolConfig())

        for _ in range(3):
            decoder.add_capture(stray)
        for i in range(7):
            decoder.add_capture(frames[i % 3].dot_values)

        assert decoder.locked_total == 3
        assert decoder.phase == DecoderPhase.DECODING

        for _ in range(20):
            assert decoder.add_capture(stray) == CaptureOutcome.TOTAL_MISMATCH
        assert decoder.locked_total == 3

    def test_plurality_total_wins(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig())
        for _ in range(4):
            decoder.add_capture(_header_values(0, 5))
        for i in range(6):
            decoder.add_capture(frames[i % 3].dot_values)
        assert decoder.locked_total == 3


class TestDecoding:
    """Voting, completion and output."""

    def test_single_small_frame(self, hi_frame):
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)
        assert decoder.add_capture(hi_frame.dot_values) == CaptureOutcome.COMPLETE
        assert decoder.progress == 1.0
        data = decoder.final_bytes()
        assert data[:2] == b"hi"
        assert data == b"hi" + b"\x00" * 18

    def test_single_frame_default_settings(self, hi_frame):
        decoder = ConsensusDecoder(ProtocolConfig())
        outcomes = [decoder.add_capture(hi_frame.dot_values) for _ in range(10)]
        assert outcomes[:9] == [CaptureOutcome.TALLIED] * 9
        assert outcomes[9] == CaptureOutcome.COMPLETE
        assert decoder.final_bytes()[:2] == b"hi"

    def test_out_of_order_frames(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)

        assert decoder.add_capture(frames[2].dot_values) == CaptureOutcome.LOCKED
        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.FRAME_VOTED
        assert decoder.add_capture(frames[1].dot_values) == CaptureOutcome.COMPLETE

        data = decoder.final_bytes()
        assert len(data) == 60
        assert data[:45] == DATA_45

    def test_out_of_order_default_settings(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig())
        order = [2, 0, 1]

        for n in range(30):
            decoder.add_capture(frames[order[n % 3]].dot_values)
            if decoder.is_complete:
                break

        assert decoder.is_complete
        assert decoder.final_bytes()[:45] == DATA_45

    def test_progress_counts_partial_buckets(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=5)

        decoder.add_capture(frames[0].dot_values)
        assert decoder.progress == pytest.approx(1 / 15)

        for _ in range(4):
            decoder.add_capture(frames[0].dot_values)
        assert decoder.is_received(0)
        assert decoder.progress == pytest.approx(1 / 3)

        decoder.add_capture(frames[1].dot_values)
        assert decoder.progress == pytest.approx((1 + 0.2) / 3)

    def test_corrupted_header_captures_do_not_poison_frame(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=5)

        # Dot 2 carries the low bits of the index byte: value 2 reads as index 1
        misread = list(frames[0].dot_values)
        assert misread[2] == 0
        misread[2] = 2

        outcomes = [decoder.add_capture(frames[0].dot_values) for _ in range(3)]
        outcomes += [decoder.add_capture(misread) for _ in range(2)]
        assert outcomes == [
            CaptureOutcome.LOCKED,
            CaptureOutcome.ACCUMULATED,
            CaptureOutcome.ACCUMULATED,
            CaptureOutcome.ACCUMULATED,
            CaptureOutcome.ACCUMULATED,
        ]
        assert decoder.last_header.index == 1
        assert not decoder.is_received(0)
        assert not decoder.is_received(1)

        # Frame 0 keeps accumulating and votes its own payload
        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.ACCUMULATED
        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.FRAME_VOTED
        assert decoder.is_received(0)

        # Clean frame-1 captures outvote the misread ones
        for _ in range(3):
            decoder.add_capture(frames[1].dot_values)
        assert decoder.is_received(1)
        for _ in range(5):
            decoder.add_capture(frames[2].dot_values)

        assert decoder.is_complete
        assert decoder.final_bytes()[:45] == DATA_45

    def test_corrupted_total_captures_are_rejected(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=5)

        # Value 3 also sets the top bit of the total byte: total 3 reads as 131
        misread = list(frames[0].dot_values)
        misread[2] = 3

        for _ in range(3):
            decoder.add_capture(frames[0].dot_values)
        assert decoder.add_capture(misread) == CaptureOutcome.TOTAL_MISMATCH
        assert decoder.add_capture(misread) == CaptureOutcome.TOTAL_MISMATCH
        assert not decoder.is_received(0)

        decoder.add_capture(frames[0].dot_values)
        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.FRAME_VOTED
        assert decoder.is_received(0)

    def test_contaminated_bucket_recovers(self, encoder):
        frames = encoder.encode(DATA_45)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=5)

        # Misfiled captures of frame 1 sitting under index 0
        for _ in range(3):
            decoder._votes.add(0, frames[1].dot_values)

        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.LOCKED
        assert decoder.add_capture(frames[0].dot_values) == CaptureOutcome.VOTES_CONTAMINATED
        assert not decoder.is_received(0)
        assert decoder._votes.count(0) == 0

        outcomes = [decoder.add_capture(frames[0].dot_values) for _ in range(5)]
        assert outcomes[-1] == CaptureOutcome.FRAME_VOTED
        assert decoder.is_received(0)

        for index in (1, 2):
            for _ in range(5):
                decoder.add_capture(frames[index].dot_values)
        assert decoder.final_bytes()[:45] == DATA_45

    def test_incomplete_raises(self, encoder):
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)
        decoder.add_capture(encoder.encode(DATA_45)[0].dot_values)
        with pytest.raises(IncompleteDataError):
            decoder.final_bytes()

    def test_complete_ignores_further_captures(self, hi_frame):
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)
        decoder.add_capture(hi_frame.dot_values)
        assert decoder.add_capture(hi_frame.dot_values) == CaptureOutcome.IGNORED
        assert decoder.add_capture([0] * 3) == CaptureOutcome.IGNORED

    def test_reset(self, hi_frame):
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)
        decoder.add_capture(hi_frame.dot_values)
        decoder.reset()

        assert decoder.phase == DecoderPhase.IDLE
        assert decoder.locked_total is None
        assert decoder.progress == 0.0
        with pytest.raises(IncompleteDataError):
            decoder.final_bytes()


class TestRoundTrip:
    """Encode, then decode every frame through the consensus decoder."""

    @pytest.mark.parametrize("length", [1, 19, 20, 21, 40, 999, 5099, 5100])
    def test_payload_survives(self, encoder, length):
        data = bytes((i * 37 + 11) % 256 for i in range(length))
        frames = encoder.encode(data)
        decoder = ConsensusDecoder(ProtocolConfig(), lock_min_captures=1, vote_cap=1)

        for frame in reversed(frames):
            decoder.add_capture(frame.dot_values)

        assert decoder.is_complete
        result = decoder.final_bytes()
        assert len(result) == 20 * len(frames)
        assert result[:length] == data
        if length % 20 == 0:
            assert result == data
