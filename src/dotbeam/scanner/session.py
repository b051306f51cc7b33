"""
Scan Session
============

One tick = one capture pushed through the whole pipeline.

Pipeline:
    pixels
      -> AnchorDetector.find_blobs        (white blobs)
      -> TransformEstimator.derive        (anchor triangle -> transform)
      -> TransformStabilizer.update       (fresh vs cached transform)
      -> ColorSampler.sample              (dot values)
      -> ConsensusDecoder.add_capture     (lock, vote, assemble)

Design Rules:
    - A session owns every piece of mutable state; there are no globals
    - Single-threaded: one loop owns a session, no locks
    - Pipeline-internal conditions (no anchors, drift, malformed header,
      contamination) are reported as outcomes, never raised
    - Every tick returns a DebugSnapshot; nothing in it feeds back

Example:
    session = ScanSession.from_settings()
    while not session.is_complete:
        result = session.tick(camera.read())
    data = session.final_bytes()[:length]
"""

import logging
from typing import Optional

from dotbeam.consensus.decoder import ConsensusDecoder
from dotbeam.geometry.layout import compute_layout
from dotbeam.models.detection import DebugSnapshot, FrameHeaderInfo, TickResult
from dotbeam.models.protocol import ProtocolConfig
from dotbeam.models.status import DetectionStatus
from dotbeam.perception.anchors import AnchorDetector
from dotbeam.perception.pixels import PixelInput, as_pixel_array
from dotbeam.perception.sampler import ColorSampler
from dotbeam.perception.transform import TransformEstimator, TransformStabilizer


logger = logging.getLogger(__name__)


# Blobs kept in the debug snapshot
DEBUG_BLOB_LIMIT = 8


class ScanSession:
    """
    Stateful receive-side decoder.

    Attributes:
        config: Protocol configuration
        detector: Anchor blob detector
        estimator: Transform estimator
        stabilizer: Owner of the cached transform
        sampler: Dot color sampler
        decoder: Consensus decoder
        log_every_n_ticks: Interval of the periodic summary log
    """

    def __init__(
        self,
        config: ProtocolConfig,
        detector: Optional[AnchorDetector] = None,
        estimator: Optional[TransformEstimator] = None,
        stabilizer: Optional[TransformStabilizer] = None,
        sampler: Optional[ColorSampler] = None,
        decoder: Optional[ConsensusDecoder] = None,
        log_every_n_ticks: int = 50,
    ) -> None:
        self.config = config
        self.layout = compute_layout(config)
        self.detector = detector or AnchorDetector()
        self.estimator = estimator or TransformEstimator()
        self.stabilizer = stabilizer or TransformStabilizer()
        self.sampler = sampler or ColorSampler(self.layout)
        self.decoder = decoder or ConsensusDecoder(config)
        self.log_every_n_ticks = log_every_n_ticks

        self._tick_count = 0
        self._detected_count = 0

        logger.info(
            f"ScanSession initialized: rings={config.rings}, "
            f"bits_per_dot={config.bits_per_dot}, dots={config.total_dots}, "
            f"bytes_per_frame={config.bytes_per_frame}"
        )

    @classmethod
    def from_settings(cls, settings=None) -> "ScanSession":
        """
        Build a session wired from configuration.

        Args:
            settings: dotbeam.config.Settings (the global settings if None)
        """
        if settings is None:
            from dotbeam.config import settings

        config = settings.protocol
        detection = settings.detection
        transform = settings.transform
        sampling = settings.sampling
        consensus = settings.consensus
        layout = compute_layout(config)

        return cls(
            config=config,
            detector=AnchorDetector(
                cell_size=detection.cell_size,
                brightness_threshold=detection.brightness_threshold,
                sample_step=detection.sample_step,
                min_blob_cells=detection.min_blob_cells,
                max_blob_cells=detection.max_blob_cells,
                max_saturation=detection.max_saturation,
            ),
            estimator=TransformEstimator(
                candidate_limit=transform.candidate_limit,
                side_tolerance=transform.side_tolerance,
                max_size_ratio=transform.max_size_ratio,
                min_side=transform.min_side,
                validate_center=transform.validate_center,
                center_brightness_max=transform.center_brightness_max,
            ),
            stabilizer=TransformStabilizer(
                center_drift=transform.center_drift,
                scale_drift=transform.scale_drift,
                rotation_drift_deg=transform.rotation_drift_deg,
            ),
            sampler=ColorSampler(
                layout,
                radius_factor=sampling.radius_factor,
                min_radius=sampling.min_radius,
                wb_min_brightness=sampling.wb_min_brightness,
                wb_max_gain=sampling.wb_max_gain,
            ),
            decoder=ConsensusDecoder(
                config,
                lock_min_captures=consensus.lock_min_captures,
                lock_min_share=consensus.lock_min_share,
                vote_cap=consensus.vote_cap,
            ),
            log_every_n_ticks=settings.scanner.log_every_n_ticks,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def progress(self) -> float:
        return self.decoder.progress

    @property
    def is_complete(self) -> bool:
        return self.decoder.is_complete

    @property
    def tick_count(self) -> int:
        return self._tick_count

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def tick(
        self,
        pixels: PixelInput,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> TickResult:
        """
        Process one capture.

        Args:
            pixels: Flat RGBA buffer (with width/height) or (H, W, 3|4) array
            width: Image width for flat buffers
            height: Image height for flat buffers

        Returns:
            TickResult with progress, completion and a debug snapshot

        Raises:
            ValueError: If the pixel buffer does not match its dimensions
        """
        image = as_pixel_array(pixels, width, height)
        self._tick_count += 1
        debug = DebugSnapshot()

        if self.decoder.is_complete:
            debug.status = DetectionStatus.SKIPPED
            debug.received = self.decoder.received_count
            return self._result(debug, detected=False, outcome=None)

        blobs = self.detector.find_blobs(image)
        debug.blob_count = len(blobs)
        debug.blobs = blobs[:DEBUG_BLOB_LIMIT]

        fresh = None
        if len(blobs) >= 3:
            fresh = self.estimator.derive(blobs, image)
        if fresh is not None:
            debug.status = DetectionStatus.DETECTED
        elif blobs:
            debug.status = DetectionStatus.NO_TRIANGLE

        transform, source = self.stabilizer.update(fresh)
        debug.transform = transform
        debug.transform_source = source

        if transform is None:
            debug.received = self.decoder.received_count
            return self._result(debug, detected=False, outcome=None)

        self._detected_count += 1
        sampled = self.sampler.sample(image, transform)
        debug.samples = sampled.samples
        debug.white_balance = sampled.white_balance

        outcome = self.decoder.add_capture(sampled.dot_values)

        header = self.decoder.last_header
        if header is not None:
            debug.header = FrameHeaderInfo(frame_index=header.index, frame_total=header.total)
        debug.received = self.decoder.received_count

        logger.debug(
            f"Tick {self._tick_count}: blobs={len(blobs)}, source={source.value}, "
            f"outcome={outcome.value}"
        )
        return self._result(debug, detected=True, outcome=outcome)

    def _result(self, debug: DebugSnapshot, detected: bool, outcome) -> TickResult:
        if self._tick_count % self.log_every_n_ticks == 0:
            metrics = self.decoder.get_metrics()
            logger.info(
                f"Scan: tick={self._tick_count}, detected={self._detected_count}, "
                f"phase={metrics['phase']}, received={metrics['received']}/"
                f"{metrics['locked_total'] or '?'}, progress={metrics['progress']:.0%}"
            )

        return TickResult(
            progress=self.decoder.progress,
            complete=self.decoder.is_complete,
            detected=detected,
            outcome=outcome,
            debug=debug,
        )

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def final_bytes(self) -> bytes:
        """
        Reconstructed payload, trailing padding included.

        Raises:
            IncompleteDataError: If decoding is not complete
        """
        return self.decoder.final_bytes()

    def reset(self) -> None:
        """Start over: clears the decoder and the cached transform."""
        self.decoder.reset()
        self.stabilizer.reset()
        self._tick_count = 0
        self._detected_count = 0
        logger.info("ScanSession reset")

    def get_metrics(self) -> dict:
        """Get session metrics."""
        return {
            "ticks": self._tick_count,
            "detected": self._detected_count,
            "decoder": self.decoder.get_metrics(),
            "stabilizer": self.stabilizer.get_metrics(),
        }


# =============================================================================
# Module API
# =============================================================================

def decode_tick(
    pixels: PixelInput,
    width: Optional[int],
    height: Optional[int],
    session: ScanSession,
) -> TickResult:
    """Push one capture through a session."""
    return session.tick(pixels, width, height)


def final_bytes(session: ScanSession) -> bytes:
    """Reconstructed payload of a completed session."""
    return session.final_bytes()


def reset_decoder(session: ScanSession) -> None:
    """Reset a session's decoder and transform cache."""
    session.reset()
