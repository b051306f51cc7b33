"""
Scanner Module
==============

Receive-side entry points.

This module provides:
    - ScanSession: Stateful tick-driven decoder
    - decode_tick / final_bytes / reset_decoder: Function API over a session
    - ScanRunner: Async capture loop
    - CameraSource / ImageSequenceSource: Capture providers

Example:
    from dotbeam.scanner import CameraSource, ScanRunner, ScanSession

    session = ScanSession.from_settings()
    runner = ScanRunner(session, CameraSource(0))
    data = await runner.run()
"""

from dotbeam.scanner.camera import (
    CameraSource,
    CameraUnavailableError,
    FrameSource,
    ImageSequenceSource,
)
from dotbeam.scanner.runner import ScanRunner
from dotbeam.scanner.session import (
    ScanSession,
    decode_tick,
    final_bytes,
    reset_decoder,
)


__all__ = [
    "ScanSession",
    "decode_tick",
    "final_bytes",
    "reset_decoder",
    "ScanRunner",
    "FrameSource",
    "CameraSource",
    "ImageSequenceSource",
    "CameraUnavailableError",
]
