"""
Scan Runner
===========

Async capture loop: one tick per interval until the payload is complete.

This module provides the ScanRunner class which:
    - Opens a FrameSource and reads one capture per tick
    - Pushes each capture through a ScanSession
    - Reports progress every tick and the payload once on completion
    - Releases the source when it stops

Design Rules:
    - No timeouts: the runner never gives up on its own
    - stop() cancels the next tick; a tick in flight runs to completion
    - Source failures other than CameraUnavailableError are per-tick
      misses, not errors
"""

import asyncio
import logging
from typing import Callable, Optional

from dotbeam.scanner.camera import FrameSource
from dotbeam.scanner.session import ScanSession


logger = logging.getLogger(__name__)


class ScanRunner:
    """
    Drives a ScanSession from a FrameSource.

    Attributes:
        session: Session receiving the captures
        source: Capture provider
        tick_interval_ms: Delay between ticks
        on_progress: Called with progress (0-1) after every tick
        on_complete: Called once with the reconstructed bytes

    Example:
        runner = ScanRunner(session, CameraSource(0), on_complete=save)
        task = asyncio.create_task(runner.run())

        # Later, abort
        await runner.stop()
        await task
    """

    def __init__(
        self,
        session: ScanSession,
        source: FrameSource,
        tick_interval_ms: int = 100,
        on_progress: Optional[Callable[[float], None]] = None,
        on_complete: Optional[Callable[[bytes], None]] = None,
    ) -> None:
        self.session = session
        self.source = source
        self.tick_interval_ms = tick_interval_ms
        self.on_progress = on_progress
        self.on_complete = on_complete

        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        self._empty_reads = 0

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> Optional[bytes]:
        """
        Tick until complete or stopped.

        Returns:
            The reconstructed bytes, or None if stopped before completion

        Raises:
            CameraUnavailableError: If the source cannot be opened
        """
        self._running = True
        self._stop_event.clear()
        interval_sec = self.tick_interval_ms / 1000.0

        self.source.open()
        logger.info(f"ScanRunner starting, tick interval {self.tick_interval_ms}ms")

        data: Optional[bytes] = None
        try:
            while self._running:
                pixels = self.source.read()
                if pixels is None:
                    self._empty_reads += 1
                else:
                    result = self.session.tick(pixels)
                    if self.on_progress:
                        self.on_progress(result.progress)

                    if result.complete:
                        data = self.session.final_bytes()
                        logger.info(
                            f"Scan complete after {self.session.tick_count} ticks: "
                            f"{len(data)} bytes"
                        )
                        if self.on_complete:
                            self.on_complete(data)
                        break

                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=interval_sec,
                    )
                    # Stop event was set, exit
                    break
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self.source.release()
            logger.info(f"ScanRunner stopped (empty reads: {self._empty_reads})")

        return data

    async def stop(self) -> None:
        """Stop after the tick in flight, if any."""
        logger.info("ScanRunner stopping...")
        self._running = False
        self._stop_event.set()
