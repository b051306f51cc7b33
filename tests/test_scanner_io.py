"""
Capture Loop Tests
==================

ScanRunner, frame sources and image decoding.
"""

import asyncio
import base64

import cv2
import numpy as np
import pytest

from dotbeam.models.protocol import ProtocolConfig
from dotbeam.render import save_frames
from dotbeam.scanner import (
    CameraSource,
    CameraUnavailableError,
    ImageSequenceSource,
    ScanRunner,
    ScanSession,
)
from dotbeam.stream import (
    ImageDecodeError,
    decode_image_b64,
    decode_image_rgba,
    load_image_rgba,
)


class ListSource:
    """In-memory FrameSource."""

    def __init__(self, images):
        self.images = images
        self.position = 0
        self.opened = False
        self.released = False

    def open(self):
        self.opened = True

    def read(self):
        if not self.images:
            return None
        image = self.images[self.position % len(self.images)]
        self.position += 1
        return image

    def release(self):
        self.released = True


class FakeCapture:
    """cv2.VideoCapture stand-in for a missing device."""

    def __init__(self, index):
        self.index = index

    def isOpened(self):
        return False

    def release(self):
        pass


class TestScanRunner:
    """Async capture loop."""

    def test_runs_to_completion(self, hi_frame, render):
        source = ListSource([render(hi_frame)])
        progress = []
        completed = []
        runner = ScanRunner(
            ScanSession(ProtocolConfig()),
            source,
            tick_interval_ms=1,
            on_progress=progress.append,
            on_complete=completed.append,
        )

        data = asyncio.run(runner.run())

        assert data[:2] == b"hi"
        assert completed == [data]
        assert progress[-1] == 1.0
        assert len(progress) == 10
        assert source.opened and source.released
        assert not runner.running

    def test_stop_before_completion(self):
        source = ListSource([])
        runner = ScanRunner(ScanSession(ProtocolConfig()), source, tick_interval_ms=5)

        async def scenario():
            task = asyncio.create_task(runner.run())
            await asyncio.sleep(0.05)
            await runner.stop()
            return await task

        assert asyncio.run(scenario()) is None
        assert source.released

    def test_camera_unavailable_propagates(self, monkeypatch):
        monkeypatch.setattr(cv2, "VideoCapture", FakeCapture)
        runner = ScanRunner(ScanSession(ProtocolConfig()), CameraSource(3))
        with pytest.raises(CameraUnavailableError):
            asyncio.run(runner.run())


class TestSources:
    """Camera and image sequence sources."""

    def test_camera_open_fails(self, monkeypatch):
        monkeypatch.setattr(cv2, "VideoCapture", FakeCapture)
        with pytest.raises(CameraUnavailableError):
            CameraSource(7).open()

    def test_camera_read_requires_open(self):
        with pytest.raises(CameraUnavailableError):
            CameraSource(0).read()

    def test_image_sequence_replays(self, tmp_path, encoder, render):
        frames = encoder.encode(bytes(range(45)))
        paths = save_frames(frames, encoder.layout, tmp_path, size=600)
        assert [p.name for p in paths] == ["frame_000.png", "frame_001.png", "frame_002.png"]

        source = ImageSequenceSource(paths, loop=True)
        source.open()
        reads = [source.read() for _ in range(4)]
        assert np.array_equal(reads[0], render(frames[0]))
        assert np.array_equal(reads[3], reads[0])
        source.release()

    def test_image_sequence_without_loop(self, tmp_path, hi_frame, encoder):
        paths = save_frames([hi_frame], encoder.layout, tmp_path, size=200)
        source = ImageSequenceSource(paths, loop=False)
        assert source.read() is not None
        assert source.read() is None

    def test_unreadable_image(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ImageDecodeError):
            ImageSequenceSource([path]).open()


class TestImageDecoder:
    """Encoded image to RGBA."""

    def _png(self, rgba):
        ok, buf = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR))
        assert ok
        return buf.tobytes()

    def test_decode_png(self, hi_frame, render):
        rgba = render(hi_frame, size=120)
        decoded = decode_image_rgba(self._png(rgba))
        assert decoded.shape == (120, 120, 4)
        assert np.array_equal(decoded, rgba)

    def test_decode_data_url(self, hi_frame, render):
        rgba = render(hi_frame, size=80)
        b64 = base64.b64encode(self._png(rgba)).decode("ascii")
        assert np.array_equal(decode_image_b64(b64), rgba)
        assert np.array_equal(decode_image_b64("data:image/png;base64," + b64), rgba)

    def test_bad_base64(self):
        with pytest.raises(ImageDecodeError):
            decode_image_b64("not base64 !!")

    def test_corrupt_bytes(self):
        with pytest.raises(ImageDecodeError):
            decode_image_rgba(b"")
        with pytest.raises(ImageDecodeError):
            decode_image_rgba(b"\x89PNG garbage")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageDecodeError):
            load_image_rgba(tmp_path / "missing.png")
