"""
dotbeam Command Line
====================

Entry point for the `dotbeam` console script.

Commands:
    render  - Encode a message and write the frame sequence as PNGs
    decode  - Decode a payload from captured image files
    scan    - Decode a payload live from a camera

The payload length is not part of the wire format. Pass --length to trim
the trailing padding of the last frame; without it the full padded
payload is written.

Example:
    dotbeam render --msg "hello" --out frames/
    dotbeam decode frames/*.png --length 5
    dotbeam scan --device 0 --length 5 --output message.bin
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import cv2

from dotbeam.codec import Encoder, FrameCodecError
from dotbeam.config import settings
from dotbeam.observability import draw_debug_overlay
from dotbeam.render import save_frames
from dotbeam.scanner import (
    CameraSource,
    CameraUnavailableError,
    ImageSequenceSource,
    ScanRunner,
    ScanSession,
)
from dotbeam.stream import ImageDecodeError


logger = logging.getLogger(__name__)


# =============================================================================
# Commands
# =============================================================================

def cmd_render(args: argparse.Namespace) -> int:
    """Encode --msg and save one PNG per frame."""
    encoder = Encoder(settings.protocol)
    data = args.msg.encode("utf-8")

    try:
        frames = encoder.encode(data)
    except FrameCodecError as e:
        logger.error(f"Cannot encode message: {e}")
        return 1

    paths = save_frames(frames, encoder.layout, args.out, size=args.size)
    print(f"{len(data)} bytes -> {len(paths)} frames in {args.out}")
    return 0


def cmd_decode(args: argparse.Namespace) -> int:
    """Replay image files through a scan session until complete."""
    session = ScanSession.from_settings(settings)
    source = ImageSequenceSource(args.images, loop=False)

    try:
        source.open()
    except ImageDecodeError as e:
        logger.error(str(e))
        return 1

    debug_dir = Path(args.debug_dir) if args.debug_dir else None
    if debug_dir:
        debug_dir.mkdir(parents=True, exist_ok=True)

    try:
        for pass_number in range(args.max_passes):
            while not session.is_complete:
                pixels = source.read()
                if pixels is None:
                    break
                result = session.tick(pixels)

                if debug_dir and pass_number == 0:
                    _write_overlay(debug_dir, session.tick_count, pixels, result.debug)

            if session.is_complete:
                break
            source.open()
    finally:
        source.release()

    if not session.is_complete:
        logger.error(
            f"Decode incomplete after {args.max_passes} passes "
            f"({session.progress:.0%}): {session.get_metrics()['decoder']}"
        )
        return 1

    return _emit(session.final_bytes(), args.length, args.output)


def cmd_scan(args: argparse.Namespace) -> int:
    """Decode live from a camera."""
    device = args.device if args.device is not None else settings.scanner.camera_index
    session = ScanSession.from_settings(settings)
    camera = CameraSource(
        device,
        width=settings.scanner.frame_width,
        height=settings.scanner.frame_height,
    )

    def on_progress(progress: float) -> None:
        print(f"\rprogress {progress:6.1%}", end="", file=sys.stderr, flush=True)

    runner = ScanRunner(
        session,
        camera,
        tick_interval_ms=settings.scanner.tick_interval_ms,
        on_progress=on_progress,
    )

    try:
        data = asyncio.run(runner.run())
    except CameraUnavailableError as e:
        logger.error(str(e))
        return 2
    except KeyboardInterrupt:
        logger.info("Scan interrupted")
        return 130
    finally:
        print(file=sys.stderr)

    if data is None:
        return 1
    return _emit(data, args.length, args.output)


def _emit(data: bytes, length: Optional[int], output: Optional[str]) -> int:
    if length is not None:
        if length > len(data):
            logger.warning(f"--length {length} exceeds decoded size {len(data)}")
        data = data[:length]

    if output:
        Path(output).write_bytes(data)
        print(f"Wrote {len(data)} bytes to {output}")
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return 0


def _write_overlay(debug_dir: Path, tick: int, pixels, snapshot) -> None:
    overlay = draw_debug_overlay(pixels, snapshot)
    code = cv2.COLOR_RGBA2BGR if overlay.shape[2] == 4 else cv2.COLOR_RGB2BGR
    cv2.imwrite(str(debug_dir / f"tick_{tick:04d}.png"), cv2.cvtColor(overlay, code))


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotbeam",
        description="Animated dot-constellation data transfer",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Encode a message into frame images")
    render.add_argument("--msg", required=True, help="Message text (UTF-8)")
    render.add_argument("--out", required=True, help="Output directory")
    render.add_argument("--size", type=int, default=600, help="Image edge in pixels")
    render.set_defaults(func=cmd_render)

    decode = sub.add_parser("decode", help="Decode captured image files")
    decode.add_argument("images", nargs="+", help="Captured images, any order")
    decode.add_argument("--length", type=int, default=None, help="Payload length in bytes")
    decode.add_argument("--output", default=None, help="Write bytes here instead of stdout")
    decode.add_argument("--debug-dir", default=None, help="Write debug overlays here")
    decode.add_argument(
        "--max-passes",
        type=int,
        default=20,
        help="Times the image list is replayed before giving up",
    )
    decode.set_defaults(func=cmd_decode)

    scan = sub.add_parser("scan", help="Decode live from a camera")
    scan.add_argument("--device", type=int, default=None, help="Camera device index")
    scan.add_argument("--length", type=int, default=None, help="Payload length in bytes")
    scan.add_argument("--output", default=None, help="Write bytes here instead of stdout")
    scan.set_defaults(func=cmd_scan)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
