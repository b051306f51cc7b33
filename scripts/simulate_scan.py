#!/usr/bin/env python3
"""
Scan Simulation Script
======================

Standalone script to exercise the full receive pipeline without a camera.

This script:
    1. Encodes a message and renders its frames
    2. Plays the animation at the protocol frame rate
    3. Perturbs every capture (rotation, exposure, sensor noise, drops)
    4. Ticks a ScanSession until completion
    5. Reports ticks to completion and verifies the payload

Usage:
    python scripts/simulate_scan.py --msg "hello world"
    python scripts/simulate_scan.py --rotation 20 --noise 12 --exposure 0.8
"""

import argparse
import logging
import os
import sys
import time

import cv2
import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from dotbeam.codec import Encoder
from dotbeam.config import load_config
from dotbeam.models.palette import BACKGROUND_COLOR
from dotbeam.render import render_frame
from dotbeam.scanner import ScanSession


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def perturb(
    rgba: np.ndarray,
    rng: np.random.Generator,
    rotation: float,
    exposure: float,
    noise: float,
) -> np.ndarray:
    """Apply camera-like distortions to a rendered frame."""
    height, width = rgba.shape[:2]
    image = rgba

    if rotation:
        matrix = cv2.getRotationMatrix2D((width / 2, height / 2), rotation, 1.0)
        image = cv2.warpAffine(
            image,
            matrix,
            (width, height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(*BACKGROUND_COLOR.as_tuple(), 255),
        )

    pixels = image[:, :, :3].astype(np.float32) * exposure
    if noise:
        pixels += rng.normal(0.0, noise, pixels.shape).astype(np.float32)

    out = image.copy()
    out[:, :, :3] = np.clip(pixels, 0, 255).astype(np.uint8)
    return out


def run_simulation(
    message: bytes,
    size: int,
    rotation: float,
    exposure: float,
    noise: float,
    drop_rate: float,
    max_ticks: int,
    seed: int,
) -> dict:
    """
    Run the simulation.

    Returns:
        Summary dict (ticks, complete, match)
    """
    settings = load_config()
    config = settings.protocol
    encoder = Encoder(config)
    frames = encoder.encode(message)
    images = [render_frame(f, encoder.layout, size, size) for f in frames]

    tick_ms = settings.scanner.tick_interval_ms
    ticks_per_frame = max(1, round(1000 / config.fps / tick_ms))

    logger.info("=" * 60)
    logger.info("Scan Simulation")
    logger.info("=" * 60)
    logger.info(f"Message: {len(message)} bytes, {len(frames)} frames")
    logger.info(f"Canvas: {size}x{size}, {ticks_per_frame} ticks per frame")
    logger.info(
        f"Perturbation: rotation={rotation}deg, exposure={exposure}, "
        f"noise={noise}, drop_rate={drop_rate}"
    )
    logger.info("=" * 60)

    rng = np.random.default_rng(seed)
    session = ScanSession.from_settings(settings)
    start_time = time.time()

    tick = 0
    while tick < max_ticks and not session.is_complete:
        shown = images[(tick // ticks_per_frame) % len(images)]
        tick += 1

        if rng.random() < drop_rate:
            continue

        capture = perturb(shown, rng, rotation, exposure, noise)
        result = session.tick(capture)

        if tick % 25 == 0:
            logger.info(f"Tick {tick}: {result}")

    elapsed = time.time() - start_time
    summary = {
        "ticks": tick,
        "complete": session.is_complete,
        "match": False,
        "elapsed_sec": round(elapsed, 2),
        "simulated_sec": round(tick * tick_ms / 1000, 1),
        "metrics": session.get_metrics(),
    }

    if session.is_complete:
        decoded = session.final_bytes()[:len(message)]
        summary["match"] = decoded == message

    logger.info("=" * 60)
    logger.info("Final Summary")
    logger.info("=" * 60)
    for key, value in summary.items():
        logger.info(f"{key}: {value}")

    return summary


def main():
    parser = argparse.ArgumentParser(description="Simulate a camera scan")
    parser.add_argument("--msg", default="Hello from dotbeam!", help="Message to send")
    parser.add_argument("--size", type=int, default=600, help="Canvas edge in pixels")
    parser.add_argument("--rotation", type=float, default=10.0, help="Rotation (degrees)")
    parser.add_argument("--exposure", type=float, default=0.9, help="Brightness multiplier")
    parser.add_argument("--noise", type=float, default=6.0, help="Gaussian noise sigma")
    parser.add_argument("--drop-rate", type=float, default=0.1, help="Fraction of dropped ticks")
    parser.add_argument("--max-ticks", type=int, default=2000, help="Give up after this many")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    args = parser.parse_args()

    summary = run_simulation(
        message=args.msg.encode("utf-8"),
        size=args.size,
        rotation=args.rotation,
        exposure=args.exposure,
        noise=args.noise,
        drop_rate=args.drop_rate,
        max_ticks=args.max_ticks,
        seed=args.seed,
    )

    sys.exit(0 if summary["match"] else 1)


if __name__ == "__main__":
    main()
