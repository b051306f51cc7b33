"""
Render Module
=============

Display-side rendering of encoded frames (PNG export, synthetic captures).
"""

from dotbeam.render.frame_renderer import render_frame, save_frames

__all__ = [
    "render_frame",
    "save_frames",
]
