"""
Observability Module
====================

Debug visualization of scan ticks.

Overlays are purely descriptive and never influence decoding.
"""

from dotbeam.observability.overlay import draw_debug_overlay

__all__ = [
    "draw_debug_overlay",
]
