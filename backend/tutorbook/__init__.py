"""Tutor booking engine: availability-to-slot resolution and booking conflicts."""

__version__ = "0.1.0"
