"""Personal task tracker with a terminal dashboard."""

__version__ = "0.1.0"
