"""Guided six-sided object capture with placeholder 3D model synthesis."""

__version__ = "1.0.0"
