"""Cirrus: set up and supervise rclone-backed cloud sync from the terminal."""

__version__ = "0.4.0"
