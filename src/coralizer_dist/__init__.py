"""Launcher and release publisher for the prebuilt coralizer binaries."""

__version__ = "0.1.0"
