"""Inkwell: file-backed blogging backend."""

__version__ = "1.0.0"
