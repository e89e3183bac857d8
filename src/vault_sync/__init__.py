"""Synchronise a local document vault with a GitHub repository."""

__version__ = "0.3.0"
