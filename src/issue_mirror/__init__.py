"""Incremental local mirror of a GitHub repository's issues and comments."""

__version__ = "0.3.0"
