"""Command line interface for projectrag."""

from .main import cli

__all__ = ["cli"]
