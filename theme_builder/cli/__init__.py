"""Command line interface for the theme builder."""

from .main import main

__all__ = ["main"]
