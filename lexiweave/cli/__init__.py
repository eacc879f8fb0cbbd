"""Command line interface for lexiweave."""

from .main import main, run_cli

__all__ = ["main", "run_cli"]
