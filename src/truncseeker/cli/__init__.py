"""Command-line interface for TruncSeeker."""

from truncseeker.cli.main import cli, main

__all__ = ["cli", "main"]
