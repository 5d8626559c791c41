"""Click application entrypoint for TruncSeeker."""

from __future__ import annotations

import signal
import sys
from types import FrameType
from typing import Optional

import click

from truncseeker import __version__
from truncseeker.cli.exit_codes import EXIT_ERROR, EXIT_SIGINT, EXIT_SUCCESS

from .commands.config import init_config
from .commands.stages import analysis, qc, trim
from .commands.steps import show_steps


def _handle_signal(signum: int, frame: Optional[FrameType]) -> None:
    """Turn SIGINT/SIGTERM into KeyboardInterrupt so stages unwind cleanly."""
    sig_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    click.echo(f"\n{sig_name} received, stopping...", err=True)
    raise KeyboardInterrupt(f"{sig_name} received")


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__, "-V", "--version", prog_name="TruncSeeker")
def cli() -> None:
    """TruncSeeker: quality-driven truncation for 16S amplicon pipelines.

    Stages run in order: trim -> qc -> analysis. Every stage resumes from
    the artifacts already present in the output directory.
    """


cli.add_command(trim)
cli.add_command(qc)
cli.add_command(analysis)
cli.add_command(show_steps)
cli.add_command(init_config)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with signal handling."""
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        cli(argv)
        return EXIT_SUCCESS
    except KeyboardInterrupt:
        return EXIT_SIGINT
    except SystemExit as exc:
        # Preserve explicit exit codes from subcommands
        if exc.code is None:
            return EXIT_SUCCESS
        return exc.code if isinstance(exc.code, int) else EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
