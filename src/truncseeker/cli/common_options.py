"""Shared Click options for the stage subcommands."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import click

F = TypeVar("F", bound=Callable[..., None])


def config_option(func: F) -> F:
    """Configuration file option."""
    return click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (YAML)",
    )(func)


def input_option(func: F) -> F:
    """Raw reads directory option."""
    return click.option(
        "-i",
        "--input",
        "input_root",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=None,
        help="Directory with raw paired FASTQ files (R1/ + R2/ or flat)",
    )(func)


def output_option(func: F) -> F:
    """Output directory option."""
    return click.option(
        "-o",
        "--output",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Output directory [default: truncseeker_output]",
    )(func)


def threads_option(func: F) -> F:
    return click.option(
        "-t",
        "--threads",
        type=click.IntRange(min=1),
        default=None,
        help="Threads passed to external tools [default: 4]",
    )(func)


def verbose_option(func: F) -> F:
    """Verbosity option (-v INFO, -vv DEBUG)."""
    return click.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )(func)


def log_file_option(func: F) -> F:
    return click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write a DEBUG log to this file",
    )(func)


def stage_options(func: F) -> F:
    """Options shared by every stage command."""
    for decorator in (log_file_option, verbose_option, threads_option, output_option, input_option, config_option):
        func = decorator(func)
    return func
