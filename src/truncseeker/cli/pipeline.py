"""Shared stage execution helpers for the CLI."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

import click

from truncseeker.cli.exit_codes import EXIT_ERROR, EXIT_SIGINT
from truncseeker.config import Config, load_config
from truncseeker.core.pipeline_types import PipelineReport, StepResult
from truncseeker.exceptions import TruncSeekerError
from truncseeker.modules.estimator import EstimationResult
from truncseeker.utils.logging import level_from_name, setup_logging

STAGES = ("trim", "qc", "analysis")

_RESULT_LABELS = {
    StepResult.SKIPPED: "skipped",
    StepResult.SUCCEEDED: "ok",
    StepResult.FAILED_SOFT: "FAILED (optional)",
    StepResult.FAILED_HARD: "FAILED",
}


@dataclass
class StageOptions:
    """Options common to all stage commands, as given on the command line."""

    config_path: Optional[Path] = None
    input_root: Optional[Path] = None
    output: Optional[Path] = None
    threads: Optional[int] = None
    verbose: int = 0
    log_file: Optional[Path] = None
    # Stage-specific Config field overrides; None values are ignored
    overrides: Dict[str, Any] = field(default_factory=dict)
    strict: Optional[bool] = None


def build_config(opts: StageOptions) -> Config:
    """Resolve configuration: defaults < config file < command-line flags."""
    cfg = load_config(opts.config_path) if opts.config_path else Config()

    if opts.input_root is not None:
        cfg.input_root = opts.input_root
    if opts.output is not None:
        cfg.output_root = opts.output
    if opts.threads is not None:
        cfg.threads = opts.threads
    if opts.log_file is not None:
        cfg.runtime.log_file = opts.log_file
    if opts.strict is not None:
        cfg.runtime.strict_checkpoints = opts.strict
    for key, value in opts.overrides.items():
        if value is not None:
            setattr(cfg, key, value)

    cfg.validate()
    return cfg


def configure_logging(opts: StageOptions, cfg: Config) -> None:
    """-v/-vv win over the configured level."""
    if opts.verbose >= 2:
        level = logging.DEBUG
    elif opts.verbose == 1:
        level = logging.INFO
    else:
        level = level_from_name(cfg.runtime.log_level)
    setup_logging(level=level, log_file=cfg.runtime.log_file)


def echo_report(stage: str, report: PipelineReport) -> None:
    click.echo(f"\n{stage} stage:")
    for name, result in report.results.items():
        click.echo(f"  {name:<28} {_RESULT_LABELS[result]}")
    counts = report.counts()
    click.echo(
        f"  -> {report.status.value}: "
        + ", ".join(f"{n} {r.value}" for r, n in counts.items())
    )


def echo_estimation(result: EstimationResult, threshold: float) -> None:
    from truncseeker.modules.trunc_stats import format_summary

    click.echo(f"\nQuality truncation summary (Q{threshold:g}):")
    for stats in result.stats.values():
        for line in format_summary(stats):
            click.echo(f"  {line}")

    params = result.parameters
    click.echo("\nRecommended QIIME 2 DADA2 parameters:")
    click.echo(f"  --p-trunc-len-f {params.forward_trunc_len} \\")
    click.echo(f"  --p-trunc-len-r {params.reverse_trunc_len}")
    click.echo(f"\nSaved to {result.outputs['params']}")
    click.echo(
        f"Review {result.outputs['histogram']} before the analysis stage: "
        "bimodal length distributions need a manual decision."
    )


def handle_errors(func):
    """Map TruncSeeker errors and interrupts to exit codes."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("Interrupted; rerun the same command to resume from checkpoints", err=True)
            sys.exit(EXIT_SIGINT)
        except TruncSeekerError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(EXIT_ERROR)

    return wrapper
