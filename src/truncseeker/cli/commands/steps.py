"""`show-steps` subcommand implementation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from truncseeker.cli.common_options import config_option, input_option, output_option
from truncseeker.cli.pipeline import STAGES, StageOptions, build_config, handle_errors


@click.command(name="show-steps")
@click.argument("stage", type=click.Choice(STAGES))
@config_option
@input_option
@output_option
@handle_errors
def show_steps(stage: str, config: Optional[Path], input_root: Optional[Path], output: Optional[Path]) -> None:
    """List the steps of STAGE and whether their artifacts already exist."""
    from truncseeker.core.pipeline import PipelineExecutor
    from truncseeker.core.steps import checkpoint_store

    cfg = build_config(StageOptions(config_path=config, input_root=input_root, output=output))
    if stage == "trim":
        from truncseeker.core.steps.trim import build_trim_steps

        steps, stage_dir = build_trim_steps(cfg), cfg.trimmed_dir
    elif stage == "qc":
        from truncseeker.core.steps.qc import build_fastqc_steps

        steps, stage_dir = build_fastqc_steps(cfg), cfg.reports_dir
    else:
        from truncseeker.core.steps.analysis import build_analysis_steps

        steps, stage_dir = build_analysis_steps(cfg), cfg.analysis_dir

    executor = PipelineExecutor(cfg, steps, checkpoint_store(cfg, stage_dir), stage=stage)
    click.echo(f"\nTruncSeeker {stage} steps:")
    click.echo("-" * 60)
    for line in executor.show_steps():
        click.echo(f"  {line}")
    click.echo("-" * 60)
    click.echo(f"Total: {len(steps)} steps")
    if stage == "qc":
        click.echo("The truncation estimate is recomputed after these steps on every run.")
