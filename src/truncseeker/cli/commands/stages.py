"""`trim`, `qc` and `analysis` subcommands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from truncseeker.cli.common_options import stage_options
from truncseeker.cli.pipeline import (
    StageOptions,
    build_config,
    configure_logging,
    echo_estimation,
    echo_report,
    handle_errors,
)
from truncseeker.config import CUTOFF_POLICIES


@click.command(name="trim")
@stage_options
@click.option("--forward-primer", default=None, help="Forward primer (5'->3', IUPAC allowed)")
@click.option("--reverse-primer", default=None, help="Reverse primer (5'->3', IUPAC allowed)")
@handle_errors
def trim(
    config: Optional[Path],
    input_root: Optional[Path],
    output: Optional[Path],
    threads: Optional[int],
    verbose: int,
    log_file: Optional[Path],
    forward_primer: Optional[str],
    reverse_primer: Optional[str],
) -> None:
    """Remove primers from raw paired reads (cutadapt)."""
    from truncseeker.core.steps.trim import run_trim_stage

    opts = StageOptions(config, input_root, output, threads, verbose, log_file)
    cfg = build_config(opts)
    configure_logging(opts, cfg)
    if forward_primer:
        cfg.tools.cutadapt["forward_primer"] = forward_primer
    if reverse_primer:
        cfg.tools.cutadapt["reverse_primer"] = reverse_primer

    report = run_trim_stage(cfg)
    echo_report("trim", report)
    report.raise_for_status()


@click.command(name="qc")
@stage_options
@click.option("--min-quality", type=click.FloatRange(min=0), default=None, help="Mean quality threshold [default: 20]")
@click.option("--skew-threshold", type=click.IntRange(min=0), default=None, help="Median/mean gap (bp) that selects the median [default: 10]")
@click.option("--cutoff-policy", type=click.Choice(CUTOFF_POLICIES), default=None, help="Report the last good position or the first bad one")
@handle_errors
def qc(
    config: Optional[Path],
    input_root: Optional[Path],
    output: Optional[Path],
    threads: Optional[int],
    verbose: int,
    log_file: Optional[Path],
    min_quality: Optional[float],
    skew_threshold: Optional[int],
    cutoff_policy: Optional[str],
) -> None:
    """Run FastQC on trimmed reads and estimate DADA2 truncation lengths."""
    from truncseeker.core.steps.qc import run_quality_stage

    opts = StageOptions(
        config,
        input_root,
        output,
        threads,
        verbose,
        log_file,
        overrides={
            "threshold": min_quality,
            "skew_threshold": skew_threshold,
            "cutoff_policy": cutoff_policy,
        },
    )
    cfg = build_config(opts)
    configure_logging(opts, cfg)

    report, estimation = run_quality_stage(cfg)
    echo_report("qc", report)
    echo_estimation(estimation, cfg.threshold)


@click.command(name="analysis")
@stage_options
@click.option("--classifier", type=click.Path(path_type=Path), default=None, help="Pre-trained QIIME 2 classifier (.qza)")
@click.option("--metadata", type=click.Path(path_type=Path), default=None, help="Sample metadata TSV")
@click.option("--manifest", type=click.Path(path_type=Path), default=None, help="Use this manifest instead of generating one")
@click.option("--sampling-depth", type=click.IntRange(min=0), default=None, help="Rarefaction depth for core diversity metrics")
@click.option("--strict/--no-strict", default=None, help="Also verify artifact fingerprints when resuming")
@handle_errors
def analysis(
    config: Optional[Path],
    input_root: Optional[Path],
    output: Optional[Path],
    threads: Optional[int],
    verbose: int,
    log_file: Optional[Path],
    classifier: Optional[Path],
    metadata: Optional[Path],
    manifest: Optional[Path],
    sampling_depth: Optional[int],
    strict: Optional[bool],
) -> None:
    """Run the checkpointed QIIME 2 analysis (DADA2, phylogeny, taxonomy)."""
    from truncseeker.core.steps.analysis import run_analysis_stage

    opts = StageOptions(
        config,
        input_root,
        output,
        threads,
        verbose,
        log_file,
        overrides={
            "classifier": classifier,
            "metadata": metadata,
            "manifest": manifest,
            "sampling_depth": sampling_depth,
        },
        strict=strict,
    )
    cfg = build_config(opts)
    configure_logging(opts, cfg)

    report = run_analysis_stage(cfg)
    echo_report("analysis", report)
    report.raise_for_status()
    click.echo(f"Results saved in {cfg.analysis_dir}")
