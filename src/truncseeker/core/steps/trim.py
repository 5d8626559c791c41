"""Trim stage: primer removal, one step per sample."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from truncseeker.config import Config
from truncseeker.core.pipeline import PipelineExecutor
from truncseeker.core.pipeline_types import PipelineReport, StepDescriptor
from truncseeker.core.steps import ToolProvider, checkpoint_store
from truncseeker.exceptions import ConfigurationError, PipelineError
from truncseeker.modules.samples import DirectionMatcher, Sample, discover_samples
from truncseeker.utils.atomic import atomic_outputs

TRIMMED_SUFFIX = "_trimmed.fastq.gz"


def trimmed_paths(sample: Sample, trimmed_dir: Path) -> tuple[Path, Path]:
    """``<sample>_R1_trimmed.fastq.gz`` / ``<sample>_R2_trimmed.fastq.gz``."""
    return (
        trimmed_dir / f"{sample.sample_id}_R1{TRIMMED_SUFFIX}",
        trimmed_dir / f"{sample.sample_id}_R2{TRIMMED_SUFFIX}",
    )


def _trim_action(config: Config, tools: ToolProvider, sample: Sample, outputs: tuple[Path, Path]):
    params = config.tools.cutadapt

    def action() -> None:
        with atomic_outputs(outputs) as (forward_out, reverse_out):
            tools.cutadapt.trim_pair(
                sample.forward,
                sample.reverse,
                forward_out,
                reverse_out,
                forward_primer=params["forward_primer"],
                reverse_primer=params["reverse_primer"],
                minimum_length=params.get("minimum_length", 1),
                additional_args=params.get("additional_args"),
            )

    return action


def build_trim_steps(config: Config, tools: Optional[ToolProvider] = None) -> list[StepDescriptor]:
    """One optional step per discovered sample pair."""
    if config.input_root is None:
        raise ConfigurationError("The trim stage needs an input directory (-i/--input)")
    tools = tools or ToolProvider(config)
    matcher = DirectionMatcher(config.forward_pattern, config.reverse_pattern)
    samples = discover_samples(config.input_root, matcher)
    if not samples:
        raise PipelineError(
            f"No paired FASTQ files found in {config.input_root} "
            "(expected R1/ and R2/ subdirectories or *_R1*/*_R2* files)"
        )

    steps = []
    for sample in samples:
        outputs = trimmed_paths(sample, config.trimmed_dir)
        steps.append(
            StepDescriptor(
                name=f"trim:{sample.sample_id}",
                artifacts=outputs,
                action=_trim_action(config, tools, sample, outputs),
                required=False,
                description=f"Remove primers from {sample.forward.name} / {sample.reverse.name}",
            )
        )
    return steps


def run_trim_stage(
    config: Config,
    tools: Optional[ToolProvider] = None,
    strict: Optional[bool] = None,
) -> PipelineReport:
    steps = build_trim_steps(config, tools)
    config.trimmed_dir.mkdir(parents=True, exist_ok=True)
    executor = PipelineExecutor(
        config, steps, checkpoint_store(config, config.trimmed_dir, strict), stage="trim"
    )
    return executor.run()
