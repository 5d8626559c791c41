"""QC stage: FastQC per trimmed file, then truncation-length estimation."""

from __future__ import annotations

from typing import Optional

from truncseeker.config import Config
from truncseeker.core.pipeline import PipelineExecutor
from truncseeker.core.pipeline_types import PipelineReport, StepDescriptor
from truncseeker.core.steps import ToolProvider, checkpoint_store
from truncseeker.external.fastqc import report_paths
from truncseeker.modules.estimator import EstimationResult, TruncationEstimator
from truncseeker.modules.quality_profile import find_reports
from truncseeker.modules.samples import list_fastq, strip_fastq_suffix
from truncseeker.utils.logging import get_logger

logger = get_logger("steps.qc")


def build_fastqc_steps(config: Config, tools: Optional[ToolProvider] = None) -> list[StepDescriptor]:
    """One optional step per trimmed FASTQ; the report zip is the artifact."""
    tools = tools or ToolProvider(config)
    additional_args = config.tools.fastqc.get("additional_args")
    steps = []
    for fastq in list_fastq(config.trimmed_dir):
        zip_path, _ = report_paths(fastq, config.reports_dir)

        def action(fastq=fastq) -> None:
            tools.fastqc.run_report(fastq, config.reports_dir, additional_args)

        steps.append(
            StepDescriptor(
                name=f"fastqc:{strip_fastq_suffix(fastq.name)}",
                artifacts=(zip_path,),
                action=action,
                required=False,
                description=f"FastQC report for {fastq.name}",
            )
        )
    return steps


def run_quality_stage(
    config: Config,
    tools: Optional[ToolProvider] = None,
    strict: Optional[bool] = None,
) -> tuple[PipelineReport, EstimationResult]:
    """Run FastQC where needed, then always re-estimate truncation lengths."""
    steps = build_fastqc_steps(config, tools)
    if not steps:
        logger.warning(f"No trimmed FASTQ files found in {config.trimmed_dir}; run the trim stage first")
    config.reports_dir.mkdir(parents=True, exist_ok=True)

    executor = PipelineExecutor(
        config, steps, checkpoint_store(config, config.reports_dir, strict), stage="qc"
    )
    report = executor.run()

    estimation = TruncationEstimator(config).run(find_reports(config.reports_dir))
    return report, estimation
