"""Truncation-length estimation run.

Parses every FastQC report of the qc stage, estimates one cutoff per sample
and direction, aggregates the cutoffs per direction and persists the
parameter record consumed by the DADA2 step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from truncseeker.config import Config
from truncseeker.exceptions import QualityReportError
from truncseeker.modules.quality_profile import FastQCReportParser, find_reports, report_stem
from truncseeker.modules.samples import DirectionMatcher, ReadDirection
from truncseeker.modules.trunc_stats import (
    AggregateStats,
    ParameterRecord,
    aggregate_all,
    format_summary,
    write_histogram,
    write_parameter_record,
    write_records_table,
    write_summary_table,
)
from truncseeker.modules.truncation import CutoffPolicy, TruncationRecord, estimate_record
from truncseeker.utils.logging import LogTemplates, get_logger
from truncseeker.utils.progress import iter_progress


@dataclass
class EstimationResult:
    """Everything an estimation run produced."""

    records: List[TruncationRecord]
    stats: Dict[ReadDirection, AggregateStats]
    parameters: ParameterRecord
    outputs: Dict[str, Path] = field(default_factory=dict)
    skipped_reports: List[Path] = field(default_factory=list)


class TruncationEstimator:
    """Estimate DADA2 truncation lengths from a directory of FastQC reports."""

    def __init__(self, config: Config, logger=None):
        self.config = config
        self.logger = logger or get_logger("estimator")
        self.matcher = DirectionMatcher(config.forward_pattern, config.reverse_pattern)
        self.parser = FastQCReportParser(self.matcher)
        self.policy = CutoffPolicy(config.cutoff_policy)

    def collect_records(
        self, reports: Sequence[Path]
    ) -> tuple[List[TruncationRecord], List[Path]]:
        """Parse and estimate each report; failures never abort the run.

        A report that cannot be parsed still contributes an unavailable record
        when its direction is known, so it shows up in the ``total`` count.
        """
        records: List[TruncationRecord] = []
        skipped: List[Path] = []

        for report in iter_progress(
            reports, total=len(reports), desc="Estimating", enabled=self.config.runtime.enable_progress
        ):
            stem = report_stem(report)
            direction = self.matcher.infer(stem)
            if direction is None:
                self.logger.warning(
                    LogTemplates.REPORT_SKIPPED.format(
                        report=Path(report).name, reason="read direction could not be inferred"
                    )
                )
                skipped.append(Path(report))
                continue

            sample_id = self.matcher.sample_id(stem)
            try:
                profile = self.parser.parse(report, sample_id=sample_id, direction=direction)
            except QualityReportError as e:
                self.logger.warning(LogTemplates.REPORT_SKIPPED.format(report=Path(report).name, reason=e))
                skipped.append(Path(report))
                records.append(TruncationRecord(sample_id, direction, None, Path(report).name))
                continue

            record = estimate_record(profile, self.config.threshold, self.policy, Path(report).name)
            if record.cutoff is None:
                self.logger.warning(
                    LogTemplates.REPORT_SKIPPED.format(
                        report=Path(report).name, reason="quality module has no data rows"
                    )
                )
            else:
                self.logger.info(
                    LogTemplates.CUTOFF_FOUND.format(
                        sample=sample_id, direction=direction.label, cutoff=record.cutoff
                    )
                )
            records.append(record)

        return records, skipped

    def run(self, reports: Optional[Sequence[Path]] = None) -> EstimationResult:
        """Run the estimation and write the parameter record, histogram and tables."""
        cfg = self.config
        if reports is None:
            reports = find_reports(cfg.reports_dir)
        reports = list(reports)
        self.logger.info(f"Estimating truncation lengths from {len(reports)} FastQC report(s)")
        if not reports:
            self.logger.warning(f"No FastQC reports found in {cfg.reports_dir}")

        records, skipped = self.collect_records(reports)
        stats = aggregate_all(records, cfg.skew_threshold)
        parameters = ParameterRecord.from_stats(stats)

        outputs = {
            "params": write_parameter_record(cfg.params_file, parameters),
            "histogram": write_histogram(cfg.histogram_file, stats, records, cfg.threshold),
            "records": write_records_table(cfg.records_table, records),
            "summary": write_summary_table(cfg.summary_table, stats),
        }

        for direction_stats in stats.values():
            for line in format_summary(direction_stats, cfg.threshold):
                self.logger.info(line)
            if not direction_stats.has_data:
                self.logger.warning(
                    f"No usable cutoff for {direction_stats.direction.label}; "
                    "the DADA2 step will refuse to run"
                )
        self.logger.info(f"Saved truncation parameters to {outputs['params']}")

        return EstimationResult(
            records=records,
            stats=stats,
            parameters=parameters,
            outputs=outputs,
            skipped_reports=skipped,
        )
