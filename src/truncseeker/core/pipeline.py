"""Checkpointed step executor for TruncSeeker stages."""

from __future__ import annotations

import time
from typing import Optional, Sequence

from truncseeker.config import Config
from truncseeker.core.checkpoint import CheckpointStore
from truncseeker.core.pipeline_types import (
    PipelineReport,
    PipelineStatus,
    StepDescriptor,
    StepResult,
)
from truncseeker.exceptions import PipelineError
from truncseeker.utils.logging import LogTemplates, get_logger
from truncseeker.utils.progress import iter_progress


class PipelineExecutor:
    """Run an ordered list of steps, skipping those whose artifacts exist.

    A failing required step aborts the run; a failing optional step is logged
    and the run continues. Rerunning the executor is the retry mechanism.
    """

    def __init__(
        self,
        config: Config,
        steps: Sequence[StepDescriptor],
        checkpoints: Optional[CheckpointStore] = None,
        stage: str = "pipeline",
    ):
        self.config = config
        self.steps = list(steps)
        self.checkpoints = checkpoints or CheckpointStore()
        self.stage = stage
        self.logger = get_logger("pipeline")

        names = [s.name for s in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise PipelineError(f"Duplicate step names: {', '.join(duplicates)}")

    def show_steps(self) -> list[str]:
        """Describe each step with its checkpoint state."""
        lines = []
        for i, step in enumerate(self.steps, 1):
            state = "pending" if self.checkpoints.should_run(step) else "done"
            lines.append(f"{i:>2}. {step.name:<18} [{step.kind:<8}] [{state:<7}] {step.description}")
        return lines

    def _execute_step(self, step: StepDescriptor) -> None:
        """Invoke the action, then verify every artifact was produced."""
        step.action()
        missing = self.checkpoints.missing_artifacts(step)
        if missing:
            raise PipelineError(
                "Step finished but did not produce: " + ", ".join(str(p) for p in missing),
                step=step.name,
                artifacts=missing,
            )

    def run(self) -> PipelineReport:
        report = PipelineReport()
        total = len(self.steps)
        self.logger.info(f"Starting {self.stage} stage ({total} steps)")

        iterator = iter_progress(
            self.steps,
            total=total,
            desc=self.stage.capitalize(),
            enabled=self.config.runtime.enable_progress,
        )
        for step_number, step in enumerate(iterator, 1):
            if not self.checkpoints.should_run(step):
                self.logger.info(LogTemplates.STEP_SKIPPED.format(step_name=step.name))
                report.results[step.name] = StepResult.SKIPPED
                continue

            if step.precondition is not None:
                try:
                    step.precondition()
                except Exception as e:
                    self.logger.error(LogTemplates.STEP_FAILED_HARD.format(step_name=step.name, error=e))
                    self._abort(report, step, f"precondition failed: {e}")
                    break

            self.logger.info(
                LogTemplates.STEP_START.format(step_number=step_number, total=total, step_name=step.name)
            )
            step_start_time = time.time()
            try:
                self._execute_step(step)
                self.checkpoints.record(step)
            except Exception as e:
                report.durations[step.name] = time.time() - step_start_time
                try:
                    self.checkpoints.forget(step)
                except PipelineError as forget_error:
                    self.logger.warning(f"Could not clear checkpoint for {step.name}: {forget_error}")
                if step.required:
                    self.logger.error(LogTemplates.STEP_FAILED_HARD.format(step_name=step.name, error=e))
                    self._abort(report, step, str(e))
                    break
                self.logger.warning(LogTemplates.STEP_FAILED_SOFT.format(step_name=step.name, error=e))
                report.results[step.name] = StepResult.FAILED_SOFT
                continue

            duration = time.time() - step_start_time
            report.durations[step.name] = duration
            report.results[step.name] = StepResult.SUCCEEDED
            self.logger.info(LogTemplates.STEP_SUCCESS.format(step_name=step.name, duration=duration))

        counts = report.counts()
        summary = ", ".join(f"{r.value}={n}" for r, n in counts.items() if n)
        if report.ok:
            self.logger.info(f"{self.stage.capitalize()} stage completed ({summary or 'no steps'})")
        else:
            self.logger.error(f"{self.stage.capitalize()} stage aborted at {report.failed_step} ({summary})")
        return report

    @staticmethod
    def _abort(report: PipelineReport, step: StepDescriptor, error: str) -> None:
        report.results[step.name] = StepResult.FAILED_HARD
        report.status = PipelineStatus.ABORTED
        report.failed_step = step.name
        report.error = error
        report.artifacts = list(step.artifacts)
