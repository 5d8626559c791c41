"""Shared pipeline types.

Only lightweight dataclasses/enums live here so step definitions can import
them without pulling in the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from truncseeker.exceptions import PipelineError

StepAction = Callable[[], None]


class StepResult(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED_HARD = "failed_hard"
    FAILED_SOFT = "failed_soft"


class PipelineStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class StepDescriptor:
    """A pipeline step, identified by the artifacts its action produces.

    ``precondition`` is called before the action and signals unusable inputs
    by raising; that is always fatal, even for optional steps.
    """

    name: str
    artifacts: Tuple[Path, ...]
    action: StepAction
    required: bool = True
    description: str = ""
    precondition: Optional[StepAction] = None

    def __post_init__(self):
        paths = tuple(Path(p) for p in self.artifacts)
        if not paths:
            raise ValueError(f"Step '{self.name}' must declare at least one artifact")
        object.__setattr__(self, "artifacts", paths)

    @property
    def kind(self) -> str:
        return "required" if self.required else "optional"


@dataclass
class PipelineReport:
    """Outcome of one executor run."""

    results: Dict[str, StepResult] = field(default_factory=dict)
    status: PipelineStatus = PipelineStatus.COMPLETED
    failed_step: Optional[str] = None
    error: Optional[str] = None
    artifacts: List[Path] = field(default_factory=list)
    durations: Dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is PipelineStatus.COMPLETED

    def steps_with(self, result: StepResult) -> List[str]:
        return [name for name, r in self.results.items() if r is result]

    def counts(self) -> Dict[StepResult, int]:
        return {r: len(self.steps_with(r)) for r in StepResult}

    def raise_for_status(self) -> None:
        """Raise :class:`PipelineError` if the run was aborted."""
        if self.ok:
            return
        artifacts = ", ".join(str(p) for p in self.artifacts)
        raise PipelineError(
            f"Pipeline aborted at step '{self.failed_step}' "
            f"(required artifact(s): {artifacts}): {self.error}",
            step=self.failed_step,
            artifacts=self.artifacts,
        )
