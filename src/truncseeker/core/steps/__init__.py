"""Step builders for the trim, qc and analysis stages.

Each ``build_*_steps`` function turns a :class:`~truncseeker.config.Config`
into an ordered list of :class:`StepDescriptor` objects; the executor does the
rest. Tool wrappers are created on first use so a fully checkpointed stage
never needs the tools on PATH.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from truncseeker.config import Config
from truncseeker.constants import CHECKPOINT_LEDGER_NAME
from truncseeker.core.checkpoint import CheckpointStore
from truncseeker.external import Cutadapt, FastQC, Qiime2


class ToolProvider:
    """Lazily construct (and cache) the external tool wrappers."""

    def __init__(
        self,
        config: Config,
        cutadapt: Optional[Cutadapt] = None,
        fastqc: Optional[FastQC] = None,
        qiime: Optional[Qiime2] = None,
    ):
        self.config = config
        self._cutadapt = cutadapt
        self._fastqc = fastqc
        self._qiime = qiime

    @property
    def cutadapt(self) -> Cutadapt:
        if self._cutadapt is None:
            self._cutadapt = Cutadapt(threads=self.config.threads)
        return self._cutadapt

    @property
    def fastqc(self) -> FastQC:
        if self._fastqc is None:
            self._fastqc = FastQC(threads=self.config.threads)
        return self._fastqc

    @property
    def qiime(self) -> Qiime2:
        if self._qiime is None:
            self._qiime = Qiime2(threads=self.config.threads, command=self.config.tools.qiime["command"])
        return self._qiime


def checkpoint_store(config: Config, stage_dir: Path, strict: Optional[bool] = None) -> CheckpointStore:
    """Checkpoint store for one stage; the ledger lives in the stage directory."""
    if strict is None:
        strict = config.runtime.strict_checkpoints
    return CheckpointStore(
        ledger_path=Path(stage_dir) / CHECKPOINT_LEDGER_NAME,
        strict=strict,
        method=config.runtime.fingerprint,
    )
