"""Artifact-based checkpointing.

A step is complete when every artifact it declares exists. In strict mode a
fingerprint of each artifact is stored after the step succeeds, and a step
whose artifacts no longer match their fingerprints is run again.
"""

from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from truncseeker.core.pipeline_types import StepDescriptor
from truncseeker.exceptions import ConfigurationError, PipelineError
from truncseeker.utils.logging import get_logger

FINGERPRINT_STAT = "stat"
FINGERPRINT_SHA256 = "sha256"
_CHUNK_SIZE = 1024 * 1024


def _file_fingerprint(path: Path, method: str) -> str:
    if method == FINGERPRINT_STAT:
        st = path.stat()
        return f"{st.st_size}:{st.st_mtime_ns}"
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint(path: Path, method: str = FINGERPRINT_STAT) -> str:
    """Fingerprint a file, or a directory by its files recursively."""
    if method not in (FINGERPRINT_STAT, FINGERPRINT_SHA256):
        raise ConfigurationError(f"Unknown fingerprint method: {method}")
    path = Path(path)
    if not path.is_dir():
        return _file_fingerprint(path, method)

    digest = hashlib.sha256()
    for child in sorted(p for p in path.rglob("*") if p.is_file()):
        digest.update(child.relative_to(path).as_posix().encode())
        digest.update(b"\0")
        digest.update(_file_fingerprint(child, method).encode())
        digest.update(b"\n")
    return "dir:" + digest.hexdigest()


class CheckpointStore:
    """Decide whether a step must run, based on its artifacts."""

    def __init__(
        self,
        ledger_path: Optional[Path] = None,
        strict: bool = False,
        method: str = FINGERPRINT_STAT,
    ):
        if strict and ledger_path is None:
            raise ConfigurationError("Strict checkpointing needs a ledger path")
        self.ledger_path = Path(ledger_path) if ledger_path else None
        self.strict = strict
        self.method = method
        self.logger = get_logger("checkpoint")
        self._ledger: Optional[Dict[str, Dict[str, str]]] = None

    # ------------------------------------------------------------------ ledger

    @property
    def ledger(self) -> Dict[str, Dict[str, str]]:
        if self._ledger is None:
            self._ledger = self._load_ledger()
        return self._ledger

    def _load_ledger(self) -> Dict[str, Dict[str, str]]:
        if self.ledger_path is None or not self.ledger_path.exists():
            return {}
        try:
            with open(self.ledger_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"Ignoring unreadable checkpoint ledger {self.ledger_path}: {e}")
            return {}
        steps = data.get("steps") if isinstance(data, dict) else None
        return steps if isinstance(steps, dict) else {}

    def _save_ledger(self) -> None:
        """Write the ledger with temp file + rename."""
        if self.ledger_path is None:
            raise PipelineError("Checkpoint ledger path is not set")
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.ledger_path.with_name(self.ledger_path.name + ".tmp")
        payload = {
            "method": self.method,
            "steps": self.ledger,
            "_saved_at": datetime.now().isoformat(),
        }
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            temp_file.replace(self.ledger_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise PipelineError(f"Failed to save checkpoint ledger: {e}") from e
        self.logger.debug(f"Checkpoint ledger saved to {self.ledger_path}")

    # ------------------------------------------------------------------ API

    @staticmethod
    def missing_artifacts(step: StepDescriptor) -> list[Path]:
        return [p for p in step.artifacts if not p.exists()]

    def should_run(self, step: StepDescriptor) -> bool:
        """True unless every artifact exists (and, in strict mode, still matches)."""
        if self.missing_artifacts(step):
            return True
        if not self.strict:
            return False

        recorded = self.ledger.get(step.name)
        if not recorded:
            self.logger.debug(f"{step.name}: no recorded fingerprint, rerunning")
            return True
        for artifact in step.artifacts:
            expected = recorded.get(str(artifact))
            if expected is None or expected != fingerprint(artifact, self.method):
                self.logger.info(f"{step.name}: artifact {artifact} changed since it was recorded")
                return True
        return False

    def record(self, step: StepDescriptor) -> None:
        """Store fingerprints for a step that just succeeded (strict mode only)."""
        if not self.strict:
            return
        self.ledger[step.name] = {
            str(artifact): fingerprint(artifact, self.method) for artifact in step.artifacts
        }
        self._save_ledger()

    def forget(self, step: StepDescriptor) -> None:
        """Drop a step's fingerprints so strict mode reruns it."""
        if self.strict and self.ledger.pop(step.name, None) is not None:
            self._save_ledger()
