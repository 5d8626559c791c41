"""Tests for artifact-based checkpointing."""

from pathlib import Path
import json
import os
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from truncseeker.core.checkpoint import CheckpointStore, fingerprint
from truncseeker.core.pipeline_types import StepDescriptor
from truncseeker.exceptions import ConfigurationError, PipelineError


def _step(*paths):
    return StepDescriptor("s", tuple(paths), lambda: None)


class TestExistenceCheckpoints:
    def test_missing_artifact_runs(self, tmp_path):
        assert CheckpointStore().should_run(_step(tmp_path / "a.qza"))

    def test_all_artifacts_present_skips(self, tmp_path):
        (tmp_path / "a.qza").write_text("x")
        (tmp_path / "dir").mkdir()
        assert not CheckpointStore().should_run(_step(tmp_path / "a.qza", tmp_path / "dir"))

    def test_partial_artifacts_run(self, tmp_path):
        (tmp_path / "a.qza").write_text("x")
        step = _step(tmp_path / "a.qza", tmp_path / "b.qza")
        assert CheckpointStore().should_run(step)
        assert CheckpointStore.missing_artifacts(step) == [tmp_path / "b.qza"]

    def test_stale_content_not_detected_without_strict(self, tmp_path):
        artifact = tmp_path / "a.qza"
        artifact.write_text("")
        assert not CheckpointStore().should_run(_step(artifact))

    def test_record_is_noop_without_strict(self, tmp_path):
        store = CheckpointStore(tmp_path / "ledger.json")
        (tmp_path / "a.qza").write_text("x")
        store.record(_step(tmp_path / "a.qza"))
        assert not (tmp_path / "ledger.json").exists()


class TestStrictCheckpoints:
    @pytest.mark.parametrize("method", ["stat", "sha256"])
    def test_recorded_artifact_skips(self, tmp_path, method):
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(tmp_path / "ledger.json", strict=True, method=method)
        step = _step(artifact)

        assert store.should_run(step)  # exists but never recorded
        store.record(step)
        assert not store.should_run(step)

        # a fresh store reads the same ledger from disk
        assert not CheckpointStore(tmp_path / "ledger.json", strict=True, method=method).should_run(step)

    def test_changed_artifact_reruns(self, tmp_path):
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(tmp_path / "ledger.json", strict=True, method="sha256")
        step = _step(artifact)
        store.record(step)

        artifact.write_text("truncated")

        assert store.should_run(step)

    def test_stat_detects_mtime_change(self, tmp_path):
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(tmp_path / "ledger.json", strict=True)
        step = _step(artifact)
        store.record(step)

        st = artifact.stat()
        os.utime(artifact, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))

        assert store.should_run(step)

    def test_ledger_is_json(self, tmp_path):
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(tmp_path / "ledger.json", strict=True, method="sha256")
        store.record(_step(artifact))

        data = json.loads((tmp_path / "ledger.json").read_text())
        assert data["method"] == "sha256"
        assert str(artifact) in data["steps"]["s"]
        assert not (tmp_path / "ledger.json.tmp").exists()

    def test_forget(self, tmp_path):
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(tmp_path / "ledger.json", strict=True)
        step = _step(artifact)
        store.record(step)
        store.forget(step)
        assert store.should_run(step)

    def test_unreadable_ledger_is_ignored(self, tmp_path):
        ledger = tmp_path / "ledger.json"
        ledger.write_text("{not json")
        artifact = tmp_path / "a.qza"
        artifact.write_text("data")
        store = CheckpointStore(ledger, strict=True)
        assert store.should_run(_step(artifact))

    def test_strict_requires_ledger(self):
        with pytest.raises(ConfigurationError):
            CheckpointStore(strict=True)

    def test_save_without_ledger_path_raises(self):
        with pytest.raises(PipelineError, match="ledger path is not set"):
            CheckpointStore()._save_ledger()


class TestFingerprint:
    def test_directory_fingerprint_covers_files(self, tmp_path):
        d = tmp_path / "core_metrics"
        (d / "sub").mkdir(parents=True)
        (d / "sub" / "x.qza").write_text("1")
        before = fingerprint(d, "sha256")
        (d / "sub" / "x.qza").write_text("2")
        assert fingerprint(d, "sha256") != before
        assert before.startswith("dir:")

    def test_unknown_method(self, tmp_path):
        with pytest.raises(ConfigurationError):
            fingerprint(tmp_path, "md5")
