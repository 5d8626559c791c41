"""Tests for the external tool wrappers."""

from pathlib import Path
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from truncseeker.exceptions import DependencyError, ExternalToolError
from truncseeker.external.base import ExternalTool
from truncseeker.external.cutadapt import Cutadapt
from truncseeker.external.fastqc import FastQC, report_paths
from truncseeker.external.qiime import Qiime2


class DummyTool(ExternalTool):
    tool_name = "dummytool"


class TestExternalTool:
    @patch("truncseeker.external.base.shutil.which", return_value=None)
    def test_missing_tool_raises_dependency_error(self, mock_which):
        with pytest.raises(DependencyError, match="dummytool not found"):
            DummyTool()

    @patch.object(Cutadapt, "get_tool_version", return_value="2.10")
    @patch("truncseeker.external.base.shutil.which", return_value="/usr/bin/cutadapt")
    def test_old_version_rejected(self, mock_which, mock_version):
        with pytest.raises(DependencyError, match="below required version"):
            Cutadapt()

    @patch.object(Cutadapt, "get_tool_version", return_value="4.9")
    @patch("truncseeker.external.base.shutil.which", return_value="/usr/bin/cutadapt")
    def test_new_enough_version(self, mock_which, mock_version):
        assert Cutadapt().executable == "cutadapt"

    @patch.object(DummyTool, "_check_installation")
    def test_check_minimum_version_unparseable(self, mock_check):
        assert DummyTool().check_minimum_version("v-dev", "1.0")

    @patch.object(DummyTool, "_check_installation")
    def test_split_args(self, mock_check):
        assert DummyTool.split_args("--quiet -e 0.1") == ["--quiet", "-e", "0.1"]
        assert DummyTool.split_args(["-q", 20]) == ["-q", "20"]
        assert DummyTool.split_args(None) == []

    @patch.object(DummyTool, "_check_installation")
    @patch("truncseeker.external.base.subprocess.run")
    def test_run_returns_output(self, mock_run, mock_check):
        mock_run.return_value = MagicMock(stdout="out", stderr="", returncode=0)
        assert DummyTool().run(["dummytool", Path("x")]) == ("out", "")
        assert mock_run.call_args[0][0] == ["dummytool", "x"]

    @patch.object(DummyTool, "_check_installation")
    @patch("truncseeker.external.base.subprocess.run")
    def test_run_maps_failure(self, mock_run, mock_check):
        mock_run.side_effect = subprocess.CalledProcessError(3, ["dummytool"], stderr="bad input")
        with pytest.raises(ExternalToolError) as exc_info:
            DummyTool().run(["dummytool"])
        assert exc_info.value.returncode == 3
        assert exc_info.value.stderr == "bad input"

    @patch.object(DummyTool, "_check_installation")
    @patch("truncseeker.external.base.subprocess.run")
    def test_run_maps_timeout(self, mock_run, mock_check):
        mock_run.side_effect = subprocess.TimeoutExpired(["dummytool"], 5)
        with pytest.raises(ExternalToolError, match="timed out"):
            DummyTool().run(["dummytool"], timeout=5)

    @patch.object(DummyTool, "_check_installation")
    @patch("truncseeker.external.base.subprocess.run")
    def test_run_maps_os_error(self, mock_run, mock_check):
        mock_run.side_effect = FileNotFoundError("no such file")
        with pytest.raises(ExternalToolError, match="Failed to execute"):
            DummyTool().run(["dummytool"])


class TestCutadapt:
    @patch.object(Cutadapt, "_check_installation")
    def test_degenerate_primers_are_reverse_complemented(self, mock_check):
        cmd = Cutadapt().build_pair_command(
            Path("a_R1.fq"),
            Path("a_R2.fq"),
            Path("o_R1.fq"),
            Path("o_R2.fq"),
            forward_primer="GTGCCAGCMGCCGCGGTAA",
            reverse_primer="GGACTACHVGGGTWTCTAAT",
        )
        assert cmd[cmd.index("-a") + 1] == "ATTAGAWACCCBDGTAGTCC"
        assert cmd[cmd.index("-A") + 1] == "TTACCGCGGCKGCTGGCAC"

    @patch.object(Cutadapt, "_check_installation")
    def test_pair_command(self, mock_check):
        tool = Cutadapt(threads=8)
        cmd = tool.build_pair_command(
            Path("in_R1.fastq.gz"),
            Path("in_R2.fastq.gz"),
            Path("out_R1.fastq.gz"),
            Path("out_R2.fastq.gz"),
            forward_primer="AAAC",
            reverse_primer="GGGT",
            minimum_length=50,
            additional_args="--discard-untrimmed",
        )
        assert cmd[0] == "cutadapt"
        assert cmd[cmd.index("-g") + 1] == "AAAC"
        assert cmd[cmd.index("-a") + 1] == "ACCC"
        assert cmd[cmd.index("-G") + 1] == "GGGT"
        assert cmd[cmd.index("-A") + 1] == "GTTT"
        assert cmd[cmd.index("--cores") + 1] == "8"
        assert cmd[cmd.index("--minimum-length") + 1] == "50"
        assert "--discard-untrimmed" in cmd
        assert cmd[-4:] == ["-p", "out_R2.fastq.gz", "in_R1.fastq.gz", "in_R2.fastq.gz"]

    @patch.object(Cutadapt, "_check_installation")
    @patch.object(Cutadapt, "run", return_value=("", ""))
    def test_trim_pair_runs_command(self, mock_run, mock_check, tmp_path):
        tool = Cutadapt()
        tool.trim_pair(
            tmp_path / "a_R1.fq",
            tmp_path / "a_R2.fq",
            tmp_path / "out" / "a_R1.fq",
            tmp_path / "out" / "a_R2.fq",
            "AC",
            "GT",
        )
        mock_run.assert_called_once()
        assert (tmp_path / "out").is_dir()


class TestFastQC:
    def test_report_paths(self, tmp_path):
        zip_path, html_path = report_paths(Path("S1_R1_trimmed.fastq.gz"), tmp_path)
        assert zip_path == tmp_path / "S1_R1_trimmed_fastqc.zip"
        assert html_path == tmp_path / "S1_R1_trimmed_fastqc.html"

    @patch.object(FastQC, "_check_installation")
    def test_run_report_moves_outputs(self, mock_check, tmp_path):
        fastq = tmp_path / "S1_R1_trimmed.fastq.gz"
        fastq.write_bytes(b"")
        out_dir = tmp_path / "reports"

        def fake_run(cmd, capture_output=True):
            scratch = Path(cmd[cmd.index("--outdir") + 1])
            (scratch / "S1_R1_trimmed_fastqc.zip").write_text("zip")
            (scratch / "S1_R1_trimmed_fastqc.html").write_text("html")
            return "", ""

        tool = FastQC(threads=2)
        with patch.object(FastQC, "run", side_effect=fake_run):
            result = tool.run_report(fastq, out_dir)

        assert result == out_dir / "S1_R1_trimmed_fastqc.zip"
        assert result.read_text() == "zip"
        assert (out_dir / "S1_R1_trimmed_fastqc.html").exists()
        assert sorted(p.name for p in out_dir.iterdir()) == [
            "S1_R1_trimmed_fastqc.html",
            "S1_R1_trimmed_fastqc.zip",
        ]

    @patch.object(FastQC, "_check_installation")
    @patch.object(FastQC, "run", side_effect=ExternalToolError("fastqc failed"))
    def test_failed_run_leaves_no_report(self, mock_run, mock_check, tmp_path):
        fastq = tmp_path / "S1_R1.fastq"
        fastq.write_text("")
        with pytest.raises(ExternalToolError):
            FastQC().run_report(fastq, tmp_path / "reports")
        assert list((tmp_path / "reports").iterdir()) == []


class TestQiime2:
    @patch.object(Qiime2, "_check_installation")
    @patch.object(Qiime2, "run", return_value=("", ""))
    def test_command_prefix(self, mock_run, mock_check):
        tool = Qiime2(command=["conda", "run", "-n", "qiime2", "qiime"])
        tool.demux_summarize(Path("demux.qza"), Path("demux.qzv"))
        cmd = mock_run.call_args[0][0]
        assert cmd[:5] == ["conda", "run", "-n", "qiime2", "qiime"]
        assert cmd[5:7] == ["demux", "summarize"]
        assert tool.executable == "conda"

    @patch.object(Qiime2, "_check_installation")
    @patch.object(Qiime2, "run", return_value=("", ""))
    def test_dada2_arguments(self, mock_run, mock_check):
        Qiime2(threads=6).dada2_denoise_paired(
            Path("demux.qza"), 240, 180, Path("t.qza"), Path("r.qza"), Path("s.qza"), trim_left_f=3
        )
        cmd = mock_run.call_args[0][0]
        assert cmd[1:3] == ["dada2", "denoise-paired"]
        assert cmd[cmd.index("--p-trunc-len-f") + 1] == "240"
        assert cmd[cmd.index("--p-trunc-len-r") + 1] == "180"
        assert cmd[cmd.index("--p-trim-left-f") + 1] == "3"
        assert cmd[cmd.index("--p-trim-left-r") + 1] == "0"
        assert cmd[cmd.index("--p-n-threads") + 1] == "6"

    @patch.object(Qiime2, "_check_installation")
    @patch.object(Qiime2, "run", return_value=("", ""))
    def test_import_uses_manifest_format(self, mock_run, mock_check):
        Qiime2().import_paired(Path("manifest.tsv"), Path("demux.qza"))
        cmd = mock_run.call_args[0][0]
        assert "SampleData[PairedEndSequencesWithQuality]" in cmd
        assert "PairedEndFastqManifestPhred33V2" in cmd

    @patch.object(Qiime2, "_check_installation")
    @patch.object(Qiime2, "run", return_value=("", ""))
    def test_optional_metadata(self, mock_run, mock_check):
        tool = Qiime2()
        tool.feature_table_summarize(Path("t.qza"), Path("t.qzv"))
        assert "--m-sample-metadata-file" not in mock_run.call_args[0][0]
        tool.taxa_barplot(Path("t.qza"), Path("tax.qza"), Path("b.qzv"), Path("meta.tsv"))
        assert "--m-metadata-file" in mock_run.call_args[0][0]
