"""Pytest configuration for TruncSeeker tests."""

import logging
import sys
import zipfile
from pathlib import Path

import pytest

# Add src directory to Python path
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

QUALITY_HEADER = (
    "#Base\tMean\tMedian\tLower Quartile\tUpper Quartile\t10th Percentile\t90th Percentile"
)


def fastqc_data_text(rows, module=True) -> str:
    """Build a minimal ``fastqc_data.txt``.

    ``rows`` is a list of mean qualities (one per base) or of
    ``(position_label, mean)`` tuples for grouped positions like ``"10-14"``.
    """
    lines = [
        "##FastQC\t0.12.1",
        ">>Basic Statistics\tpass",
        "#Measure\tValue",
        "Filename\treads.fastq.gz",
        ">>END_MODULE",
    ]
    if module:
        lines += [">>Per base sequence quality\tpass", QUALITY_HEADER]
        for i, row in enumerate(rows, 1):
            label, mean = row if isinstance(row, tuple) else (str(i), row)
            lines.append(f"{label}\t{mean}\t{mean}\t{mean}\t{mean}\t{mean}\t{mean}")
        lines.append(">>END_MODULE")
    lines += [">>Per sequence quality scores\tpass", "#Quality\tCount", "30\t100.0", ">>END_MODULE"]
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_fastqc_report():
    """Factory writing ``<stem>_fastqc.zip`` (or an extracted directory)."""

    def _make(directory: Path, stem: str, rows, as_zip: bool = True, module: bool = True) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        text = fastqc_data_text(rows, module=module)
        if as_zip:
            path = directory / f"{stem}_fastqc.zip"
            with zipfile.ZipFile(path, "w") as zf:
                zf.writestr(f"{stem}_fastqc/fastqc_data.txt", text)
                zf.writestr(f"{stem}_fastqc/summary.txt", "PASS\tBasic Statistics\n")
            return path
        path = directory / f"{stem}_fastqc"
        path.mkdir(exist_ok=True)
        (path / "fastqc_data.txt").write_text(text, encoding="utf-8")
        return path

    return _make


@pytest.fixture(autouse=True)
def reset_logging_after_test():
    """Reset truncseeker logger state after each test.

    setup_logging() sets propagate=False, which breaks caplog in later tests.
    """
    yield
    app_logger = logging.getLogger("truncseeker")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True
