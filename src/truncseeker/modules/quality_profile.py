"""Per-base quality profiles parsed from FastQC reports.

All knowledge of the FastQC report layout lives here; the estimator and the
statistics module only ever see :class:`QualityProfile` objects.

A report is a ``*_fastqc.zip`` archive, an extracted ``*_fastqc`` directory or
a bare ``fastqc_data.txt``. The relevant block looks like::

    >>Per base sequence quality	pass
    #Base	Mean	Median	Lower Quartile	Upper Quartile	10th Percentile	90th Percentile
    1	32.1	33.0	32.0	34.0	30.0	34.0
    ...
    10-14	31.5	33.0	31.0	34.0	28.0	34.0
    >>END_MODULE
"""

from __future__ import annotations

import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from truncseeker.constants import (
    FASTQC_DATA_FILE,
    FASTQC_MODULE_END,
    FASTQC_QUALITY_MODULE,
)
from truncseeker.exceptions import QualityReportError
from truncseeker.modules.samples import DirectionMatcher, ReadDirection
from truncseeker.utils.logging import get_logger

REPORT_SUFFIXES = ("_fastqc.zip", "_fastqc")
MEAN_COLUMN = "Mean"


@dataclass(frozen=True)
class QualityProfile:
    """Mean quality per read position for one sample and direction."""

    sample_id: str
    direction: Optional[ReadDirection]
    points: tuple[tuple[int, float], ...] = field(default_factory=tuple)

    @property
    def max_position(self) -> Optional[int]:
        return self.points[-1][0] if self.points else None

    @property
    def is_empty(self) -> bool:
        return not self.points

    def __len__(self) -> int:
        return len(self.points)


def report_stem(report: Path) -> str:
    """Return the read-file stem a report was generated from."""
    name = Path(report).name
    if name == FASTQC_DATA_FILE:
        name = Path(report).parent.name
    for suffix in REPORT_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def _expand_position(token: str) -> list[int]:
    """Expand ``'10-14'`` to ``[10, 11, 12, 13, 14]``; ``'7'`` to ``[7]``."""
    if "-" in token:
        first, last = (int(part) for part in token.split("-", 1))
        if last < first:
            raise ValueError(f"descending position range '{token}'")
        return list(range(first, last + 1))
    return [int(token)]


def parse_quality_lines(lines: Iterable[str]) -> list[tuple[int, float]]:
    """Extract (position, mean quality) pairs from ``fastqc_data.txt`` lines.

    Raises:
        QualityReportError: module missing, malformed row, or positions that
            do not form a contiguous range starting at 1.
    """
    in_module = False
    found = False
    mean_idx = 1
    points: list[tuple[int, float]] = []

    for raw in lines:
        line = raw.rstrip("\r\n")
        if not in_module:
            if line.startswith(FASTQC_QUALITY_MODULE):
                in_module = found = True
            continue
        if line.startswith(FASTQC_MODULE_END):
            break
        if not line.strip():
            continue
        columns = line.split("\t")
        if line.startswith("#"):
            header = [c.lstrip("#").strip() for c in columns]
            if MEAN_COLUMN in header:
                mean_idx = header.index(MEAN_COLUMN)
            continue
        try:
            positions = _expand_position(columns[0].strip())
            mean = float(columns[mean_idx])
        except (IndexError, ValueError) as exc:
            raise QualityReportError(f"Malformed quality row '{line}': {exc}") from exc
        points.extend((pos, mean) for pos in positions)

    if not found:
        raise QualityReportError("Per base sequence quality module not found")

    for expected, (pos, _) in enumerate(points, start=1):
        if pos != expected:
            raise QualityReportError(
                f"Positions are not contiguous from 1 (expected {expected}, found {pos})"
            )
    return points


class FastQCReportParser:
    """Turn a FastQC report into a :class:`QualityProfile`."""

    def __init__(self, matcher: Optional[DirectionMatcher] = None, logger=None):
        self.matcher = matcher or DirectionMatcher()
        self.logger = logger or get_logger("quality_profile")

    def parse(
        self,
        report: Path,
        sample_id: Optional[str] = None,
        direction: Optional[ReadDirection] = None,
    ) -> QualityProfile:
        """Parse ``report``; sample id and direction default to the file name."""
        report = Path(report)
        if not report.exists():
            raise QualityReportError(f"Quality report not found: {report}")

        stem = report_stem(report)
        if direction is None:
            direction = self.matcher.infer(stem)
        if sample_id is None:
            sample_id = self.matcher.sample_id(stem)

        if report.is_file() and zipfile.is_zipfile(report):
            points = self._parse_archive(report)
        else:
            data_file = report / FASTQC_DATA_FILE if report.is_dir() else report
            points = self._parse_data_file(data_file)

        self.logger.debug(f"Parsed {len(points)} positions from {report.name}")
        return QualityProfile(sample_id=sample_id, direction=direction, points=tuple(points))

    def _parse_data_file(self, data_file: Path) -> list[tuple[int, float]]:
        if not data_file.is_file():
            raise QualityReportError(f"{FASTQC_DATA_FILE} not found: {data_file}")
        try:
            with open(data_file, "r", encoding="utf-8", errors="replace") as handle:
                return parse_quality_lines(handle)
        except QualityReportError as exc:
            raise QualityReportError(f"{data_file}: {exc}") from exc

    def _parse_archive(self, archive: Path) -> list[tuple[int, float]]:
        """Extract ``fastqc_data.txt`` into a scratch directory and parse it."""
        try:
            with zipfile.ZipFile(archive) as zf:
                members = [
                    name for name in zf.namelist()
                    if Path(name).name == FASTQC_DATA_FILE
                ]
                if not members:
                    raise QualityReportError(f"{FASTQC_DATA_FILE} not found in {archive}")
                # Scratch space is removed when the block exits, parse errors included
                with tempfile.TemporaryDirectory(prefix="truncseeker_fastqc_") as scratch:
                    extracted = Path(zf.extract(sorted(members, key=len)[0], path=scratch))
                    return self._parse_data_file(extracted)
        except zipfile.BadZipFile as exc:
            raise QualityReportError(f"Corrupt FastQC archive {archive}: {exc}") from exc


def find_reports(reports_dir: Path) -> list[Path]:
    """List FastQC reports in ``reports_dir`` (archives preferred over directories)."""
    reports_dir = Path(reports_dir)
    if not reports_dir.is_dir():
        return []
    archives = sorted(reports_dir.glob("*_fastqc.zip"))
    stems = {report_stem(a) for a in archives}
    extracted = sorted(
        d for d in reports_dir.glob("*_fastqc")
        if d.is_dir() and report_stem(d) not in stems
    )
    return archives + extracted
