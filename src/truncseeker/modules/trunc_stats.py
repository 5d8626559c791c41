"""Per-direction aggregation of truncation cutoffs.

Cutoffs from every sample are reduced to a single DADA2 truncation length per
read direction. The mean is preferred; when it drifts from the median by more
than the skew threshold (outliers, bimodal runs) the median is used instead.
Results are persisted as a ``KEY=VALUE`` parameter record, a text histogram
for manual review, and two TSV tables.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence

import pandas as pd

from truncseeker.constants import DEFAULT_QUALITY_THRESHOLD, DEFAULT_SKEW_THRESHOLD
from truncseeker.exceptions import AggregationEmptyError, QualityReportError
from truncseeker.modules.samples import ReadDirection
from truncseeker.modules.truncation import TruncationRecord
from truncseeker.utils.atomic import atomic_outputs, atomic_write_text

FORWARD_KEY = "forwardTruncLen"
REVERSE_KEY = "reverseTruncLen"

# Keys written by earlier shell-based runs
LEGACY_KEYS = {
    "R1_TRUNC_LEN": FORWARD_KEY,
    "R2_TRUNC_LEN": REVERSE_KEY,
    "R1_AVG": FORWARD_KEY,
    "R2_AVG": REVERSE_KEY,
}


class SelectionMethod(str, Enum):
    MEAN = "mean"
    MEDIAN = "median"


@dataclass(frozen=True)
class AggregateStats:
    """Summary of cutoffs for one read direction.

    ``count`` is the number of records with a usable cutoff; ``total`` also
    includes records whose cutoff was unavailable.
    """

    direction: ReadDirection
    count: int = 0
    total: int = 0
    mean: int = 0
    median: int = 0
    chosen: int = 0
    method: SelectionMethod = SelectionMethod.MEAN

    @property
    def unavailable(self) -> int:
        return self.total - self.count

    @property
    def has_data(self) -> bool:
        return self.count > 0


def round_half_up_ratio(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` to the nearest integer, halves up."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def rounded_mean(values: Sequence[int]) -> int:
    return round_half_up_ratio(sum(values), len(values))


def rounded_median(values: Sequence[int]) -> int:
    """Middle value; an even count averages the two middle values, rounding down."""
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


def aggregate(
    records: Iterable[TruncationRecord],
    direction: ReadDirection,
    skew_threshold: int = DEFAULT_SKEW_THRESHOLD,
) -> AggregateStats:
    """Aggregate the records of ``direction``; other directions are ignored."""
    observed = [r for r in records if r.direction is direction]
    cutoffs = [r.cutoff for r in observed if r.cutoff is not None]
    if not cutoffs:
        return AggregateStats(direction=direction, total=len(observed))

    mean = rounded_mean(cutoffs)
    median = rounded_median(cutoffs)
    if abs(median - mean) > skew_threshold:
        method, chosen = SelectionMethod.MEDIAN, median
    else:
        method, chosen = SelectionMethod.MEAN, mean

    return AggregateStats(
        direction=direction,
        count=len(cutoffs),
        total=len(observed),
        mean=mean,
        median=median,
        chosen=chosen,
        method=method,
    )


def aggregate_all(
    records: Sequence[TruncationRecord],
    skew_threshold: int = DEFAULT_SKEW_THRESHOLD,
) -> Dict[ReadDirection, AggregateStats]:
    return {d: aggregate(records, d, skew_threshold) for d in ReadDirection}


# ---------------------------------------------------------------------------
# Histogram
# ---------------------------------------------------------------------------

def histogram_lines(records: Iterable[TruncationRecord], direction: ReadDirection) -> list[str]:
    """One line per observed cutoff, ascending: `` 250 bp     | *** (3)``."""
    counts = Counter(
        r.cutoff for r in records if r.direction is direction and r.cutoff is not None
    )
    return [
        " {:<10} | {} ({})".format(f"{length} bp", "*" * n, n)
        for length, n in sorted(counts.items())
    ]


def render_histogram(
    stats_by_direction: Mapping[ReadDirection, AggregateStats],
    records: Sequence[TruncationRecord],
    threshold: float = DEFAULT_QUALITY_THRESHOLD,
) -> str:
    """Render the text histogram, one section per read direction."""
    sections = []
    for direction in ReadDirection:
        stats = stats_by_direction.get(direction) or AggregateStats(direction=direction)
        lines = [
            f"## {direction.label} truncation length distribution",
            f"Count of samples truncated at each length (Q{threshold:g}):",
            "",
            f" Length (bp) | Samples (included {stats.count} of {stats.total})",
            "-------------|---------------------------------------------",
        ]
        body = histogram_lines(records, direction)
        lines.extend(body or [" (no usable cutoffs)"])
        lines.append(
            f"Chosen: {stats.chosen} bp ({stats.method.value}; "
            f"mean {stats.mean}, median {stats.median})"
        )
        sections.append("\n".join(lines))
    return "\n\n".join(sections) + "\n"


def write_histogram(
    path: Path,
    stats_by_direction: Mapping[ReadDirection, AggregateStats],
    records: Sequence[TruncationRecord],
    threshold: float = DEFAULT_QUALITY_THRESHOLD,
) -> Path:
    atomic_write_text(path, render_histogram(stats_by_direction, records, threshold))
    return Path(path)


# ---------------------------------------------------------------------------
# Parameter record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParameterRecord:
    """Truncation lengths handed to the DADA2 step. 0 means no usable data."""

    forward_trunc_len: int
    reverse_trunc_len: int

    @classmethod
    def from_stats(cls, stats_by_direction: Mapping[ReadDirection, AggregateStats]) -> "ParameterRecord":
        forward = stats_by_direction.get(ReadDirection.FORWARD)
        reverse = stats_by_direction.get(ReadDirection.REVERSE)
        return cls(
            forward_trunc_len=forward.chosen if forward else 0,
            reverse_trunc_len=reverse.chosen if reverse else 0,
        )

    def require(self) -> tuple[int, int]:
        """Return both lengths, refusing to hand out a 0."""
        missing = [
            key
            for key, value in ((FORWARD_KEY, self.forward_trunc_len), (REVERSE_KEY, self.reverse_trunc_len))
            if value <= 0
        ]
        if missing:
            raise AggregationEmptyError(
                f"No usable truncation length for {', '.join(missing)} "
                "(no quality report produced a cutoff for that direction)"
            )
        return self.forward_trunc_len, self.reverse_trunc_len

    def to_text(self) -> str:
        return (
            "# QIIME 2 DADA2 truncation parameters (written by truncseeker qc)\n"
            f"{FORWARD_KEY}={self.forward_trunc_len}\n"
            f"{REVERSE_KEY}={self.reverse_trunc_len}\n"
        )


def write_parameter_record(path: Path, record: ParameterRecord) -> Path:
    """Write ``record`` to ``path``, replacing any previous record."""
    atomic_write_text(path, record.to_text())
    return Path(path)


def read_parameter_record(path: Path) -> ParameterRecord:
    """Read a parameter record; current and legacy key names are accepted.

    Raises:
        FileNotFoundError: the record does not exist.
        QualityReportError: the record is unreadable, a key is missing or a
            value is not an integer.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as exc:
        raise QualityReportError(f"Cannot read parameter record {path}: {exc}") from exc

    values: Dict[str, int] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        key = LEGACY_KEYS.get(key, key)
        if key not in (FORWARD_KEY, REVERSE_KEY):
            continue
        try:
            values[key] = int(value)
        except ValueError as exc:
            raise QualityReportError(f"Invalid value for {key} in {path}: '{value}'") from exc

    missing = [k for k in (FORWARD_KEY, REVERSE_KEY) if k not in values]
    if missing:
        raise QualityReportError(f"Parameter record {path} is missing {', '.join(missing)}")
    return ParameterRecord(values[FORWARD_KEY], values[REVERSE_KEY])


# ---------------------------------------------------------------------------
# Diagnostic tables
# ---------------------------------------------------------------------------

def records_frame(records: Sequence[TruncationRecord]) -> pd.DataFrame:
    rows = [
        {
            "sample_id": r.sample_id,
            "direction": r.direction.value if r.direction else "unknown",
            "cutoff": r.cutoff,
            "source": r.source,
        }
        for r in records
    ]
    df = pd.DataFrame(rows, columns=["sample_id", "direction", "cutoff", "source"])
    df["cutoff"] = df["cutoff"].astype("Int64")
    return df.sort_values(["direction", "sample_id"], kind="stable").reset_index(drop=True)


def summary_frame(stats_by_direction: Mapping[ReadDirection, AggregateStats]) -> pd.DataFrame:
    rows = []
    for stats in stats_by_direction.values():
        row = asdict(stats)
        row["direction"] = stats.direction.value
        row["method"] = stats.method.value
        row["unavailable"] = stats.unavailable
        rows.append(row)
    return pd.DataFrame(
        rows,
        columns=["direction", "count", "total", "unavailable", "mean", "median", "chosen", "method"],
    )


def _write_table(df: pd.DataFrame, path: Path) -> Path:
    with atomic_outputs([path]) as (partial,):
        df.to_csv(partial, sep="\t", index=False, na_rep="NA")
    return Path(path)


def write_records_table(path: Path, records: Sequence[TruncationRecord]) -> Path:
    return _write_table(records_frame(records), path)


def write_summary_table(
    path: Path, stats_by_direction: Mapping[ReadDirection, AggregateStats]
) -> Path:
    return _write_table(summary_frame(stats_by_direction), path)


def format_summary(stats: AggregateStats, threshold: Optional[float] = None) -> list[str]:
    """Human-readable summary lines for one direction."""
    reason = (
        "median used due to high skew/outliers"
        if stats.method is SelectionMethod.MEDIAN
        else "mean used, low skew"
    )
    header = f"{stats.direction.label}: {stats.count} of {stats.total} samples usable"
    if threshold is not None:
        header += f" (Q{threshold:g})"
    return [
        header,
        f"  Median length: {stats.median} bp",
        f"  Mean length: {stats.mean} bp",
        f"  Final parameter: {stats.chosen} bp ({reason})",
    ]
