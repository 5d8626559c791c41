"""Tests for per-direction aggregation, histogram and parameter record."""

from pathlib import Path
import sys

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from truncseeker.exceptions import AggregationEmptyError, QualityReportError
from truncseeker.modules.samples import ReadDirection
from truncseeker.modules.trunc_stats import (
    AggregateStats,
    ParameterRecord,
    SelectionMethod,
    aggregate,
    aggregate_all,
    histogram_lines,
    read_parameter_record,
    render_histogram,
    rounded_mean,
    rounded_median,
    write_histogram,
    write_parameter_record,
    write_records_table,
    write_summary_table,
)
from truncseeker.modules.truncation import TruncationRecord

F = ReadDirection.FORWARD
R = ReadDirection.REVERSE


def _records(cutoffs, direction=F):
    return [TruncationRecord(f"S{i}", direction, c) for i, c in enumerate(cutoffs, 1)]


class TestRounding:
    def test_mean_rounds_half_up(self):
        assert rounded_mean([100, 100, 100, 130]) == 108  # 107.5
        assert rounded_mean([1, 2]) == 2  # 1.5
        assert rounded_mean([1, 1, 2]) == 1  # 1.33

    def test_median_odd_and_even(self):
        assert rounded_median([5, 1, 3]) == 3
        assert rounded_median([100, 100, 100, 130]) == 100
        assert rounded_median([240, 241]) == 240  # 240.5 rounds down
        assert rounded_median([79, 80, 81, 200]) == 80


class TestAggregate:
    def test_low_skew_selects_mean(self):
        stats = aggregate(_records([100, 100, 100, 130]), F)
        assert (stats.count, stats.mean, stats.median) == (4, 108, 100)
        assert stats.method is SelectionMethod.MEAN
        assert stats.chosen == 108

    def test_high_skew_selects_median(self):
        stats = aggregate(_records([80, 81, 79, 200]), F)
        assert (stats.mean, stats.median) == (110, 80)
        assert stats.method is SelectionMethod.MEDIAN
        assert stats.chosen == 80

    def test_gap_equal_to_threshold_keeps_mean(self):
        # mean 110 (330/3), median 100: gap exactly 10
        stats = aggregate(_records([100, 100, 130]), F, skew_threshold=10)
        assert stats.method is SelectionMethod.MEAN
        assert stats.chosen == 110

    def test_custom_skew_threshold(self):
        stats = aggregate(_records([100, 100, 100, 130]), F, skew_threshold=5)
        assert stats.method is SelectionMethod.MEDIAN
        assert stats.chosen == 100

    def test_zero_count(self):
        stats = aggregate([], F)
        assert (stats.count, stats.mean, stats.median, stats.chosen) == (0, 0, 0, 0)
        assert not stats.has_data

    def test_unavailable_counted_in_total_only(self):
        records = _records([200, None, 220])
        stats = aggregate(records, F)
        assert stats.count == 2
        assert stats.total == 3
        assert stats.unavailable == 1
        assert stats.mean == 210

    def test_directions_are_segregated(self):
        records = _records([250, 250], F) + _records([180, 190], R)
        by_dir = aggregate_all(records)
        assert by_dir[F].chosen == 250
        assert by_dir[R].chosen == 185

    def test_records_without_direction_are_excluded(self):
        records = _records([250], F) + [TruncationRecord("X", None, 10)]
        assert aggregate(records, F).total == 1


class TestHistogram:
    def test_lines_sorted_with_counts(self):
        lines = histogram_lines(_records([240, 230, 240, None]), F)
        assert lines == [
            " 230 bp     | * (1)",
            " 240 bp     | ** (2)",
        ]

    def test_render_has_one_section_per_direction(self):
        records = _records([240, 240], F) + _records([200], R)
        text = render_histogram(aggregate_all(records), records, threshold=20)
        assert "## R1 (Forward) truncation length distribution" in text
        assert "## R2 (Reverse) truncation length distribution" in text
        assert "(Q20)" in text
        assert " 240 bp     | ** (2)" in text
        assert " 200 bp     | * (1)" in text

    def test_render_empty_direction(self):
        records = _records([240], F)
        text = render_histogram(aggregate_all(records), records)
        assert "(no usable cutoffs)" in text

    def test_write_histogram_overwrites(self, tmp_path):
        path = tmp_path / "hist.txt"
        path.write_text("old content\n")
        records = _records([240])
        write_histogram(path, aggregate_all(records), records)
        assert "old content" not in path.read_text()
        assert not (tmp_path / "hist.txt.tmp").exists()


class TestParameterRecord:
    def test_from_stats(self):
        stats = {F: AggregateStats(F, 4, 4, 108, 100, 108), R: AggregateStats(R)}
        record = ParameterRecord.from_stats(stats)
        assert record == ParameterRecord(108, 0)

    def test_round_trip_and_overwrite(self, tmp_path):
        path = tmp_path / "qiime2_trunc_params.txt"
        write_parameter_record(path, ParameterRecord(240, 200))
        write_parameter_record(path, ParameterRecord(230, 190))

        text = path.read_text()
        assert "forwardTruncLen=230" in text
        assert "reverseTruncLen=190" in text
        assert "240" not in text
        assert read_parameter_record(path) == ParameterRecord(230, 190)

    @pytest.mark.parametrize(
        "content",
        [
            "# old\nR1_TRUNC_LEN=250\nR2_TRUNC_LEN=210\n",
            "R1_AVG=250\nR2_AVG=210\n",
        ],
    )
    def test_legacy_keys(self, tmp_path, content):
        path = tmp_path / "params.txt"
        path.write_text(content)
        assert read_parameter_record(path) == ParameterRecord(250, 210)

    def test_missing_key(self, tmp_path):
        path = tmp_path / "params.txt"
        path.write_text("forwardTruncLen=250\n")
        with pytest.raises(QualityReportError, match="reverseTruncLen"):
            read_parameter_record(path)

    def test_bad_value(self, tmp_path):
        path = tmp_path / "params.txt"
        path.write_text("forwardTruncLen=abc\nreverseTruncLen=1\n")
        with pytest.raises(QualityReportError, match="Invalid value"):
            read_parameter_record(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_parameter_record(tmp_path / "nope.txt")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "params.txt"
        path.write_bytes(b"forwardTruncLen=\xff\xfe\nreverseTruncLen=200\n")
        with pytest.raises(QualityReportError, match="Cannot read parameter record"):
            read_parameter_record(path)

    def test_directory_instead_of_file(self, tmp_path):
        with pytest.raises(QualityReportError, match="Cannot read parameter record"):
            read_parameter_record(tmp_path)

    def test_require_rejects_zero(self):
        assert ParameterRecord(250, 200).require() == (250, 200)
        with pytest.raises(AggregationEmptyError, match="reverseTruncLen"):
            ParameterRecord(250, 0).require()


class TestTables:
    def test_records_table(self, tmp_path):
        path = tmp_path / "lengths.tsv"
        records = _records([240, None]) + [TruncationRecord("X", R, 200, "X_R2_fastqc.zip")]
        write_records_table(path, records)

        df = pd.read_csv(path, sep="\t")
        assert list(df.columns) == ["sample_id", "direction", "cutoff", "source"]
        assert len(df) == 3
        assert df["cutoff"].isna().sum() == 1

    def test_summary_table(self, tmp_path):
        path = tmp_path / "summary.tsv"
        records = _records([80, 81, 79, 200])
        write_summary_table(path, aggregate_all(records))

        df = pd.read_csv(path, sep="\t").set_index("direction")
        assert df.loc["forward", "chosen"] == 80
        assert df.loc["forward", "method"] == "median"
        assert df.loc["reverse", "count"] == 0
