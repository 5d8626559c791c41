"""Unified constants for TruncSeeker.

Defaults shared by the configuration layer, the estimator and the CLI.
"""

# ================== Truncation Estimation ==================

# Mean Phred quality below which a read position is considered unusable (Q20)
DEFAULT_QUALITY_THRESHOLD: float = 20.0

# Absolute mean/median gap (bp) above which the median is chosen
DEFAULT_SKEW_THRESHOLD: int = 10

# Read direction markers in file names
DEFAULT_FORWARD_PATTERN: str = r"_R1(?:[_.]|$)"
DEFAULT_REVERSE_PATTERN: str = r"_R2(?:[_.]|$)"


# ================== FastQC Report Layout ==================

FASTQC_DATA_FILE: str = "fastqc_data.txt"
FASTQC_QUALITY_MODULE: str = ">>Per base sequence quality"
FASTQC_MODULE_END: str = ">>END_MODULE"


# ================== Stage Directories & Files ==================

TRIMMED_DIR_NAME: str = "trimmed_sequences"
REPORTS_DIR_NAME: str = "fastqc_reports_trimmed"
ANALYSIS_DIR_NAME: str = "qiime2_analysis"

PARAMS_FILE_NAME: str = "qiime2_trunc_params.txt"
HISTOGRAM_FILE_NAME: str = "truncation_histogram.txt"
RECORDS_TABLE_NAME: str = "truncation_lengths.tsv"
SUMMARY_TABLE_NAME: str = "truncation_summary.tsv"

CHECKPOINT_LEDGER_NAME: str = ".truncseeker_checkpoints.json"

FASTQ_SUFFIXES: tuple = (".fastq.gz", ".fq.gz", ".fastq", ".fq")
