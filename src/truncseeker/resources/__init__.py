"""Resource files and configuration templates."""


def get_default_config() -> str:
    """Return default configuration YAML content."""
    return """# TruncSeeker Configuration File

# Directories (can be overridden by CLI arguments)
input_root: ~
output_root: "truncseeker_output"

# Truncation estimation
threshold: 20          # mean Phred quality cutoff (Q20)
skew_threshold: 10     # |median - mean| (bp) above which the median is used
cutoff_policy: "before_drop"   # before_drop | at_drop
forward_pattern: '_R1(?:[_.]|$)'   # matched against file and report names
reverse_pattern: '_R2(?:[_.]|$)'

# Analysis inputs
manifest: ~            # generated from trimmed reads when unset
metadata: ~
classifier: ~          # e.g. silva-138-99-nb-classifier.qza
sampling_depth: 0      # > 0 (with metadata) enables core diversity metrics

# Runtime settings
runtime:
  log_level: "WARNING"
  log_file: ~
  strict_checkpoints: false
  fingerprint: "stat"  # stat | sha256
  enable_progress: true

# Performance settings
performance:
  threads: 4

# External tool parameters
tools:
  cutadapt:
    forward_primer: "GTGCCAGCMGCCGCGGTAA"
    reverse_primer: "GGACTACHVGGGTWTCTAAT"
    minimum_length: 1
    additional_args: ""
  fastqc:
    additional_args: ""
  qiime:
    command: ["qiime"]
    trim_left_f: 0
    trim_left_r: 0
"""


__all__ = ["get_default_config"]
