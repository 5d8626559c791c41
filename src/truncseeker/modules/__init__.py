"""TruncSeeker analysis modules.

- samples          -> paired FASTQ discovery, read-direction inference
- quality_profile  -> FastQC report parsing
- truncation       -> per-profile cutoff estimation
- trunc_stats      -> per-direction aggregation, histogram, parameter record
- estimator        -> the end-to-end estimation run
"""
