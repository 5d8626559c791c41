"""Version information for TruncSeeker."""

__version__ = "0.3.0"
__description__ = "Quality-driven truncation estimation and checkpointed QIIME 2 amplicon preparation"
