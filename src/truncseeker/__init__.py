"""TruncSeeker: truncation-length estimation and checkpointed amplicon preparation."""

from truncseeker.__version__ import __version__, __description__

__all__ = ["__version__", "__description__"]
