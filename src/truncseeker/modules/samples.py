"""Sample discovery and read-direction inference."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from truncseeker.constants import (
    DEFAULT_FORWARD_PATTERN,
    DEFAULT_REVERSE_PATTERN,
    FASTQ_SUFFIXES,
)
from truncseeker.utils.logging import get_logger

logger = get_logger("samples")


class ReadDirection(str, Enum):
    """Orientation of a read file within a pair."""

    FORWARD = "forward"
    REVERSE = "reverse"

    @property
    def label(self) -> str:
        return "R1 (Forward)" if self is ReadDirection.FORWARD else "R2 (Reverse)"


@dataclass(frozen=True)
class Sample:
    """A paired-end sample: one forward and one reverse read file."""

    sample_id: str
    forward: Path
    reverse: Path


class DirectionMatcher:
    """Classify file names as forward/reverse reads by regex markers."""

    def __init__(
        self,
        forward_pattern: str = DEFAULT_FORWARD_PATTERN,
        reverse_pattern: str = DEFAULT_REVERSE_PATTERN,
    ):
        self.forward = re.compile(forward_pattern)
        self.reverse = re.compile(reverse_pattern)

    def infer(self, name: str) -> Optional[ReadDirection]:
        """Return the direction encoded in ``name`` or None when unknown."""
        if self.forward.search(name):
            return ReadDirection.FORWARD
        if self.reverse.search(name):
            return ReadDirection.REVERSE
        return None

    def sample_id(self, name: str) -> str:
        """Strip the direction marker (and everything after it) from ``name``."""
        direction = self.infer(name)
        if direction is None:
            return strip_fastq_suffix(name)
        pattern = self.forward if direction is ReadDirection.FORWARD else self.reverse
        return name[: pattern.search(name).start()]


def infer_direction(
    name: str,
    forward_pattern: str = DEFAULT_FORWARD_PATTERN,
    reverse_pattern: str = DEFAULT_REVERSE_PATTERN,
) -> Optional[ReadDirection]:
    """Infer the read direction from a file or sample name."""
    return DirectionMatcher(forward_pattern, reverse_pattern).infer(name)


def strip_fastq_suffix(name: str) -> str:
    for suffix in FASTQ_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def is_fastq(path: Path) -> bool:
    return path.is_file() and path.name.endswith(FASTQ_SUFFIXES)


def list_fastq(directory: Path) -> list[Path]:
    """Return FASTQ files directly inside ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if is_fastq(p))


def _index_reads(directory: Path, matcher: DirectionMatcher, direction: ReadDirection) -> Dict[str, Path]:
    """Map sample id -> FASTQ for the files of one direction in ``directory``."""
    reads: Dict[str, Path] = {}
    for fastq in list_fastq(directory):
        if matcher.infer(fastq.name) is not direction:
            continue
        sample_id = matcher.sample_id(fastq.name)
        if sample_id in reads:
            logger.warning(f"Duplicate sample id '{sample_id}' ({fastq.name}); skipping")
            continue
        reads[sample_id] = fastq
    return reads


def discover_samples(
    input_root: Path,
    matcher: Optional[DirectionMatcher] = None,
) -> list[Sample]:
    """Pair forward/reverse FASTQ files under ``input_root`` by sample id.

    Two layouts are recognised: ``R1/`` and ``R2/`` subdirectories, or both
    mates side by side in ``input_root``. A file without its mate is skipped
    with a warning.
    """
    matcher = matcher or DirectionMatcher()
    input_root = Path(input_root)
    split_layout = (input_root / "R1").is_dir()
    forward_dir = input_root / "R1" if split_layout else input_root
    reverse_dir = input_root / "R2" if split_layout else input_root

    forwards = _index_reads(forward_dir, matcher, ReadDirection.FORWARD)
    reverses = _index_reads(reverse_dir, matcher, ReadDirection.REVERSE)

    samples: list[Sample] = []
    for sample_id, forward in forwards.items():
        reverse = reverses.get(sample_id)
        if reverse is None:
            logger.warning(f"Reverse mate not found for {forward.name} in {reverse_dir}; skipping")
            continue
        samples.append(Sample(sample_id=sample_id, forward=forward, reverse=reverse))

    for sample_id, reverse in reverses.items():
        if sample_id not in forwards:
            logger.warning(f"Forward mate not found for {reverse.name} in {forward_dir}; skipping")

    logger.info(f"Discovered {len(samples)} paired samples in {input_root}")
    return samples
