"""Per-sample truncation cutoff estimation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from truncseeker.constants import DEFAULT_QUALITY_THRESHOLD
from truncseeker.modules.quality_profile import QualityProfile
from truncseeker.modules.samples import ReadDirection


class CutoffPolicy(str, Enum):
    """Which position is reported once quality first drops below threshold.

    BEFORE_DROP reports the last position still at or above the threshold;
    AT_DROP reports the first failing position itself.
    """

    BEFORE_DROP = "before_drop"
    AT_DROP = "at_drop"


@dataclass(frozen=True)
class TruncationRecord:
    """Cutoff for one sample and direction; ``cutoff`` None means unavailable."""

    sample_id: str
    direction: Optional[ReadDirection]
    cutoff: Optional[int]
    source: str = ""

    @property
    def available(self) -> bool:
        return self.cutoff is not None


def first_drop(profile: QualityProfile, threshold: float) -> Optional[int]:
    """Return the first position whose mean quality is below ``threshold``."""
    for position, mean in profile.points:
        if mean < threshold:
            return position
    return None


def estimate_cutoff(
    profile: QualityProfile,
    threshold: float = DEFAULT_QUALITY_THRESHOLD,
    policy: CutoffPolicy = CutoffPolicy.BEFORE_DROP,
) -> Optional[int]:
    """Derive the truncation length for ``profile``.

    Returns None for an empty profile and the maximum position when quality
    never drops below ``threshold``. The result is never below 1.
    """
    if profile.is_empty:
        return None

    drop = first_drop(profile, threshold)
    if drop is None:
        cutoff = profile.max_position
    elif CutoffPolicy(policy) is CutoffPolicy.BEFORE_DROP:
        cutoff = drop - 1
    else:
        cutoff = drop
    return max(1, cutoff)


def estimate_record(
    profile: QualityProfile,
    threshold: float = DEFAULT_QUALITY_THRESHOLD,
    policy: CutoffPolicy = CutoffPolicy.BEFORE_DROP,
    source: str = "",
) -> TruncationRecord:
    """Wrap :func:`estimate_cutoff` into a :class:`TruncationRecord`."""
    return TruncationRecord(
        sample_id=profile.sample_id,
        direction=profile.direction,
        cutoff=estimate_cutoff(profile, threshold, policy),
        source=source,
    )
