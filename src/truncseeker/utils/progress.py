"""Progress helpers (tqdm integration)."""

from __future__ import annotations

from typing import Iterable, TypeVar, Iterator, Optional

from tqdm import tqdm

T = TypeVar("T")


def iter_progress(
    iterable: Iterable[T],
    total: Optional[int] = None,
    desc: Optional[str] = None,
    enabled: bool = True,
) -> Iterator[T]:
    """Wrap iterable with tqdm when enabled, else return it as-is."""
    if not enabled:
        return iter(iterable)

    formatted_desc = f"· {desc:<12} " if desc else ""
    return iter(
        tqdm(
            iterable,
            total=total,
            desc=formatted_desc,
            bar_format="{desc}: {percentage:3.0f}%|{bar:30}| {n_fmt}/{total_fmt}",
            ncols=80,
        )
    )
