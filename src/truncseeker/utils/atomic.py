"""Atomic artifact writing.

Checkpointing only looks at whether an artifact exists, so nothing may appear
at a final artifact path until it is complete. Writers produce a partial file
next to the target and rename it into place once they succeed.
"""

from __future__ import annotations

import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from truncseeker.constants import FASTQ_SUFFIXES

PARTIAL_TAG = ".partial"

# Multi-part extensions that tools inspect to pick their output format
_COMPOUND_SUFFIXES = FASTQ_SUFFIXES + (".tar.gz",)


def partial_path(path: Path) -> Path:
    """Return the in-progress path for ``path``, keeping its extension.

    ``feature_table.qza`` becomes ``feature_table.partial.qza`` and
    ``S1_R1_trimmed.fastq.gz`` becomes ``S1_R1_trimmed.partial.fastq.gz``
    so tools that infer formats from the extension keep working.
    """
    path = Path(path)
    name = path.name
    for suffix in _COMPOUND_SUFFIXES:
        if name.endswith(suffix):
            return path.with_name(name[: -len(suffix)] + PARTIAL_TAG + suffix)
    if path.suffix:
        return path.with_name(path.stem + PARTIAL_TAG + path.suffix)
    return path.with_name(name + PARTIAL_TAG)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists() or path.is_symlink():
        path.unlink()


@contextmanager
def atomic_outputs(targets: Sequence[Path]) -> Iterator[list[Path]]:
    """Yield partial paths for ``targets``; move them into place on success.

    Stale partials from an interrupted run are removed first. If the body
    raises, every partial is deleted and the final paths are left untouched.
    """
    finals = [Path(t) for t in targets]
    partials = [partial_path(t) for t in finals]
    for final, partial in zip(finals, partials):
        final.parent.mkdir(parents=True, exist_ok=True)
        _remove(partial)

    try:
        yield partials
    except BaseException:
        for partial in partials:
            _remove(partial)
        raise

    missing = [p for p in partials if not p.exists()]
    if missing:
        for partial in partials:
            _remove(partial)
        raise FileNotFoundError(
            "Expected output(s) were not produced: " + ", ".join(str(p) for p in missing)
        )

    for final, partial in zip(finals, partials):
        if final.is_dir() and not final.is_symlink():
            shutil.rmtree(final)
        os.replace(partial, final)


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file and ``os.replace``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_name(path.name + ".tmp")
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
    finally:
        if temp_file.exists():
            temp_file.unlink()
