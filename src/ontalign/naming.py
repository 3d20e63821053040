from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .models import OutputPlan
from .resolve import REFERENCE_EXTENSIONS


def _strip_first(name: str, suffixes: Sequence[str]) -> str:
    for suffix in suffixes:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def reference_root(path: str | Path) -> str:
    return _strip_first(Path(path).name, REFERENCE_EXTENSIONS)


def reads_root(path: str | Path) -> str:
    name = _strip_first(Path(path).name, (".gz",))
    return _strip_first(name, (".fastq", ".fq"))


def plan_outputs(folder: str | Path, reference: str | Path, reads: str | Path) -> OutputPlan:
    """Derive ``<ref>_vs_<reads>.sam`` / ``.sorted.bam`` (+ ``.bai``) in ``folder``."""
    folder = Path(folder)
    stem = f"{reference_root(reference)}_vs_{reads_root(reads)}"
    return OutputPlan(
        folder=folder,
        sam=folder / f"{stem}.sam",
        bam=folder / f"{stem}.sorted.bam",
    )
