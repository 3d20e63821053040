from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


SUPPORTED_PRESETS = {
    # Traditional ONT noisy long reads.
    "map-ont",
    # Designed for accurate long reads (e.g., Q20+ ONT, Dorado SUP).
    "lr:hq",
    "lr:hqae",
}


@dataclass(frozen=True)
class OutputPlan:
    """Output files derived from a reference/reads pair.

    Attributes
    ----------
    folder:
        Directory the outputs are written into (the input folder).
    sam:
        Raw minimap2 output, tee'd off before BAM conversion.
    bam:
        Coordinate-sorted BAM.
    """

    folder: Path
    sam: Path
    bam: Path

    @property
    def bai(self) -> Path:
        return self.bam.with_name(self.bam.name + ".bai")

    def files(self) -> list[Path]:
        return [self.sam, self.bam, self.bai]


@dataclass(frozen=True)
class AlignmentSettings:
    """Tunables passed through to minimap2/samtools."""

    preset: str = "map-ont"
    threads: Optional[int] = None
    sort_mem: Optional[str] = None  # samtools sort -m, e.g. '2G'

    def __post_init__(self) -> None:
        if self.preset not in SUPPORTED_PRESETS:
            raise ValueError(
                f"Unsupported minimap2 preset='{self.preset}'. Supported: {sorted(SUPPORTED_PRESETS)}"
            )
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"threads must be >= 1 (got {self.threads})")
