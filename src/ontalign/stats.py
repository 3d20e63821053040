from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import pysam

logger = logging.getLogger(__name__)


def alignment_stats(bam_path: str | Path) -> Dict[str, Any]:
    """Per-contig mapped/unmapped read counts from a sorted, indexed BAM.

    Only the index is read, so this is cheap even for large BAMs.
    """
    with pysam.AlignmentFile(str(bam_path), "rb") as bam:
        contigs = [
            {
                "contig": s.contig,
                "length": bam.get_reference_length(s.contig),
                "mapped": int(s.mapped),
                "unmapped": int(s.unmapped),
            }
            for s in bam.get_index_statistics()
        ]
        unplaced = int(bam.nocoordinate)

    mapped = sum(c["mapped"] for c in contigs)
    unmapped = sum(c["unmapped"] for c in contigs) + unplaced
    total = mapped + unmapped

    return {
        "bam_path": str(bam_path),
        "contigs": contigs,
        "mapped": mapped,
        "unmapped": unmapped,
        "total": total,
        "mapped_fraction": (mapped / total) if total else 0.0,
    }


def format_stats(stats: Dict[str, Any]) -> str:
    lines = [
        f"Mapped reads: {stats['mapped']} / {stats['total']} ({100.0 * stats['mapped_fraction']:.1f}%)",
    ]
    for c in stats["contigs"]:
        lines.append(f"  {c['contig']:20s} len={c['length']:<10d} mapped={c['mapped']}")
    return "\n".join(lines)
