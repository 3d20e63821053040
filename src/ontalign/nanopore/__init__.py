"""Nanopore alignment wrappers.

Aligns Oxford Nanopore reads (FASTQ) to a small reference such as a plasmid
with minimap2, and produces a SAM plus a sorted, indexed BAM with samtools.
Nothing here reimplements alignment; the code only drives the external tools
and makes their failures visible.
"""

from __future__ import annotations

__all__ = [
    "align_reads_to_reference",
    "build_alignment_commands",
    "check_dependencies",
]

from .align import align_reads_to_reference, build_alignment_commands, check_dependencies
