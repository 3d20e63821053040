"""ontalign: align Oxford Nanopore reads to a reference with minimap2 + samtools.

Public API is intentionally small; most users should use the CLI:

    ontalign run

which asks for a folder, a reference name and a reads name, then writes
``<ref>_vs_<reads>.sam`` and ``<ref>_vs_<reads>.sorted.bam`` (+ ``.bai``).
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
