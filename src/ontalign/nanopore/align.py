from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

from ..external import (
    PipelineStage,
    PipelineStageFailed,
    cmd_to_str,
    ensure_executable_in_path,
    run_command,
    run_pipeline,
)
from ..models import AlignmentSettings, OutputPlan

logger = logging.getLogger(__name__)


INSTALL_HINTS = {
    "minimap2": (
        "Install minimap2, e.g. 'brew install minimap2'.\n"
        "Ubuntu: sudo apt-get install -y minimap2\n"
        "Conda/mamba: mamba install -c bioconda minimap2"
    ),
    "samtools": (
        "Install samtools, e.g. 'brew install samtools'.\n"
        "Ubuntu: sudo apt-get install -y samtools\n"
        "Conda/mamba: mamba install -c bioconda samtools"
    ),
}


def check_dependencies() -> None:
    """Raise DependencyMissingError unless minimap2 and samtools are on PATH."""
    for exe in ("minimap2", "samtools"):
        ensure_executable_in_path(exe, hint=INSTALL_HINTS[exe])


def build_alignment_commands(
    *,
    reference: str | Path,
    reads: str | Path,
    plan: OutputPlan,
    settings: Optional[AlignmentSettings] = None,
) -> Dict[str, List[str]]:
    """Build minimap2/samtools commands for aligning ONT reads to a reference."""
    settings = settings or AlignmentSettings()

    threads: List[str] = []
    if settings.threads is not None:
        threads = [str(int(settings.threads))]

    minimap2 = ["minimap2", "-a", "-x", settings.preset, "--secondary=no"]
    if threads:
        minimap2 += ["-t"] + threads
    minimap2 += [str(reference), str(reads)]

    view = ["samtools", "view", "-b", "-S", "-"]

    sort = ["samtools", "sort"]
    if threads:
        sort += ["-@"] + threads
    if settings.sort_mem:
        sort += ["-m", str(settings.sort_mem)]
    sort += ["-o", str(plan.bam), "-"]

    index = ["samtools", "index"]
    if threads:
        index += ["-@"] + threads
    index.append(str(plan.bam))

    return {
        "minimap2": minimap2,
        "samtools_view": view,
        "samtools_sort": sort,
        "samtools_index": index,
    }


def remove_partial_outputs(plan: OutputPlan) -> List[Path]:
    removed = []
    for p in plan.files():
        if p.exists():
            p.unlink()
            removed.append(p)
    if removed:
        logger.warning("Removed incomplete outputs: %s", ", ".join(str(p) for p in removed))
    return removed


def align_reads_to_reference(
    *,
    reference: str | Path,
    reads: str | Path,
    plan: OutputPlan,
    settings: Optional[AlignmentSettings] = None,
    dry_run: bool = False,
) -> Dict[str, object]:
    """Align Oxford Nanopore reads to a reference; write SAM + sorted, indexed BAM.

    The chain is ``minimap2 | tee SAM | samtools view | samtools sort``,
    followed by ``samtools index``. Every stage's exit status is checked.

    Parameters
    ----------
    reference:
        Reference FASTA (e.g. a plasmid).
    reads:
        ONT reads, FASTQ or FASTQ.GZ.
    plan:
        Output paths, see :func:`ontalign.naming.plan_outputs`.
    settings:
        Preset/threads/sort memory.
    dry_run:
        If True, return the planned commands without executing.

    Returns
    -------
    dict
        Summary including runtime and executed commands.

    Raises
    ------
    PipelineStageFailed
        If any stage fails. Partial outputs are removed first, as they are
        when the run is interrupted.
    """
    t0 = time.time()
    settings = settings or AlignmentSettings()
    reference = Path(reference)
    reads = Path(reads)

    if not reference.is_file():
        raise FileNotFoundError(f"Reference FASTA not found: {reference}")
    if not reads.is_file():
        raise FileNotFoundError(f"Reads file not found: {reads}")

    cmds = build_alignment_commands(reference=reference, reads=reads, plan=plan, settings=settings)
    summary: Dict[str, object] = {
        "reference": str(reference),
        "reads": str(reads),
        "out_sam": str(plan.sam),
        "out_bam": str(plan.bam),
        "out_bai": str(plan.bai),
        "minimap2_preset": settings.preset,
        "threads": settings.threads,
        "sort_mem": settings.sort_mem,
        "cmd_minimap2": cmds["minimap2"],
        "cmd_samtools_view": cmds["samtools_view"],
        "cmd_samtools_sort": cmds["samtools_sort"],
        "cmd_samtools_index": cmds["samtools_index"],
    }

    if dry_run:
        summary.update({"runtime_seconds": 0.0, "dry_run": True})
        return summary

    stages = [
        PipelineStage("minimap2", cmds["minimap2"]),
        PipelineStage("samtools view", cmds["samtools_view"]),
        PipelineStage("samtools sort", cmds["samtools_sort"]),
    ]

    try:
        logger.info("Aligning with minimap2 (%s); raw SAM -> %s", settings.preset, plan.sam)
        run_pipeline(stages, tap_path=plan.sam)

        logger.info("Indexing BAM: %s", plan.bam)
        cp = run_command(cmds["samtools_index"], check=False)
        if cp.returncode != 0:
            raise PipelineStageFailed(
                "External pipeline failed at stage 'samtools index'.\n\n"
                f"  {cmd_to_str(cmds['samtools_index'])}\n"
                f"  exit={cp.returncode}\n"
                f"  stderr tail: {(cp.stderr or '(empty)').strip()[-3000:]}",
                stage="samtools index",
                cmd=cmds["samtools_index"],
                returncode=cp.returncode,
            )
    except BaseException:
        remove_partial_outputs(plan)
        raise

    summary["runtime_seconds"] = float(time.time() - t0)
    return summary
