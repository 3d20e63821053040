"""Environment self-checks.

This module powers the ``ontalign doctor`` CLI command.

Rationale
---------
ontalign itself is a thin driver: the actual work is done by minimap2 and
samtools. For users with minimal computational background, a single command
that pinpoints missing dependencies is often the most helpful UX.
"""

from __future__ import annotations

import logging
import platform
import shutil
from dataclasses import dataclass
from typing import Dict, Optional

from .external import run_command
from .nanopore.align import INSTALL_HINTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    name: str
    ok: bool
    detail: str
    howto: Optional[str] = None


def _which(name: str) -> Optional[str]:
    return shutil.which(name)


def check_python() -> CheckResult:
    v = platform.python_version()
    return CheckResult(name="python", ok=True, detail=f"Python {v}")


def check_pysam() -> CheckResult:
    try:
        import pysam
    except ImportError as e:
        return CheckResult(
            name="pysam",
            ok=False,
            detail=f"not importable: {e}",
            howto="pip install pysam\nConda/mamba: mamba install -c bioconda pysam",
        )

    return CheckResult(name="pysam", ok=True, detail=f"pysam {pysam.__version__}")


def check_executable(name: str, *, howto: Optional[str] = None) -> CheckResult:
    p = _which(name)
    if p is None:
        return CheckResult(name=name, ok=False, detail="not found in PATH", howto=howto)

    # Best effort: show the tool version next to its path.
    cp = run_command([name, "--version"], check=False, capture=True, text=True)
    first = (cp.stdout or "").strip().splitlines()
    if cp.returncode == 0 and first:
        return CheckResult(name=name, ok=True, detail=f"{p} ({first[0]})")
    return CheckResult(name=name, ok=True, detail=p)


def collect_checks() -> Dict[str, CheckResult]:
    """Run all checks and return a mapping name->result."""
    checks: Dict[str, CheckResult] = {}

    checks["python"] = check_python()
    checks["pysam"] = check_pysam()
    for exe in ("minimap2", "samtools"):
        checks[exe] = check_executable(exe, howto=INSTALL_HINTS[exe])

    return checks
