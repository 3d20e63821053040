"""Helpers for running external commands (minimap2/samtools).

Design goals
------------
- Fail fast with actionable error messages.
- Capture stderr for debugging.
- Never let an early pipeline stage fail silently behind a later one.

This package intentionally *does not* vendor any bioinformatics tooling.
Alignment, SAM/BAM conversion, sorting and indexing are delegated to the
external tools; the wrappers here only start them and check how they exited.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import signal
import subprocess
import tempfile
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, List, Mapping, Optional, Sequence, Set

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16
_SIGPIPE = getattr(signal, "SIGPIPE", None)


class ExternalCommandError(RuntimeError):
    """Raised when an external command fails."""

    def __init__(
        self,
        message: str,
        *,
        cmd: Sequence[str],
        returncode: int,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.cmd = list(cmd)
        self.returncode = int(returncode)
        self.stdout = stdout
        self.stderr = stderr


class PipelineStageFailed(ExternalCommandError):
    """Raised when one stage of a streaming pipeline exits non-zero."""

    def __init__(self, message: str, *, stage: str, cmd: Sequence[str], returncode: int) -> None:
        super().__init__(message, cmd=cmd, returncode=returncode)
        self.stage = stage


class DependencyMissingError(FileNotFoundError):
    """Raised when a required executable is not on PATH."""

    def __init__(self, message: str, *, tool: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool = tool
        self.hint = hint


@dataclass(frozen=True)
class PipelineStage:
    name: str
    cmd: Sequence[str]


def cmd_to_str(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(x)) for x in cmd)


def ensure_executable_in_path(exe: str, *, hint: Optional[str] = None) -> None:
    """Ensure an executable exists in PATH.

    Parameters
    ----------
    exe:
        Name of the executable to find.
    hint:
        Optional message shown if the executable is missing.
    """
    from shutil import which

    if which(exe) is None:
        msg = f"{exe} not found in PATH."
        if hint:
            msg += "\n\n" + hint
        raise DependencyMissingError(msg, tool=exe, hint=hint)


def _merge_env(env: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
    if env is None:
        return None
    merged = dict(os.environ)
    merged.update({str(k): str(v) for k, v in env.items()})
    return merged


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
    check: bool = True,
    capture: bool = True,
    text: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command and return the CompletedProcess.

    If ``check`` is True, raise ``ExternalCommandError`` on non-zero exit.

    Notes
    -----
    - We default to capturing stdout+stderr to improve error messages.
    - For streaming chains (e.g. minimap2 | samtools view | samtools sort),
      use :func:`run_pipeline` instead.
    """
    if cwd is not None:
        cwd = str(Path(cwd))

    logger.debug("Running command: %s", cmd_to_str(cmd))

    cp = subprocess.run(
        list(map(str, cmd)),
        cwd=cwd,
        env=_merge_env(env),
        check=False,
        stdout=subprocess.PIPE if capture else None,
        stderr=subprocess.PIPE if capture else None,
        text=text,
    )

    if check and cp.returncode != 0:
        raise ExternalCommandError(
            message=textwrap.dedent(
                f"""
                External command failed (exit code {cp.returncode}).

                Command:
                  {cmd_to_str(cmd)}

                STDERR (tail):
                  {(_tail(cp.stderr) if isinstance(cp.stderr, str) else str(cp.stderr))}
                """
            ).strip(),
            cmd=cmd,
            returncode=cp.returncode,
            stdout=cp.stdout if isinstance(cp.stdout, str) else None,
            stderr=cp.stderr if isinstance(cp.stderr, str) else None,
        )

    return cp


def _tail(s: Optional[str], n: int = 3000) -> str:
    if not s:
        return "(empty)"
    s = str(s)
    if len(s) <= n:
        return s
    return "..." + s[-n:]


def _tail_bytes(b: Optional[bytes], n: int = 3000) -> str:
    if not b:
        return "(empty)"
    return _tail(b.decode("utf-8", errors="replace"), n=n)


def _tee(src: IO[bytes], tap_path: Path, sink: Optional[IO[bytes]]) -> bool:
    """Copy ``src`` into ``tap_path`` and ``sink``; False if the sink went away."""
    with open(tap_path, "wb") as tap:
        while True:
            chunk = src.read1(_CHUNK_SIZE)
            if not chunk:
                break
            tap.write(chunk)
            tap.flush()
            if sink is None:
                continue
            try:
                sink.write(chunk)
                sink.flush()
            except BrokenPipeError:
                with contextlib.suppress(BrokenPipeError):
                    sink.close()
                return False

    if sink is not None:
        try:
            sink.close()
        except BrokenPipeError:
            return False
    return True


def _read_back(fh: IO[bytes]) -> bytes:
    fh.seek(0)
    return fh.read()


def _blame(procs: Sequence[subprocess.Popen], killed: Set[int]) -> Optional[int]:
    """Index of the stage responsible for a failed pipeline, if any failed."""
    failed = [i for i, p in enumerate(procs) if p.returncode != 0]
    if not failed:
        return None
    primary = [
        i for i in failed if i not in killed and (_SIGPIPE is None or procs[i].returncode != -_SIGPIPE)
    ]
    return (primary or failed)[0]


def run_pipeline(
    stages: Sequence[PipelineStage],
    *,
    tap_path: Optional[str | Path] = None,
    cwd: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> List[subprocess.CompletedProcess]:
    """Run ``stage0 | stage1 | ... | stageN`` and check every stage's exit.

    Parameters
    ----------
    stages:
        Commands connected stdout -> stdin, in order.
    tap_path:
        If given, the output of the first stage is also written to this file
        (the equivalent of ``stage0 | tee tap_path | stage1 ...``).

    Returns
    -------
    list of CompletedProcess
        One per stage; stderr (and stdout of the last stage) as bytes.

    Raises
    ------
    PipelineStageFailed
        If any stage exits non-zero. The first responsible stage is named;
        stages that only died because a downstream reader went away are
        not blamed while another stage failed.
    """
    if not stages:
        raise ValueError("At least one pipeline stage is required")

    if cwd is not None:
        cwd = str(Path(cwd))
    env_merged = _merge_env(env)
    tap = Path(tap_path) if tap_path is not None else None

    logger.debug(
        "Running pipeline: %s%s",
        " | ".join(cmd_to_str(s.cmd) for s in stages),
        f" (tee -> {tap})" if tap is not None else "",
    )

    err_files = [tempfile.TemporaryFile() for _ in stages]
    out_file = tempfile.TemporaryFile()
    procs: List[subprocess.Popen] = []
    killed: Set[int] = set()

    try:
        last = len(stages) - 1
        for i, stage in enumerate(stages):
            if i == 0:
                stdin = None
            elif i == 1 and tap is not None:
                stdin = subprocess.PIPE
            else:
                stdin = procs[-1].stdout

            p = subprocess.Popen(
                list(map(str, stage.cmd)),
                cwd=cwd,
                env=env_merged,
                stdin=stdin,
                stdout=out_file if i == last and not (i == 0 and tap is not None) else subprocess.PIPE,
                stderr=err_files[i],
            )
            if i > 0 and stdin != subprocess.PIPE:
                procs[-1].stdout.close()  # allow upstream to receive SIGPIPE if p exits
            procs.append(p)

        if tap is not None:
            sink = procs[1].stdin if len(procs) > 1 else None
            if not _tee(procs[0].stdout, tap, sink):
                logger.debug("Downstream of '%s' closed early; terminating it.", stages[0].name)
                procs[0].terminate()
                killed.add(0)
            procs[0].stdout.close()

        for p in procs:
            p.wait()
    except BaseException:
        for p in procs:
            if p.stdout is not None:
                p.stdout.close()
            if p.poll() is None:
                p.kill()
        for p in procs:
            p.wait()
        raise
    finally:
        results = [
            subprocess.CompletedProcess(
                args=list(stage.cmd),
                returncode=p.returncode,
                stdout=None,
                stderr=_read_back(err_files[i]),
            )
            for i, (stage, p) in enumerate(zip(stages, procs))
        ]
        if results and len(results) == len(stages):
            results[-1].stdout = _read_back(out_file)
        for fh in err_files + [out_file]:
            fh.close()

    culprit = _blame(procs, killed)
    if culprit is not None:
        lines = ["External pipeline failed at stage '%s'." % stages[culprit].name, ""]
        for stage, cp in zip(stages, results):
            lines.append(f"{stage.name}:")
            lines.append(f"  {cmd_to_str(stage.cmd)}")
            lines.append(f"  exit={cp.returncode}")
            lines.append(f"  stderr tail: {_tail_bytes(cp.stderr)}")
        raise PipelineStageFailed(
            "\n".join(lines),
            stage=stages[culprit].name,
            cmd=stages[culprit].cmd,
            returncode=procs[culprit].returncode,
        )

    return results
