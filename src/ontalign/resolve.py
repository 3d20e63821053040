"""Turn loosely typed folder/file names into concrete paths.

Users paste names straight from a file browser: with or without quotes,
with or without an extension, sometimes with only half of a compound
extension. Resolution is deliberately simple and deterministic:

1. the name exactly as typed,
2. otherwise the bare base name plus each known extension for that kind of
   file, in a fixed order; the first existing file wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

logger = logging.getLogger(__name__)


REFERENCE = "reference"
READS = "reads"

REFERENCE_EXTENSIONS: Tuple[str, ...] = (".fa", ".fasta", ".fna", ".fas")
READS_EXTENSIONS: Tuple[str, ...] = (".fastq", ".fq", ".fastq.gz", ".fq.gz")

_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    REFERENCE: REFERENCE_EXTENSIONS,
    READS: READS_EXTENSIONS,
}

# Stripped in this order, each at most once, whatever the kind.
_KNOWN_SUFFIXES: Tuple[str, ...] = (".gz", ".fa", ".fasta", ".fna", ".fas", ".fastq", ".fq")

_LABELS = {REFERENCE: "reference", READS: "ONT reads"}
_FORMATS = {REFERENCE: "FASTA", READS: "FASTQ"}
_PROMPT_NAMES = {REFERENCE: "Reference name", READS: "ONT reads name"}


class EmptyInputError(ValueError):
    """Raised when a required value was left empty."""


class FolderNotFoundError(FileNotFoundError):
    """Raised when the input folder does not exist."""


class InputFileNotFoundError(FileNotFoundError):
    """Raised when no candidate file exists for a requested name."""

    def __init__(
        self,
        *,
        kind: str,
        raw_name: str,
        folder: Path,
        tried_extensions: Sequence[str],
    ) -> None:
        self.kind = kind
        self.raw_name = raw_name
        self.folder = folder
        self.tried_extensions = tuple(tried_extensions)
        super().__init__(
            f"Could not find {_LABELS[kind]} file for input '{raw_name}' in folder: {folder}\n"
            f"       Tried common {_FORMATS[kind]} extensions ({', '.join(self.tried_extensions)})."
        )


def strip_quotes(text: str) -> str:
    """Remove one layer of straight quotes (Finder 'Copy as Pathname' etc.)."""
    for q in ('"', "'"):
        if text.endswith(q):
            text = text[:-1]
        if text.startswith(q):
            text = text[1:]
    return text


def require_value(value: str, what: str) -> str:
    if not value:
        raise EmptyInputError(f"{what} cannot be empty.")
    return value


def normalize_folder(raw: str) -> Path:
    """Normalize a user-typed folder path and check it exists.

    Quotes are stripped, a leading ``~`` is expanded and the trailing
    separator dropped. The result is absolute.
    """
    text = require_value(strip_quotes(raw.strip()), "Folder path")
    folder = Path(os.path.expanduser(text)).absolute()
    if not folder.is_dir():
        raise FolderNotFoundError(f"Folder does not exist: {folder}")
    return folder


def strip_known_suffixes(name: str) -> str:
    base = name
    for suffix in _KNOWN_SUFFIXES:
        if base.endswith(suffix):
            base = base[: -len(suffix)]
    return base


def _under(folder: Path, name: str) -> Path:
    # A pasted absolute name is still looked up inside the folder.
    return folder / name.lstrip("/" + os.sep)


def candidate_extensions(kind: str) -> Tuple[str, ...]:
    try:
        return _CANDIDATES[kind]
    except KeyError:
        raise ValueError(f"Unknown file kind '{kind}' (expected '{REFERENCE}' or '{READS}')") from None


def resolve_input_file(folder: str | Path, raw_name: str, kind: str) -> Path:
    """Resolve ``raw_name`` inside ``folder`` to an existing file.

    Parameters
    ----------
    folder:
        Directory to search (already normalized).
    raw_name:
        Name as typed by the user; may be quoted and may lack an extension.
    kind:
        ``"reference"`` or ``"reads"``; selects the extensions to try.

    Returns
    -------
    Path
        The first existing match.

    Raises
    ------
    InputFileNotFoundError
        If neither the name as typed nor any candidate extension exists.
    """
    exts = candidate_extensions(kind)
    folder = Path(folder)
    name = require_value(strip_quotes(raw_name.strip()), _PROMPT_NAMES[kind])

    exact = _under(folder, name)
    if exact.is_file():
        logger.debug("Resolved %s '%s' verbatim: %s", kind, raw_name, exact)
        return exact

    base = strip_known_suffixes(name)
    for ext in exts:
        cand = _under(folder, f"{base}{ext}")
        if cand.is_file():
            logger.debug("Resolved %s '%s' via extension %s: %s", kind, raw_name, ext, cand)
            return cand

    raise InputFileNotFoundError(kind=kind, raw_name=raw_name, folder=folder, tried_extensions=exts)


def preview_folder(folder: Path, limit: int = 50) -> Tuple[List[str], int]:
    """Sorted names of the entries in ``folder`` (at most ``limit``) and how many were left out."""
    names = sorted(p.name for p in folder.iterdir())
    return names[:limit], max(0, len(names) - limit)
