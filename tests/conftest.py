import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

REF_SEQ = ("ACGTTGCAAGGCTTAACCGGTTAACGTAGCTAGCTTAGGCCAATTGGCCAAT" * 4)[:200]

_FAKE_MINIMAP2 = textwrap.dedent(
    """
    import gzip
    import os
    import sys
    import time

    args = sys.argv[1:]
    if "--version" in args:
        print("2.28-fake")
        sys.exit(0)

    ref, reads = args[-2], args[-1]
    name, seq = None, []
    with open(ref) as f:
        for line in f:
            line = line.strip()
            if line.startswith(">"):
                name = name or line[1:].split()[0]
            elif line:
                seq.append(line)

    opener = gzip.open if reads.endswith(".gz") else open
    with opener(reads, "rt") as f:
        lines = [x.rstrip("\\n") for x in f]

    out = sys.stdout
    out.write("@HD\\tVN:1.6\\tSO:unsorted\\n")
    out.write("@SQ\\tSN:%s\\tLN:%d\\n" % (name, len("".join(seq))))
    out.write("@PG\\tID:minimap2\\tPN:minimap2\\n")
    for i in range(0, len(lines) - 3, 4):
        qname, s, q = lines[i][1:].split()[0], lines[i + 1], lines[i + 3]
        out.write("%s\\t0\\t%s\\t1\\t60\\t%dM\\t*\\t0\\t0\\t%s\\t%s\\n" % (qname, name, len(s), s, q))
    out.flush()
    if os.environ.get("FAKE_MINIMAP2_SLEEP"):
        time.sleep(float(os.environ["FAKE_MINIMAP2_SLEEP"]))
    sys.exit(int(os.environ.get("FAKE_MINIMAP2_EXIT", "0")))
    """
)

_FAKE_SAMTOOLS = textwrap.dedent(
    """
    import os
    import shutil
    import sys
    import tempfile

    import pysam

    cmd, args = sys.argv[1], sys.argv[2:]
    if cmd == "--version":
        print("samtools 1.20-fake")
        sys.exit(0)

    if cmd == "view":
        shutil.copyfileobj(sys.stdin.buffer, sys.stdout.buffer)
        sys.exit(int(os.environ.get("FAKE_SAMTOOLS_VIEW_EXIT", "0")))

    if cmd == "sort":
        out = args[args.index("-o") + 1]
        data = sys.stdin.buffer.read()
        if os.environ.get("FAKE_SAMTOOLS_SORT_EXIT"):
            sys.stderr.write("[bam_sort_core] fake failure\\n")
            sys.exit(int(os.environ["FAKE_SAMTOOLS_SORT_EXIT"]))
        if not data:
            sys.stderr.write("[bam_sort_core] no input\\n")
            sys.exit(1)
        with tempfile.NamedTemporaryFile(suffix=".sam", delete=False) as tmp:
            tmp.write(data)
        try:
            pysam.sort("-o", out, tmp.name)
        finally:
            os.unlink(tmp.name)
        sys.exit(0)

    if cmd == "index":
        if os.environ.get("FAKE_SAMTOOLS_INDEX_EXIT"):
            sys.stderr.write("[bam_index] fake failure\\n")
            sys.exit(int(os.environ["FAKE_SAMTOOLS_INDEX_EXIT"]))
        pysam.index(args[-1])
        sys.exit(0)

    sys.exit(2)
    """
)


def _write_tool(bin_dir: Path, name: str, source: str) -> None:
    script = bin_dir / f"{name}.py"
    script.write_text(source, encoding="utf-8")
    wrapper = bin_dir / name
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding="utf-8")
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def write_fasta(path: Path, contig: str, seq: str) -> Path:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_fastq(path: Path, reads: dict) -> Path:
    lines = []
    for name, seq in reads.items():
        lines += [f"@{name}", seq, "+", "I" * len(seq)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def fake_bin(tmp_path: Path) -> Path:
    """Directory holding fake minimap2/samtools executables."""
    if os.name == "nt":
        pytest.skip("fake executables need a POSIX shell")
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    _write_tool(bin_dir, "minimap2", _FAKE_MINIMAP2)
    _write_tool(bin_dir, "samtools", _FAKE_SAMTOOLS)
    return bin_dir


@pytest.fixture
def ont_folder(tmp_path: Path) -> Path:
    """A folder with plasmid.fasta and sample1.fastq."""
    folder = tmp_path / "run"
    folder.mkdir()
    write_fasta(folder / "plasmid.fasta", "pTEST", REF_SEQ)
    write_fastq(folder / "sample1.fastq", {"read1": REF_SEQ[:80], "read2": REF_SEQ[:120]})
    return folder
