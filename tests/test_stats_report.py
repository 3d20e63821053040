from pathlib import Path

import pysam

from ontalign.naming import plan_outputs
from ontalign.nanopore import align_reads_to_reference
from ontalign.report import render_report
from ontalign.stats import alignment_stats, format_stats


def _make_bam(tmp_path: Path) -> Path:
    seq = "ACGT" * 10
    qual = "I" * len(seq)
    sam = tmp_path / "toy.sam"
    sam.write_text(
        "@HD\tVN:1.6\tSO:unsorted\n"
        "@SQ\tSN:pTEST\tLN:200\n"
        f"r1\t0\tpTEST\t1\t60\t40M\t*\t0\t0\t{seq}\t{qual}\n"
        f"r2\t16\tpTEST\t11\t60\t40M\t*\t0\t0\t{seq}\t{qual}\n"
        f"r3\t4\t*\t0\t0\t*\t*\t0\t0\t{seq}\t{qual}\n",
        encoding="utf-8",
    )
    bam = tmp_path / "toy.sorted.bam"
    pysam.sort("-o", str(bam), str(sam))
    pysam.index(str(bam))
    return bam


def test_alignment_stats(tmp_path: Path) -> None:
    stats = alignment_stats(_make_bam(tmp_path))
    assert stats["mapped"] == 2
    assert stats["unmapped"] == 1
    assert stats["total"] == 3
    assert stats["contigs"][0]["contig"] == "pTEST"
    assert stats["contigs"][0]["length"] == 200
    assert "Mapped reads: 2 / 3" in format_stats(stats)


def test_render_report(tmp_path: Path) -> None:
    ref, reads = tmp_path / "plasmid.fa", tmp_path / "s1.fastq"
    ref.write_text(">pTEST\nACGT\n", encoding="utf-8")
    reads.write_text("@r\nACGT\n+\nIIII\n", encoding="utf-8")
    plan = plan_outputs(tmp_path, ref, reads)
    summary = align_reads_to_reference(reference=ref, reads=reads, plan=plan, dry_run=True)

    stats = alignment_stats(_make_bam(tmp_path))
    out = render_report(out_path=tmp_path / "report" / "index.html", version="0.0", summary=summary, stats=stats)

    html = out.read_text(encoding="utf-8")
    assert "plasmid_vs_s1.sorted.bam" in html
    assert "pTEST" in html
    assert "--secondary=no" in html
