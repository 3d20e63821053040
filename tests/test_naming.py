from pathlib import Path

import pytest

from ontalign.models import AlignmentSettings
from ontalign.naming import plan_outputs, reads_root, reference_root


def test_plan_outputs_example() -> None:
    plan = plan_outputs(Path("/data"), Path("/data/plasmid.fasta"), Path("/data/sample1.fastq.gz"))
    assert plan.sam == Path("/data/plasmid_vs_sample1.sam")
    assert plan.bam == Path("/data/plasmid_vs_sample1.sorted.bam")
    assert plan.bai == Path("/data/plasmid_vs_sample1.sorted.bam.bai")
    assert plan_outputs("/data", "/data/plasmid.fasta", "/data/sample1.fastq.gz") == plan


def test_roots() -> None:
    assert reference_root("a/pUC19.fa") == "pUC19"
    assert reference_root("pUC19.fna") == "pUC19"
    assert reference_root("pUC19.fa.gz") == "pUC19.fa.gz"
    assert reads_root("run.fq.gz") == "run"
    assert reads_root("run.fastq") == "run"
    assert reads_root("run.bam") == "run.bam"


def test_settings_validation() -> None:
    assert AlignmentSettings().preset == "map-ont"
    with pytest.raises(ValueError):
        AlignmentSettings(preset="sr")
    with pytest.raises(ValueError):
        AlignmentSettings(threads=0)
