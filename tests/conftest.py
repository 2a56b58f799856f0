"""Pytest configuration and fixtures."""

import os
from pathlib import Path
from typing import Dict, List, Tuple

import pytest
from unittest.mock import patch

from annotation_platform.core.config import AnnotationDBConfig, BuildOptions, get_pragma_preset
from annotation_platform.core.database import AnnotationDatabaseManager


def gtf_line(seqid: str, featuretype: str, start: int, end: int, strand: str, attributes: Dict[str, str]) -> str:
    frame = "0" if featuretype == "CDS" else "."
    attrs = " ".join(f'{key} "{value}";' for key, value in attributes.items())
    return "\t".join([seqid, "HAVANA", featuretype, str(start), str(end), ".", strand, frame, attrs])


def _gene(gene_id: str, name: str, gene_type: str) -> Dict[str, str]:
    return {"gene_id": gene_id, "gene_type": gene_type, "gene_name": name}


def _tx(gene: Dict[str, str], transcript_id: str, transcript_type: str) -> Dict[str, str]:
    return {**gene, "transcript_id": transcript_id, "transcript_type": transcript_type}


def build_gencode_style_gtf() -> str:
    """
    Three genes laid out like a GENCODE v19 GTF:

    ALPHA (chr1, +): ENST01 coding with 5'/3' UTRs, ENST02 non-coding.
    BETA  (chr1, -): ENST03 coding with UTRs on both ends.
    GAMMA (chr2, +): ENST04 single-exon lincRNA.
    """
    alpha = _gene("ENSG01", "ALPHA", "protein_coding")
    beta = _gene("ENSG02", "BETA", "protein_coding")
    gamma = _gene("ENSG03", "GAMMA", "lincRNA")
    t1 = _tx(alpha, "ENST01", "protein_coding")
    t2 = _tx(alpha, "ENST02", "processed_transcript")
    t3 = _tx(beta, "ENST03", "protein_coding")
    t4 = _tx(gamma, "ENST04", "lincRNA")

    rows: List[Tuple] = [
        ("chr1", "gene", 1000, 5000, "+", alpha),
        ("chr1", "transcript", 1000, 5000, "+", t1),
        ("chr1", "exon", 1000, 1500, "+", {**t1, "exon_number": "1"}),
        ("chr1", "UTR", 1000, 1199, "+", t1),
        ("chr1", "CDS", 1200, 1500, "+", {**t1, "exon_number": "1"}),
        ("chr1", "start_codon", 1200, 1202, "+", {**t1, "exon_number": "1"}),
        ("chr1", "exon", 2000, 2500, "+", {**t1, "exon_number": "2"}),
        ("chr1", "CDS", 2000, 2500, "+", {**t1, "exon_number": "2"}),
        ("chr1", "exon", 4000, 5000, "+", {**t1, "exon_number": "3"}),
        ("chr1", "CDS", 4000, 4299, "+", {**t1, "exon_number": "3"}),
        ("chr1", "UTR", 4300, 5000, "+", t1),
        ("chr1", "transcript", 1000, 2500, "+", t2),
        ("chr1", "exon", 1000, 1500, "+", {**t2, "exon_number": "1"}),
        ("chr1", "exon", 2000, 2500, "+", {**t2, "exon_number": "2"}),
        ("chr1", "gene", 8000, 9000, "-", beta),
        ("chr1", "transcript", 8000, 9000, "-", t3),
        ("chr1", "exon", 8600, 9000, "-", {**t3, "exon_number": "1"}),
        ("chr1", "UTR", 8801, 9000, "-", t3),
        ("chr1", "CDS", 8600, 8800, "-", {**t3, "exon_number": "1"}),
        ("chr1", "exon", 8000, 8400, "-", {**t3, "exon_number": "2"}),
        ("chr1", "CDS", 8200, 8400, "-", {**t3, "exon_number": "2"}),
        ("chr1", "UTR", 8000, 8199, "-", t3),
        ("chr2", "gene", 100, 600, "+", gamma),
        ("chr2", "transcript", 100, 600, "+", t4),
        ("chr2", "exon", 100, 600, "+", {**t4, "exon_number": "1"}),
    ]
    return "\n".join(gtf_line(*row) for row in rows) + "\n"


GENCODE_STYLE_GTF = build_gencode_style_gtf()


@pytest.fixture
def gtf_text() -> str:
    return GENCODE_STYLE_GTF


@pytest.fixture
def gtf_file(tmp_path: Path) -> Path:
    """Write the sample annotation to a .gtf file."""
    path = tmp_path / "sample.annotation.gtf"
    path.write_text(GENCODE_STYLE_GTF)
    return path


@pytest.fixture
def memory_manager(gtf_text: str):
    """An AnnotationDatabaseManager holding an in-memory database built from the sample GTF."""
    manager = AnnotationDatabaseManager(AnnotationDBConfig(db_path=":memory:", pragmas=get_pragma_preset("default")))
    manager.build(gtf_text, BuildOptions(from_string=True))
    yield manager
    manager.close()


@pytest.fixture
def db(memory_manager):
    """The gffutils FeatureDB behind memory_manager."""
    return memory_manager.get_db()


@pytest.fixture(autouse=True)
def clean_environment():
    """Keep ANNOTATION_* variables from the developer's shell out of the tests."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("ANNOTATION_")}
    with patch.dict(os.environ, env, clear=True):
        yield
