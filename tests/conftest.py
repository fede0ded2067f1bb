"""Pytest configuration and shared fixtures for splicelens tests.

Fixtures are organized by category:

- Genome fixtures: a small synthetic genome, in memory and as FASTA
- Annotation fixtures: reference exons, ExonAnnotation and GTF files
- Event fixtures: rMATS-style tables and events
- ORF table fixtures: factories for hand-written ORF tables

The synthetic gene g1 (tx1, chr1, + strand) has three exons:

    E1 [0, 30)     ATG + GCT x 9
    E2 [100, 130)  GCT x 10
    E3 [200, 290)  GCT x 5 + TAA + C x 72

so the full transcript carries a 78 nt ORF (25 aa) and skipping E2
leaves a 48 nt ORF (15 aa). Gene g2 (tx2) is the same transcript on the
minus strand of chr2, which is the reverse complement of chr1.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pandas as pd
import pytest

from splicelens.core.annotation import ExonAnnotation
from splicelens.core.models import Exon
from splicelens.io.fasta import InMemoryGenome
from splicelens.utils.sequences import reverse_complement

# =============================================================================
# Sequence Constants
# =============================================================================

EXON1 = "ATG" + "GCT" * 9
EXON2 = "GCT" * 10
EXON3 = "GCT" * 5 + "TAA" + "C" * 72
INTRON = "T" * 70

CHR1 = EXON1 + INTRON + EXON2 + INTRON + EXON3 + "T" * 10
CHR2 = reverse_complement(CHR1)

FULL_PROTEIN = "M" + "A" * 24
SKIPPED_PROTEIN = "M" + "A" * 14


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# =============================================================================
# Genome Fixtures
# =============================================================================


@pytest.fixture
def genome_sequences() -> dict[str, str]:
    """Sequences of the synthetic genome."""
    return {"chr1": CHR1, "chr2": CHR2}


@pytest.fixture
def genome(genome_sequences: dict[str, str]) -> InMemoryGenome:
    """In-memory synthetic genome."""
    return InMemoryGenome(genome_sequences)


@pytest.fixture
def synthetic_fasta(tmp_path: Path, genome_sequences: dict[str, str]) -> Path:
    """The synthetic genome written as FASTA with 60 bp lines."""
    fasta_path = tmp_path / "genome.fa"
    with open(fasta_path, "w") as f:
        for seqid, seq in genome_sequences.items():
            f.write(f">{seqid}\n")
            for i in range(0, len(seq), 60):
                f.write(seq[i : i + 60] + "\n")
    return fasta_path


# =============================================================================
# Annotation Fixtures
# =============================================================================


def _exon(seqid, start, end, strand, tx, gene, number):
    return Exon(
        seqid=seqid,
        start=start,
        end=end,
        strand=strand,
        transcript_id=tx,
        gene_id=gene,
        gene_name=gene.upper(),
        exon_number=number,
        transcript_type="protein_coding",
    )


@pytest.fixture
def reference_exons() -> list[Exon]:
    """Exons of tx1 (chr1, +) and tx2 (chr2, -)."""
    return [
        _exon("chr1", 0, 30, "+", "tx1", "g1", 1),
        _exon("chr1", 100, 130, "+", "tx1", "g1", 2),
        _exon("chr1", 200, 290, "+", "tx1", "g1", 3),
        _exon("chr2", 270, 300, "-", "tx2", "g2", 1),
        _exon("chr2", 170, 200, "-", "tx2", "g2", 2),
        _exon("chr2", 10, 100, "-", "tx2", "g2", 3),
    ]


@pytest.fixture
def annotation(reference_exons: list[Exon]) -> ExonAnnotation:
    """ExonAnnotation over the synthetic transcripts."""
    return ExonAnnotation(reference_exons)


@pytest.fixture
def annotation_gtf(tmp_path: Path, reference_exons: list[Exon]) -> Path:
    """The synthetic annotation as GTF, with a gene line to be ignored."""
    gtf_path = tmp_path / "annotation.gtf"
    lines = ["#!genome-build synthetic"]
    lines.append('chr1\ttest\tgene\t1\t290\t.\t+\t.\tgene_id "g1"; gene_name "G1";')
    for exon in reference_exons:
        attributes = (
            f'gene_id "{exon.gene_id}"; transcript_id "{exon.transcript_id}"; '
            f'gene_name "{exon.gene_name}"; transcript_type "protein_coding"; '
            f"exon_number {exon.exon_number};"
        )
        lines.append(
            f"{exon.seqid}\ttest\texon\t{exon.start + 1}\t{exon.end}\t.\t"
            f"{exon.strand}\t.\t{attributes}"
        )
    gtf_path.write_text("\n".join(lines) + "\n")
    return gtf_path


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def rmats_se_table() -> pd.DataFrame:
    """rMATS SE table: E2 of tx1 (significant) and E2 of tx2 (not)."""
    return pd.DataFrame(
        {
            "ID": [1, 2],
            "GeneID": ['"g1"', '"g2"'],
            "geneSymbol": ['"G1"', '"G2"'],
            "chr": ["chr1", "chr2"],
            "strand": ["+", "-"],
            "exonStart_0base": [100, 170],
            "exonEnd": [130, 200],
            "upstreamES": [0, 270],
            "upstreamEE": [30, 300],
            "downstreamES": [200, 10],
            "downstreamEE": [290, 100],
            "PValue": [0.0001, 0.5],
            "FDR": [0.001, 0.6],
            "IncLevelDifference": [0.3, -0.05],
        }
    )


@pytest.fixture
def rmats_se_file(tmp_path: Path, rmats_se_table: pd.DataFrame) -> Path:
    """The rMATS SE table written to disk."""
    path = tmp_path / "SE.MATS.JC.txt"
    rmats_se_table.to_csv(path, sep="\t", index=False)
    return path


# =============================================================================
# ORF Table Fixtures
# =============================================================================


@pytest.fixture
def orf_table() -> Callable[..., pd.DataFrame]:
    """Factory for ORF tables shaped like ``orfs_to_dataframe`` output.

    Each row is a dict; missing columns get defaults derived from
    ``orf_sequence``.
    """

    def make(rows: list[dict]) -> pd.DataFrame:
        records = []
        for row in rows:
            sequence = row.get("orf_sequence")
            length = (len(sequence) + 1) * 3 if sequence is not None else None
            record = {
                "id": row["id"],
                "gene_id": row.get("gene_id", "g1"),
                "frame": row.get("frame", 0 if sequence is not None else None),
                "orf_sequence": sequence,
                "orf_length": row.get("orf_length", length),
                "utr5_length": row.get("utr5_length", 0 if sequence is not None else None),
                "utr3_length": row.get("utr3_length", 10 if sequence is not None else None),
                "nmd_score": row.get("nmd_score", 0.0 if sequence is not None else None),
            }
            records.append(record)
        df = pd.DataFrame(records)
        for column in ("frame", "orf_length", "utr5_length", "utr3_length"):
            df[column] = df[column].astype("Int64")
        df["nmd_score"] = df["nmd_score"].astype("Float64")
        return df

    return make
