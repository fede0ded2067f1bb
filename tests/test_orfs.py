"""Unit tests for splicelens.orfs.engine and splicelens.orfs.uorfs."""

import pandas as pd
import pytest

from splicelens.config import NmdConfig, OrfConfig
from splicelens.core.annotation import ExonAnnotation
from splicelens.core.models import Exon, Isoform
from splicelens.io.fasta import InMemoryGenome
from splicelens.orfs.engine import (
    OrfCandidate,
    OrfFinder,
    OrfRecord,
    find_candidates,
    get_orfs,
    orfs_to_dataframe,
    uorfs_to_dataframe,
)
from splicelens.orfs.uorfs import find_uorfs, select_for_uorf_search

from conftest import FULL_PROTEIN

# uORF "ATG TAA", then the main ORF in frame 1, then a 3'UTR
UORF_TRANSCRIPT = "ATGTAA" + "C" + "ATG" + "GCT" * 10 + "TAA" + "C" * 20


def isoform_from(lengths: list[int], transcript_id: str = "iso1", gene_id: str = "g1") -> Isoform:
    """Isoform on chr1 with exons of the given lengths, separated by 100 nt."""
    exons = []
    position = 0
    for number, length in enumerate(lengths, 1):
        exon = Exon("chr1", position, position + length, "+", transcript_id, exon_number=number)
        exons.append(exon)
        position += length + 100
    return Isoform(transcript_id=transcript_id, exons=exons, set_label="test", gene_id=gene_id)


def genome_for(sequence: str, lengths: list[int]) -> InMemoryGenome:
    """Genome whose exons (laid out like ``isoform_from``) spell ``sequence``."""
    chromosome = ""
    offset = 0
    for length in lengths:
        chromosome += sequence[offset : offset + length] + "N" * 100
        offset += length
    return InMemoryGenome({"chr1": chromosome})


# =============================================================================
# Candidate Scanning
# =============================================================================


class TestFindCandidates:
    """Tests for find_candidates."""

    def test_simple_orf(self) -> None:
        """Test a start-stop run in frame 0."""
        assert find_candidates("ATGAAATAA") == [OrfCandidate(0, 0, 9, True)]

    def test_no_stop(self) -> None:
        """Test a run reaching the transcript end."""
        candidates = find_candidates("CCATGAAAAA")
        assert candidates == [OrfCandidate(2, 2, 8, False)]
        assert candidates[0].length == 6

    def test_frames(self) -> None:
        """Test that frames are scanned independently."""
        sequence = "CATGAAATAA"
        assert find_candidates(sequence) == [OrfCandidate(1, 1, 10, True)]
        assert find_candidates(sequence, frames=(0,)) == []

    def test_scanning_resumes_after_stop(self) -> None:
        """Test that a second ORF in the same frame is found."""
        candidates = find_candidates("ATGTAAATGAAATAG", frames=(0,))
        assert [(c.start_site, c.stop_site) for c in candidates] == [(0, 6), (6, 15)]

    def test_alternative_start_codons(self) -> None:
        """Test non-ATG start codons."""
        assert find_candidates("CTGAAATGA", start_codons=("CTG",)) == [
            OrfCandidate(0, 0, 9, True)
        ]


# =============================================================================
# ORF Finder
# =============================================================================


class TestOrfSelection:
    """Tests for OrfFinder.select."""

    @pytest.fixture
    def candidates(self) -> list[OrfCandidate]:
        return [
            OrfCandidate(0, 0, 30, True),
            OrfCandidate(0, 40, 52, True),
            OrfCandidate(1, 10, 40, True),
            OrfCandidate(2, 5, 20, True),
            OrfCandidate(2, 50, 200, False),
        ]

    def test_longest_tie_break(self, candidates: list[OrfCandidate]) -> None:
        """Test that equal lengths are ranked by earlier start."""
        selected = OrfFinder(OrfConfig(selection="longest")).select(candidates)
        assert selected == [OrfCandidate(0, 0, 30, True)]

    def test_per_frame(self, candidates: list[OrfCandidate]) -> None:
        """Test one ORF per frame, ranked by length."""
        selected = OrfFinder(OrfConfig(selection="per_frame")).select(candidates)
        assert [(c.frame, c.start_site) for c in selected] == [(0, 0), (1, 10), (2, 5)]

    def test_top_n(self, candidates: list[OrfCandidate]) -> None:
        """Test the N longest regardless of frame."""
        selected = OrfFinder(OrfConfig(selection="top_n", top_n=3)).select(candidates)
        assert [(c.frame, c.start_site) for c in selected] == [(0, 0), (1, 10), (2, 5)]

    def test_include_no_stop(self, candidates: list[OrfCandidate]) -> None:
        """Test that no-stop candidates are ranked only on request."""
        finder = OrfFinder(OrfConfig(selection="longest", include_no_stop=True))
        selected = finder.select(candidates)
        assert selected == [OrfCandidate(2, 50, 200, False)]

    def test_min_length(self, candidates: list[OrfCandidate]) -> None:
        """Test that short ORFs are discarded."""
        finder = OrfFinder(OrfConfig(selection="top_n", top_n=5, min_length=20))
        assert {c.length for c in finder.select(candidates)} == {30}


class TestOrfFinder:
    """Tests for ORF records."""

    def test_reference_transcripts(
        self, annotation: ExonAnnotation, genome: InMemoryGenome
    ) -> None:
        """Test both strands give the same ORF with consistent UTRs."""
        records = OrfFinder().run(annotation.as_isoforms(), genome)
        assert [r.id for r in records] == ["tx1", "tx2"]
        for record in records:
            assert record.orf_sequence == FULL_PROTEIN
            assert (record.frame, record.start_site, record.stop_site) == (0, 0, 78)
            assert record.orf_length == 78
            assert record.utr5_length == 0
            assert record.utr3_length == 72
            total = record.utr5_length + record.orf_length + record.utr3_length
            assert total == record.transcript_length
            assert record.n_junctions == 2
            assert record.nmd_class == "unlikely"
            assert record.rank == 1

    def test_no_orf_record(self) -> None:
        """Test that a transcript without a start codon still yields a record."""
        isoform = isoform_from([20])
        records = OrfFinder().predict(isoform, "C" * 20)
        assert len(records) == 1
        assert not records[0].has_orf
        assert records[0].id == "iso1"
        assert records[0].transcript_length == 20

    def test_nmd_target(self) -> None:
        """Test a stop far upstream of the last junction."""
        isoform = isoform_from([9, 100, 10])
        sequence = "ATGAAATAA" + "C" * 110
        record = OrfFinder(OrfConfig(selection="longest")).predict(isoform, sequence)[0]
        assert record.stop_to_last_junction == 100
        assert record.nmd_class == "likely"
        assert record.nmd_score == 1.0

    @pytest.mark.parametrize(
        "offset,expected",
        [(49, "unlikely"), (50, "borderline"), (51, "likely")],
    )
    def test_nmd_offsets(self, offset: int, expected: str) -> None:
        """Test labels of stops 49, 50 and 51 nt before the only junction."""
        isoform = isoform_from([6 + offset, 20])
        sequence = "ATGTAA" + "C" * (offset + 20)
        record = OrfFinder().predict(isoform, sequence)[0]
        assert record.stop_site == 6
        assert record.stop_to_last_junction == offset
        assert record.nmd_class == expected

    def test_single_frame(self) -> None:
        """Test scanning frame 0 only."""
        isoform = isoform_from([10])
        finder = OrfFinder(OrfConfig(all_frames=False))
        assert not finder.predict(isoform, "CATGAAATAA")[0].has_orf


class TestUorfs:
    """Tests for upstream ORF reporting."""

    def test_find_uorfs(self) -> None:
        """Test the uORF before the main start and its junction distance."""
        uorfs = find_uorfs(find_candidates(UORF_TRANSCRIPT), main_start=7, junctions=[10])
        assert len(uorfs) == 1
        uorf = uorfs[0]
        assert (uorf.start_site, uorf.stop_site, uorf.frame, uorf.length) == (0, 6, 0, 6)
        assert (uorf.junction_distance, uorf.junction_index) == (4, 1)

    def test_no_downstream_junction(self) -> None:
        """Test a uORF past the last junction."""
        uorfs = find_uorfs(find_candidates(UORF_TRANSCRIPT), main_start=7, junctions=[])
        assert uorfs[0].junction_distance is None
        assert uorfs[0].junction_index is None

    def test_finder_adds_uorfs(self) -> None:
        """Test uORF counts on the main ORF record."""
        lengths = [10, len(UORF_TRANSCRIPT) - 10]
        isoform = isoform_from(lengths)
        genome = genome_for(UORF_TRANSCRIPT, lengths)
        records = OrfFinder(OrfConfig(selection="longest")).run([isoform], genome)
        assert records[0].start_site == 7
        assert records[0].n_uorfs == 1
        assert records[0].max_uorf_length == 6

        table = uorfs_to_dataframe(records)
        assert list(table["id"]) == ["iso1"]
        assert table.loc[0, "junction_distance"] == 4

    def test_uorfs_disabled(self) -> None:
        """Test that uORF fields stay empty when disabled."""
        lengths = [10, len(UORF_TRANSCRIPT) - 10]
        records = OrfFinder(OrfConfig(selection="longest", uorfs=False)).run(
            [isoform_from(lengths)], genome_for(UORF_TRANSCRIPT, lengths)
        )
        assert records[0].n_uorfs is None

    def test_select_longest_fraction(self) -> None:
        """Test that the longest fraction per gene is searched."""
        records = [
            OrfRecord("a", gene_id="g1", orf_length=30),
            OrfRecord("b", gene_id="g1", orf_length=90),
            OrfRecord("c", gene_id="g1", orf_length=60),
            OrfRecord("d", gene_id="g2", orf_length=12),
            OrfRecord("e", gene_id="g2"),
        ]
        assert select_for_uorf_search(records, 0.5) == {1, 2, 3}


# =============================================================================
# Table Output
# =============================================================================


class TestGetOrfs:
    """Tests for the table interface."""

    def test_dtypes(self, annotation: ExonAnnotation, genome: InMemoryGenome) -> None:
        """Test nullable integer columns and missing rows."""
        isoforms = annotation.as_isoforms() + [isoform_from([20], "empty")]
        df = get_orfs(isoforms, genome, nmd=NmdConfig(threshold=10))
        assert list(df["id"]) == ["tx1", "tx2", "empty"]
        assert df["orf_length"].dtype == "Int64"
        assert df["nmd_score"].dtype == "Float64"
        assert pd.isna(df.loc[2, "orf_length"])
        assert "uorfs" not in df.columns

    def test_empty(self) -> None:
        """Test that no records give an empty table with all columns."""
        df = orfs_to_dataframe([])
        assert df.empty
        assert "stop_to_last_junction" in df.columns
