"""Tests for the end-to-end ORF change summary.

These run the whole pipeline on the synthetic genome from conftest:
rMATS events, isoform reconstruction, ORF prediction and comparison.
"""

from pathlib import Path

import pandas as pd
import pytest

from splicelens.compare.summary import (
    COMP_SET_X,
    COMP_SET_Y,
    orient_isoforms,
    transcript_change_summary,
)
from splicelens.config import Config
from splicelens.core.annotation import ExonAnnotation
from splicelens.events.adapters import read_rmats
from splicelens.events.model import EventSet, EventType, SplicingEvent
from splicelens.io.fasta import InMemoryGenome
from splicelens.io.gtf import GTFReader, parse_attributes
from splicelens.isoforms.builder import build_isoforms


@pytest.fixture
def se_events(rmats_se_table: pd.DataFrame) -> EventSet:
    """The significant rMATS event (E2 of tx1)."""
    return read_rmats(rmats_se_table, "SE").filter(fdr=0.05)


@pytest.fixture
def se_pairs(se_events: EventSet, annotation: ExonAnnotation):
    """Isoform pairs of the significant event."""
    return build_isoforms(se_events, annotation)


# =============================================================================
# Orientation
# =============================================================================


class TestOrientIsoforms:
    """Tests for orient_isoforms."""

    def test_positive_delta(self, se_pairs) -> None:
        """Test that the inclusion isoform is X by default."""
        x, y = orient_isoforms(se_pairs, {"SE_1": 0.3})
        assert x[0].set_label == "included_exon"
        assert x[0].comp_set == COMP_SET_X
        assert y[0].set_label == "skipped_exon"
        assert y[0].comp_set == COMP_SET_Y

    def test_negative_delta(self, se_pairs) -> None:
        """Test that a negative delta swaps the sides."""
        x, y = orient_isoforms(se_pairs, {"SE_1": -0.3})
        assert x[0].set_label == "skipped_exon"
        assert y[0].set_label == "included_exon"

    def test_missing_delta(self, se_pairs) -> None:
        """Test that events without a delta keep the inclusion isoform as X."""
        x, _ = orient_isoforms(se_pairs)
        assert x[0].set_label == "included_exon"
        x, _ = orient_isoforms(se_pairs, {"SE_1": float("nan")})
        assert x[0].set_label == "included_exon"

    def test_role_prefixed_never_flipped(self, annotation: ExonAnnotation) -> None:
        """Test that dnre stays X for alternative terminal exons."""
        event = SplicingEvent(
            "AF_1", EventType.ALT_FIRST_EXON, "chr1", 0, 30, "+", alt_start=50, alt_end=60
        )
        pairs = build_isoforms([event], annotation)
        x, y = orient_isoforms(pairs, {"AF_1": -0.5})
        assert x[0].transcript_id.startswith("dnre_")
        assert y[0].transcript_id.startswith("upre_")


# =============================================================================
# Pipeline
# =============================================================================


class TestTranscriptChangeSummary:
    """Tests for transcript_change_summary."""

    def test_skipped_exon(self, se_pairs, se_events: EventSet, genome: InMemoryGenome) -> None:
        """Test the change row of a skipped exon."""
        changes = transcript_change_summary(se_pairs, genome, events=se_events)
        assert len(changes) == 1
        assert changes.columns[0] == "event_id"

        row = changes.iloc[0]
        assert row["event_id"] == "SE_1"
        assert row["event_type"] == "SE"
        assert row["event_gene_id"] == "g1"
        assert row["id"] == "SE_1"
        assert row["gene_id"] == "g1"
        assert (row["orf_length_x"], row["orf_length_y"]) == (78, 48)
        assert row["percent_orf_shared"] == pytest.approx(0.6)
        assert row["orf_percent_kept_y"] == pytest.approx(0.975)
        assert row["filtered"] == "both"
        assert row["nmd_score_x"] == 0.0
        assert row["PValue"] == pytest.approx(0.0001)

    def test_direction_override(
        self, se_pairs, se_events: EventSet, genome: InMemoryGenome
    ) -> None:
        """Test that an explicit direction wins over event deltas."""
        changes = transcript_change_summary(
            se_pairs, genome, events=se_events, direction={"SE_1": -0.3}
        )
        assert (changes.loc[0, "orf_length_x"], changes.loc[0, "orf_length_y"]) == (48, 78)
        assert changes.loc[0, "orf_percent_kept_x"] == pytest.approx(0.975)

    def test_transcript_mode(self, se_pairs, se_events: EventSet, genome: InMemoryGenome) -> None:
        """Test per-isoform rows still get their event fields."""
        config = Config.from_dict({"compare": {"compare_by": "transcript"}})
        changes = transcript_change_summary(se_pairs, genome, events=se_events, config=config)
        assert changes.loc[0, "id"] == "tx1+SE SE_1"
        assert changes.loc[0, "event_id"] == "SE_1"
        assert changes.loc[0, "event_type"] == "SE"

    def test_without_events(self, se_pairs, genome: InMemoryGenome) -> None:
        """Test that the summary runs on pairs alone."""
        changes = transcript_change_summary(se_pairs, genome)
        assert "event_id" not in changes.columns
        assert changes.loc[0, "orf_length_x"] == 78

    def test_export_gtf(
        self, se_pairs, se_events: EventSet, genome: InMemoryGenome, tmp_path: Path
    ) -> None:
        """Test writing the oriented isoforms."""
        path = tmp_path / "isoforms.gtf"
        transcript_change_summary(se_pairs, genome, events=se_events, export_gtf=path)
        transcripts = [
            parse_attributes(line.split("\t")[8])
            for line in path.read_text().splitlines()
            if line.split("\t")[2] == "transcript"
        ]
        assert [t["comp_set"] for t in transcripts] == ["X", "Y"]
        assert [t["set"] for t in transcripts] == ["included_exon", "skipped_exon"]
        assert len(list(GTFReader(path).iter_exons())) == 5

    def test_gene_similarity(
        self,
        se_pairs,
        se_events: EventSet,
        genome: InMemoryGenome,
        annotation: ExonAnnotation,
    ) -> None:
        """Test similarity to the annotated protein of the gene."""
        config = Config.from_dict({"compare": {"compare_to_gene": True}})
        changes = transcript_change_summary(
            se_pairs, genome, events=se_events, config=config, annotation=annotation
        )
        assert changes.loc[0, "gene_similarity_x"] == pytest.approx(1.0)
        assert changes.loc[0, "gene_similarity_y"] == pytest.approx(0.6)

    def test_gene_similarity_without_annotation(
        self, se_pairs, genome: InMemoryGenome, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that gene similarity is skipped without an annotation."""
        config = Config.from_dict({"compare": {"compare_to_gene": True}})
        changes = transcript_change_summary(se_pairs, genome, config=config)
        assert "gene_similarity_x" not in changes.columns
        assert "without an annotation" in caplog.text

    @pytest.mark.integration
    def test_retained_intron(self, annotation: ExonAnnotation, genome: InMemoryGenome) -> None:
        """Test a retained intron that destroys the ORF."""
        event = SplicingEvent(
            "RI_1", EventType.INTRON_RETENTION, "chr1", 30, 100, "+", inclusion_delta=0.2
        )
        events = EventSet([event])
        pairs = build_isoforms(events, annotation)
        changes = transcript_change_summary(pairs, genome, events=events)
        row = changes.iloc[0]
        assert row["id"] == "RI_1"
        assert pd.isna(row["orf_length_x"])
        assert row["orf_length_y"] == 78
        assert row["filtered"] == "y"
        assert pd.isna(row["percent_orf_shared"])
