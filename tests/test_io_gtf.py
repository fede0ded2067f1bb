"""Unit tests for splicelens.io.gtf module.

Tests cover:
- Attribute parsing and formatting
- Exon records and annotation from GTF
- Writing isoforms with event attributes
"""

from pathlib import Path

import pytest

from splicelens.core.models import Exon, Isoform
from splicelens.io.gtf import (
    GTFReader,
    format_attributes,
    parse_attributes,
    read_annotation,
    write_isoforms_gtf,
)


class TestAttributes:
    """Tests for GTF attribute handling."""

    def test_parse_quoted_and_bare(self) -> None:
        """Test quoted and unquoted values."""
        attributes = parse_attributes('gene_id "g1"; transcript_id "tx1"; exon_number 2;')
        assert attributes == {"gene_id": "g1", "transcript_id": "tx1", "exon_number": "2"}

    def test_repeated_key_keeps_first(self) -> None:
        """Test that repeated tags keep their first value."""
        attributes = parse_attributes('tag "basic"; tag "CCDS";')
        assert attributes["tag"] == "basic"

    def test_parse_empty(self) -> None:
        """Test an empty attribute column."""
        assert parse_attributes(".") == {}

    def test_format_skips_none(self) -> None:
        """Test formatting with a missing value."""
        assert format_attributes({"gene_id": "g1", "comp_set": None}) == 'gene_id "g1";'
        assert format_attributes({}) == "."


class TestGTFReader:
    """Tests for GTFReader."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing GTF raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            GTFReader(tmp_path / "missing.gtf")

    def test_exons_only(self, annotation_gtf: Path) -> None:
        """Test that only exon lines are read, converted to 0-based."""
        exons = list(GTFReader(annotation_gtf).iter_exons())
        assert len(exons) == 6
        first = exons[0]
        assert (first.seqid, first.start, first.end) == ("chr1", 0, 30)
        assert first.transcript_type == "protein_coding"
        assert first.exon_number == 1

    def test_exon_table_is_one_based(self, annotation_gtf: Path) -> None:
        """Test the exon table keeps GTF coordinates."""
        table = GTFReader(annotation_gtf).read_exon_table()
        assert list(table["start"][:3]) == [1, 101, 201]

    def test_annotation(self, annotation_gtf: Path, annotation) -> None:
        """Test building the annotation from GTF."""
        from_gtf = read_annotation(annotation_gtf)
        assert from_gtf.get_transcript("tx2") == annotation.get_transcript("tx2")

    def test_malformed_lines_skipped(self, tmp_path: Path) -> None:
        """Test that malformed lines are counted and skipped."""
        path = tmp_path / "bad.gtf"
        path.write_text(
            "chr1\ttest\texon\t1\n"
            'chr1\ttest\texon\tx\t10\t.\t+\t.\ttranscript_id "t";\n'
            'chr1\ttest\texon\t1\t10\t.\t+\t.\ttranscript_id "t"; gene_id "g";\n'
        )
        reader = GTFReader(path)
        exons = list(reader.iter_exons())
        assert len(exons) == 1
        assert reader.n_malformed == 2


class TestWriteIsoforms:
    """Tests for isoform GTF output."""

    def test_write_and_read_back(self, tmp_path: Path) -> None:
        """Test writing isoforms with event attributes."""
        isoform = Isoform(
            transcript_id="tx1+SE SE_1",
            exons=[
                Exon("chr1", 200, 290, "-", "tx1", exon_number=1),
                Exon("chr1", 0, 30, "-", "tx1", exon_number=2),
            ],
            set_label="skipped_exon",
            gene_id="g1",
            event_id="SE_1",
            comp_set="Y",
        )
        path = tmp_path / "isoforms.gtf"
        assert write_isoforms_gtf([isoform], path) == 1

        lines = path.read_text().splitlines()
        assert len(lines) == 3
        fields = lines[0].split("\t")
        assert fields[2] == "transcript"
        assert (fields[3], fields[4]) == ("1", "290")
        attributes = parse_attributes(fields[8])
        assert attributes["transcript_id"] == "tx1+SE SE_1"
        assert attributes["set"] == "skipped_exon"
        assert attributes["comp_set"] == "Y"
        assert attributes["event_id"] == "SE_1"

        exons = list(GTFReader(path).iter_exons())
        assert [(e.start, e.end) for e in exons] == [(200, 290), (0, 30)]

    def test_empty_isoform_not_written(self, tmp_path: Path) -> None:
        """Test that isoforms without exons are skipped."""
        isoform = Isoform(transcript_id="t", exons=[], set_label="x")
        assert write_isoforms_gtf([isoform], tmp_path / "out.gtf") == 0
