"""Unit tests for splicelens.utils.sequences module."""

import pytest

from splicelens.core.models import Exon
from splicelens.io.fasta import InMemoryGenome
from splicelens.utils.sequences import reverse_complement, spliced_sequence, translate


class TestReverseComplement:
    """Tests for reverse_complement function."""

    def test_simple_sequence(self) -> None:
        """Test reverse complement of simple sequences."""
        assert reverse_complement("ACGT") == "ACGT"
        assert reverse_complement("AAAC") == "GTTT"

    def test_case_preservation(self) -> None:
        """Test that case is preserved."""
        assert reverse_complement("AcGt") == "aCgT"

    def test_iupac_ambiguity(self) -> None:
        """Test IUPAC ambiguity codes."""
        assert reverse_complement("R") == "Y"
        assert reverse_complement("N") == "N"

    def test_empty_sequence(self) -> None:
        """Test empty sequence."""
        assert reverse_complement("") == ""


class TestTranslate:
    """Tests for translate function."""

    def test_full_translation(self) -> None:
        """Test that stop codons appear as '*' by default."""
        assert translate("ATGAAATAG") == "MK*"

    def test_to_stop(self) -> None:
        """Test stopping at the first stop codon."""
        assert translate("ATGAAATAGGCT", to_stop=True) == "MK"

    def test_unknown_codon(self) -> None:
        """Test that ambiguous codons translate to X."""
        assert translate("ATGNNN") == "MX"

    def test_lower_case(self) -> None:
        """Test translation of soft-masked sequence."""
        assert translate("atggct") == "MA"

    def test_partial_codon_rejected(self) -> None:
        """Test that incomplete codons raise unless partial."""
        with pytest.raises(ValueError, match="multiple of 3"):
            translate("ATGA")
        assert translate("ATGA", partial=True) == "M"


class TestSplicedSequence:
    """Tests for spliced transcript assembly."""

    def test_plus_strand(self, genome: InMemoryGenome, annotation) -> None:
        """Test concatenation of plus-strand exons."""
        sequence = spliced_sequence(annotation.get_transcript("tx1"), genome)
        assert len(sequence) == 150
        assert sequence.startswith("ATGGCT")
        assert translate(sequence, to_stop=True, partial=True) == "M" + "A" * 24

    def test_minus_strand_matches_plus(self, genome: InMemoryGenome, annotation) -> None:
        """Test that the mirrored minus-strand transcript has the same sequence."""
        plus = spliced_sequence(annotation.get_transcript("tx1"), genome)
        minus = spliced_sequence(annotation.get_transcript("tx2"), genome)
        assert minus == plus

    def test_upper_case(self) -> None:
        """Test that output is upper case."""
        genome = InMemoryGenome({"chr1": "acgtacgt"})
        exons = [Exon("chr1", 0, 4, "+", "tx"), Exon("chr1", 6, 8, "+", "tx")]
        assert spliced_sequence(exons, genome) == "ACGTGT"
