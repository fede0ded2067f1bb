"""Unit tests for splicelens.compare.similarity module."""

import numpy as np
import pytest

from splicelens.compare.similarity import edit_distance, orf_similarity


class TestEditDistance:
    """Tests for the weighted edit distance."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("", "", 0),
            ("ABC", "", 3),
            ("", "AB", 2),
            ("KITTEN", "SITTING", 3),
            ("FLAW", "LAWN", 2),
        ],
    )
    def test_unit_costs(self, a: str, b: str, expected: int) -> None:
        """Test against the classic Levenshtein distance."""
        assert edit_distance(a, b) == expected

    def test_weighted_costs(self) -> None:
        """Test asymmetric insertion and deletion costs."""
        assert edit_distance("MKVLA", "MKV", insertion=100, deletion=1) == 2
        assert edit_distance("MKV", "MKVLA", insertion=100, deletion=1) == 200

    def test_substitution_cost(self) -> None:
        """Test that expensive substitutions become indels."""
        assert edit_distance("A", "B", substitution=100) == 2


class TestOrfSimilarity:
    """Tests for orf_similarity."""

    def test_identical(self) -> None:
        """Test identical sequences."""
        assert orf_similarity("MKVLA", "MKVLA") == 1.0

    def test_contained(self) -> None:
        """Test a prefix covering 60% of the longer protein."""
        assert orf_similarity("M" + "A" * 24, "M" + "A" * 14) == pytest.approx(0.6)
        assert orf_similarity("M" + "A" * 14, "M" + "A" * 24) == pytest.approx(0.6)

    def test_unrelated(self) -> None:
        """Test that unrelated sequences score 0."""
        assert orf_similarity("MKV", "WWW") == 0.0

    def test_missing(self) -> None:
        """Test that a missing sequence gives None."""
        assert orf_similarity(None, "MKV") is None
        assert orf_similarity("MKV", np.nan) is None

    def test_empty(self) -> None:
        """Test empty sequences."""
        assert orf_similarity("", "") == 1.0
        assert orf_similarity("", "MKV") == 0.0

    def test_range(self) -> None:
        """Test that scores stay within [0, 1]."""
        for a, b in [("MKVLAG", "GALVKM"), ("MAMAMA", "MA"), ("M", "MMMMMM")]:
            assert 0.0 <= orf_similarity(a, b) <= 1.0
