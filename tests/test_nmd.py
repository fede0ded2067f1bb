"""Unit tests for splicelens.orfs.nmd module."""

import pytest

from splicelens.config import DEFAULT_NMD_FILTER_CUTOFF, NmdConfig
from splicelens.orfs.nmd import NmdClass, NmdRule


class TestDefaultRule:
    """Tests for the default rule around the 50 nt threshold."""

    @pytest.mark.parametrize(
        "distance,expected",
        [
            (49, NmdClass.UNLIKELY),
            (50, NmdClass.BORDERLINE),
            (51, NmdClass.LIKELY),
        ],
    )
    def test_threshold_offsets(self, distance: int, expected: NmdClass) -> None:
        """Test the labels one nucleotide either side of the threshold."""
        assert NmdRule().classify_distance(distance).nmd_class == expected.value

    def test_borderline_passes_filter(self) -> None:
        """Test that a borderline ORF is kept by the default NMD filter."""
        call = NmdRule().classify_distance(50)
        assert call.score == pytest.approx(0.25)
        assert call.score < DEFAULT_NMD_FILTER_CUTOFF

    def test_scores(self) -> None:
        """Test scores of the hard classes."""
        rule = NmdRule()
        assert rule.classify_distance(10).score == 0.0
        assert rule.classify_distance(100).score == 1.0

    def test_no_junctions(self) -> None:
        """Test that single-exon transcripts are never NMD targets."""
        call = NmdRule().classify(stop_site=30, junctions=[])
        assert call.distance is None
        assert call.nmd_class == "unlikely"

    def test_last_junction_used(self) -> None:
        """Test that the distance is measured to the last junction."""
        call = NmdRule().classify(stop_site=100, junctions=[120, 300, 160])
        assert call.distance == 200


class TestHardThreshold:
    """Tests for the rule without a borderline band."""

    @pytest.mark.parametrize(
        "distance,expected",
        [
            (-20, NmdClass.UNLIKELY),
            (49, NmdClass.UNLIKELY),
            (50, NmdClass.UNLIKELY),
            (51, NmdClass.LIKELY),
            (500, NmdClass.LIKELY),
        ],
    )
    def test_threshold(self, distance: int, expected: NmdClass) -> None:
        """Test that the band can be switched off."""
        call = NmdRule(borderline_width=0).classify_distance(distance)
        assert call.nmd_class == expected.value
        assert call.distance == distance


class TestBorderline:
    """Tests for a wider borderline band."""

    def test_band_is_symmetric(self) -> None:
        """Test classes on both sides of the threshold."""
        rule = NmdRule(threshold=50, borderline_width=3)
        labels = {d: rule.classify_distance(d).nmd_class for d in range(46, 55)}
        assert labels == {
            46: "unlikely",
            47: "unlikely",
            48: "borderline",
            49: "borderline",
            50: "borderline",
            51: "borderline",
            52: "borderline",
            53: "likely",
            54: "likely",
        }

    def test_band_scores(self) -> None:
        """Test that scores rise through the band and stay below 0.5."""
        rule = NmdRule(threshold=50, borderline_width=3)
        scores = [rule.classify_distance(d).score for d in range(48, 53)]
        assert scores == sorted(scores)
        assert scores[0] == pytest.approx(1 / 12)
        assert scores[2] == pytest.approx(0.25)
        assert scores[-1] == pytest.approx(5 / 12)
        assert all(0 < s < 0.5 for s in scores)

    def test_from_config(self) -> None:
        """Test building the rule from configuration."""
        rule = NmdRule.from_config(NmdConfig(threshold=30, borderline_width=10))
        assert rule.threshold == 30
        assert rule.borderline_width == 10

    def test_negative_values_rejected(self) -> None:
        """Test validation of the rule parameters."""
        with pytest.raises(ValueError):
            NmdRule(threshold=-1)
        with pytest.raises(ValueError):
            NmdRule(borderline_width=-1)
