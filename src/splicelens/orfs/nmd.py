"""Rule-based nonsense-mediated decay prediction.

Implements the last exon-exon junction rule: a stop codon lying more than
``threshold`` nucleotides upstream of the final exon-exon junction marks
the transcript as an NMD target. Distances closer to the threshold than
``borderline_width`` nucleotides, on either side, are labelled borderline
instead of being forced into a hard class. Borderline scores stay below
0.5, so borderline ORFs pass the default NMD filter and keep their label
for downstream filtering.

The distance is ``last_junction - stop_site`` in transcript coordinates,
where ``stop_site`` is the position just after the stop codon.

Example:
    >>> rule = NmdRule(threshold=50, borderline_width=1)
    >>> [rule.classify_distance(d).nmd_class for d in (49, 50, 51)]
    ['unlikely', 'borderline', 'likely']
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Sequence

import attrs

from splicelens.config import DEFAULT_NMD_BORDERLINE_WIDTH, DEFAULT_NMD_THRESHOLD, NmdConfig


class NmdClass(Enum):
    """NMD susceptibility label."""

    LIKELY = "likely"
    BORDERLINE = "borderline"
    UNLIKELY = "unlikely"


class NmdCall(NamedTuple):
    """Result of applying the NMD rule to one ORF.

    Attributes:
        distance: last junction minus stop site, None without junctions.
        nmd_class: "likely", "borderline" or "unlikely".
        score: Heuristic score in [0, 1].
    """

    distance: int | None
    nmd_class: str
    score: float


@attrs.define(frozen=True)
class NmdRule:
    """Last exon-exon junction rule.

    Attributes:
        threshold: Distance (nt) beyond which a stop is NMD-triggering.
        borderline_width: Half-width (nt) of the borderline band around the
            threshold. 0 gives a hard threshold.
    """

    threshold: int = attrs.field(default=DEFAULT_NMD_THRESHOLD, validator=attrs.validators.ge(0))
    borderline_width: int = attrs.field(
        default=DEFAULT_NMD_BORDERLINE_WIDTH, validator=attrs.validators.ge(0)
    )

    @classmethod
    def from_config(cls, config: NmdConfig) -> NmdRule:
        return cls(threshold=config.threshold, borderline_width=config.borderline_width)

    def classify_distance(self, distance: int | None) -> NmdCall:
        """Classify a stop-to-last-junction distance."""
        if distance is None:
            return NmdCall(distance, NmdClass.UNLIKELY.value, 0.0)
        offset = distance - self.threshold
        if abs(offset) < self.borderline_width:
            # linear in (0, 0.5), 0.25 at the threshold itself
            score = 0.5 * (offset + self.borderline_width) / (2 * self.borderline_width)
            return NmdCall(distance, NmdClass.BORDERLINE.value, score)
        if offset > 0:
            return NmdCall(distance, NmdClass.LIKELY.value, 1.0)
        return NmdCall(distance, NmdClass.UNLIKELY.value, 0.0)

    def classify(self, stop_site: int, junctions: Sequence[int]) -> NmdCall:
        """Classify an ORF from its stop site and the transcript's junctions.

        Args:
            stop_site: Transcript position just after the stop codon.
            junctions: Transcript positions of exon-exon junctions.
        """
        if not junctions:
            return self.classify_distance(None)
        return self.classify_distance(max(junctions) - stop_site)
