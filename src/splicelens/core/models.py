"""Core data structures shared by every splicelens component.

Coordinates are 0-based half-open (``start`` inclusive, ``end`` exclusive)
throughout. Exons and introns are immutable; any exon created while
rebuilding an isoform is a new record derived with ``attrs.evolve``.

Example:
    >>> from splicelens.core.models import Exon
    >>> exon = Exon("chr1", 99, 200, "+", transcript_id="tx1")
    >>> exon.length
    101
"""

from __future__ import annotations

from typing import Iterable

import attrs

# Separators used in composite isoform ids:
#   "<ref_tx>+<code>_<set> <event_id>" or "<prefix>_<ref_tx>+<code> <event_id>"
EVENT_SEPARATOR = "+"
GROUP_SEPARATOR = " "
SET_SEPARATOR = "_"
CLUSTER_PREFIXES = ("upre_", "dnre_")


def _to_exon_tuple(exons: Iterable[Exon]) -> tuple[Exon, ...]:
    return tuple(exons)


# =============================================================================
# Exons and Introns
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Exon:
    """A reference or synthetic exon.

    Attributes:
        seqid: Chromosome/contig name.
        start: Start position (0-based, inclusive).
        end: End position (0-based, exclusive).
        strand: Strand (+, - or . when unknown).
        transcript_id: Parent transcript identifier.
        gene_id: Parent gene identifier.
        gene_name: Gene symbol.
        exon_number: 1-based rank of the exon in transcript order.
        transcript_type: Transcript biotype (e.g. protein_coding).
    """

    seqid: str
    start: int
    end: int
    strand: str
    transcript_id: str
    gene_id: str = ""
    gene_name: str = ""
    exon_number: int = 0
    transcript_type: str = ""

    @property
    def length(self) -> int:
        """Exon length in base pairs."""
        return self.end - self.start

    def overlaps(self, seqid: str, start: int, end: int) -> bool:
        """Check positional overlap with a region on the same sequence."""
        return self.seqid == seqid and self.start < end and start < self.end


@attrs.define(frozen=True, slots=True)
class Intron:
    """Gap between two consecutive exons of one transcript.

    Attributes:
        seqid: Chromosome/contig name.
        start: First intronic base (0-based).
        end: Last intronic base + 1.
        strand: Strand of the parent transcript.
        transcript_id: Parent transcript identifier.
        gene_id: Parent gene identifier.
        gene_name: Gene symbol.
        intron_number: 1-based rank of the intron in transcript order.
    """

    seqid: str
    start: int
    end: int
    strand: str
    transcript_id: str
    gene_id: str = ""
    gene_name: str = ""
    intron_number: int = 0

    @property
    def length(self) -> int:
        """Intron length in base pairs."""
        return self.end - self.start


# =============================================================================
# Isoforms
# =============================================================================


def make_isoform_id(
    reference_transcript_id: str,
    event_code: str,
    event_id: str,
    set_label: str | None = None,
    prefix: str | None = None,
) -> str:
    """Build the composite id of a reconstructed isoform.

    Both isoforms of a pair share transcript, code and event, so the set
    label (or the role prefix, which is the set label of role-prefixed
    events) keeps their ids apart.

    Args:
        reference_transcript_id: Transcript the isoform was derived from.
        event_code: Short event type code (e.g. "SE").
        event_id: Upstream event identifier.
        set_label: Role of the isoform (e.g. "included_exon").
        prefix: Optional role prefix ("upre" or "dnre").

    Returns:
        Id of the form ``<tx>+<code>_<set> <event_id>`` or
        ``<prefix>_<tx>+<code> <event_id>``.

    Example:
        >>> make_isoform_id("tx1", "SE", "SE_1", set_label="skipped_exon")
        'tx1+SE_skipped_exon SE_1'
    """
    code = event_code
    if set_label and not prefix:
        code = f"{event_code}{SET_SEPARATOR}{set_label}"
    base = f"{reference_transcript_id}{EVENT_SEPARATOR}{code}{GROUP_SEPARATOR}{event_id}"
    if prefix:
        return f"{prefix}_{base}"
    return base


@attrs.define(slots=True)
class Isoform:
    """One concrete splice path for an event (or a reference transcript).

    Attributes:
        transcript_id: Composite isoform id.
        exons: Exons in transcript 5' to 3' order.
        set_label: Role of the isoform (e.g. included_exon, skipped_exon).
        gene_id: Gene identifier.
        gene_name: Gene symbol.
        event_id: Originating event id, None for reference transcripts.
        event_code: Short event type code.
        reference_transcript_id: Reference transcript the path came from.
        comp_set: Comparison side ("X" or "Y") once oriented.
    """

    transcript_id: str
    exons: tuple[Exon, ...] = attrs.field(converter=_to_exon_tuple)
    set_label: str
    gene_id: str = ""
    gene_name: str = ""
    event_id: str | None = None
    event_code: str | None = None
    reference_transcript_id: str | None = None
    comp_set: str | None = None

    @property
    def seqid(self) -> str:
        """Sequence name of the isoform."""
        return self.exons[0].seqid if self.exons else ""

    @property
    def strand(self) -> str:
        """Strand of the isoform."""
        return self.exons[0].strand if self.exons else "."

    @property
    def n_exons(self) -> int:
        """Number of exons."""
        return len(self.exons)

    @property
    def length(self) -> int:
        """Spliced transcript length."""
        return sum(exon.length for exon in self.exons)

    @property
    def start(self) -> int:
        """Leftmost genomic position."""
        return min(exon.start for exon in self.exons)

    @property
    def end(self) -> int:
        """Rightmost genomic position (exclusive)."""
        return max(exon.end for exon in self.exons)

    def with_comp_set(self, comp_set: str | None) -> Isoform:
        """Return a copy labelled with a comparison side."""
        return attrs.evolve(self, comp_set=comp_set)


@attrs.define(frozen=True, slots=True)
class IsoformPair:
    """The two isoforms reconstructed for one event and reference transcript.

    ``inclusion`` holds the isoform that is the higher-inclusion form when
    the event's inclusion delta is positive (included exon, retained intron,
    long splice site, downstream terminal exon).
    """

    event_id: str
    event_code: str
    reference_transcript_id: str
    inclusion: Isoform
    exclusion: Isoform

    @property
    def key(self) -> tuple[str, str]:
        """Deduplication key."""
        return (self.event_id, self.reference_transcript_id)

    @property
    def isoforms(self) -> tuple[Isoform, Isoform]:
        """Both isoforms, inclusion first."""
        return (self.inclusion, self.exclusion)
