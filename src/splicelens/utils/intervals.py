"""Genomic interval operations.

This module provides the set-like operations over exon lists that every
other splicelens component builds on:

- Overlap detection (positional and exact junction matching)
- Interval merging, subtraction and gap finding
- Intron derivation from ordered exons
- Splitting exons at an event boundary
- Strand-aware ordering and transcript-coordinate junction positions

Example:
    >>> from splicelens.utils.intervals import introns_from_exons, merge_intervals
    >>> introns = introns_from_exons(exons)
    >>> merged = merge_intervals([Interval(0, 10), Interval(5, 20)])
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Iterable, NamedTuple, Protocol, Sequence

import attrs

from splicelens.core.models import Exon, Intron
from splicelens.exceptions import EmptyInputError

UNKNOWN_STRANDS = {".", "*", "", None}

# =============================================================================
# Data Structures
# =============================================================================


class Interval(NamedTuple):
    """A simple genomic interval.

    Attributes:
        start: Start position (0-based, inclusive).
        end: End position (0-based, exclusive).
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        """Get interval length."""
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        """Check if this interval overlaps another."""
        return self.start < other.end and other.start < self.end

    def contains(self, position: int) -> bool:
        """Check if this interval contains a position."""
        return self.start <= position < self.end


class GenomicInterval(NamedTuple):
    """A genomic interval with chromosome and strand.

    Attributes:
        seqid: Chromosome/contig identifier.
        start: Start position (0-based, inclusive).
        end: End position (0-based, exclusive).
        strand: Strand (+, - or . when unknown).
    """

    seqid: str
    start: int
    end: int
    strand: str = "."

    @property
    def length(self) -> int:
        """Get interval length."""
        return self.end - self.start


class Located(Protocol):
    """Anything with a seqid, start, end and strand."""

    seqid: str
    start: int
    end: int
    strand: str


# =============================================================================
# Overlap Operations
# =============================================================================


def overlaps(a: Interval, b: Interval) -> bool:
    """Check if two intervals overlap.

    Args:
        a: First interval.
        b: Second interval.

    Returns:
        True if intervals overlap.
    """
    return a.start < b.end and b.start < a.end


def overlap_length(a: Interval, b: Interval) -> int:
    """Calculate overlap length between two intervals.

    Args:
        a: First interval.
        b: Second interval.

    Returns:
        Overlap length (0 if no overlap).
    """
    if not overlaps(a, b):
        return 0
    return min(a.end, b.end) - max(a.start, b.start)


def strands_compatible(query_strand: str | None, reference_strand: str | None) -> bool:
    """Check whether two strands can describe the same feature.

    An unknown strand on either side is compatible with anything.
    """
    if query_strand in UNKNOWN_STRANDS or reference_strand in UNKNOWN_STRANDS:
        return True
    return query_strand == reference_strand


def find_overlaps_genomic(
    query: Sequence[Located],
    reference: Sequence[Located],
    ignore_strand: bool = False,
) -> list[tuple[int, int]]:
    """Find all positional overlaps between two sets of genomic features.

    Args:
        query: Query features.
        reference: Reference features.
        ignore_strand: Match regardless of strand.

    Returns:
        List of (query_index, reference_index) hits in query order.
    """
    by_seqid: dict[str, list[int]] = defaultdict(list)
    for j, ref in enumerate(reference):
        by_seqid[ref.seqid].append(j)

    hits = []
    for i, q in enumerate(query):
        for j in by_seqid.get(q.seqid, []):
            ref = reference[j]
            if not (q.start < ref.end and ref.start < q.end):
                continue
            if ignore_strand or strands_compatible(q.strand, ref.strand):
                hits.append((i, j))
    return hits


def overlaps_by_junction(
    query: Sequence[Located],
    reference: Sequence[Located],
    ignore_strand: bool = False,
) -> list[tuple[int, int]]:
    """Find reference features whose boundaries equal the query's exactly.

    Used when an event's reported junction must be an annotated intron,
    as opposed to ``find_overlaps_genomic`` which accepts any overlap.

    Args:
        query: Query features (e.g. retained introns, cluster introns).
        reference: Reference introns.
        ignore_strand: Match regardless of strand.

    Returns:
        List of (query_index, reference_index) hits in query order.
    """
    index: dict[tuple[str, int, int], list[int]] = defaultdict(list)
    for j, ref in enumerate(reference):
        index[(ref.seqid, ref.start, ref.end)].append(j)

    hits = []
    for i, q in enumerate(query):
        for j in index.get((q.seqid, q.start, q.end), []):
            if ignore_strand or strands_compatible(q.strand, reference[j].strand):
                hits.append((i, j))
    return hits


def infer_strand(
    query: Sequence[Located],
    introns: Sequence[Located],
) -> str | None:
    """Infer the strand of a group of junctions from reference introns.

    Exact junction matches are tried first. If they give no strand or
    conflicting strands, the strand of the majority of positionally
    overlapping introns is used.

    Args:
        query: Junctions with unknown strand.
        introns: Reference introns.

    Returns:
        "+" or "-", or None when no single strand is supported.
    """
    exact = overlaps_by_junction(query, introns, ignore_strand=True)
    exact_strands = {introns[j].strand for _, j in exact}
    if len(exact_strands) == 1:
        return exact_strands.pop()

    hits = find_overlaps_genomic(query, introns, ignore_strand=True)
    # Count each reference gene once per query junction
    seen = set()
    counts: Counter[str] = Counter()
    for i, j in hits:
        ref = introns[j]
        key = (i, getattr(ref, "gene_id", j), ref.strand)
        if key in seen:
            continue
        seen.add(key)
        counts[ref.strand] += 1

    if not counts:
        return None
    ranked = counts.most_common()
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0]


# =============================================================================
# Merge / Subtract / Gap Operations
# =============================================================================


def merge_intervals(intervals: Iterable[Interval], merge_touching: bool = True) -> list[Interval]:
    """Merge overlapping intervals.

    Args:
        intervals: Intervals to merge.
        merge_touching: Also merge intervals that abut (end == next start).

    Returns:
        List of merged intervals sorted by start.
    """
    sorted_intervals = sorted(intervals, key=lambda x: x.start)
    if not sorted_intervals:
        return []

    merged = [Interval(*sorted_intervals[0])]
    for current in sorted_intervals[1:]:
        last = merged[-1]
        joined = current.start <= last.end if merge_touching else current.start < last.end
        if joined:
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(Interval(*current))

    return merged


def subtract_intervals(
    intervals: Iterable[Interval],
    to_remove: Iterable[Interval],
) -> list[Interval]:
    """Subtract intervals from a set of intervals.

    Args:
        intervals: Base intervals.
        to_remove: Intervals to remove.

    Returns:
        Remaining intervals after subtraction, sorted by start.
    """
    removals = merge_intervals(to_remove)
    result = []
    for interval in sorted(intervals, key=lambda x: x.start):
        pieces = [Interval(*interval)]
        for cut in removals:
            next_pieces = []
            for piece in pieces:
                if not overlaps(piece, cut):
                    next_pieces.append(piece)
                    continue
                if piece.start < cut.start:
                    next_pieces.append(Interval(piece.start, cut.start))
                if cut.end < piece.end:
                    next_pieces.append(Interval(cut.end, piece.end))
            pieces = next_pieces
        result.extend(pieces)
    return result


def interval_gaps(
    intervals: Iterable[Interval],
    region: Interval | None = None,
) -> list[Interval]:
    """Find gaps between intervals.

    Args:
        intervals: Intervals to find gaps between.
        region: Optional bounding region. Without it, only internal gaps
            between the first and last interval are returned.

    Returns:
        List of gap intervals.
    """
    merged = merge_intervals(intervals, merge_touching=False)
    if not merged:
        return [region] if region is not None and region.length > 0 else []

    gaps = []
    if region is not None and region.start < merged[0].start:
        gaps.append(Interval(region.start, merged[0].start))
    for left, right in zip(merged, merged[1:]):
        if left.end < right.start:
            gaps.append(Interval(left.end, right.start))
    if region is not None and merged[-1].end < region.end:
        gaps.append(Interval(merged[-1].end, region.end))
    return gaps


# =============================================================================
# Exon Operations
# =============================================================================


def order_exons(exons: Iterable[Exon], strand: str | None = None) -> list[Exon]:
    """Sort exons in transcript 5' to 3' order.

    Args:
        exons: Exons of a single transcript.
        strand: Strand to order by. Defaults to the strand of the first exon.

    Returns:
        Exons sorted ascending on "+" and descending on "-".
    """
    exons = list(exons)
    if not exons:
        return []
    strand = strand or exons[0].strand
    return sorted(exons, key=lambda e: (e.start, e.end), reverse=(strand == "-"))


def renumber_exons(exons: Sequence[Exon]) -> list[Exon]:
    """Assign 1-based exon numbers following the given order."""
    return [attrs.evolve(exon, exon_number=i) for i, exon in enumerate(exons, 1)]


def introns_from_exons(
    exons: Iterable[Exon],
    allow_single_exon: bool = False,
) -> list[Intron]:
    """Derive introns from exons, per transcript, in transcript order.

    Args:
        exons: Exons of one or more transcripts.
        allow_single_exon: Skip transcripts with fewer than two exons instead
            of failing.

    Returns:
        Introns grouped by transcript (first-seen order), each group in
        transcript 5' to 3' order.

    Raises:
        EmptyInputError: If a transcript has fewer than 2 exons and
            ``allow_single_exon`` is False, or no exons were given.
    """
    by_transcript: dict[str, list[Exon]] = defaultdict(list)
    for exon in exons:
        by_transcript[exon.transcript_id].append(exon)

    if not by_transcript:
        raise EmptyInputError("No exons given; cannot derive introns")

    introns = []
    for tx_id, tx_exons in by_transcript.items():
        if len(tx_exons) < 2:
            if allow_single_exon:
                continue
            raise EmptyInputError(f"Transcript {tx_id} has fewer than 2 exons; no introns possible")

        genomic = sorted(tx_exons, key=lambda e: (e.start, e.end))
        gaps = [
            (left.end, right.start)
            for left, right in zip(genomic, genomic[1:])
            if left.end < right.start
        ]
        first = tx_exons[0]
        if first.strand == "-":
            gaps.reverse()
        for number, (start, end) in enumerate(gaps, 1):
            introns.append(
                Intron(
                    seqid=first.seqid,
                    start=start,
                    end=end,
                    strand=first.strand,
                    transcript_id=tx_id,
                    gene_id=first.gene_id,
                    gene_name=first.gene_name,
                    intron_number=number,
                )
            )
    return introns


def split_overlapping_exons(
    exons: Iterable[Exon],
    boundary: Interval | GenomicInterval,
) -> list[Exon]:
    """Split exons at the edges of a boundary region.

    Every exon partially overlapping ``boundary`` is cut into up to three
    pieces (left of, inside and right of the boundary) so the region maps
    onto whole sub-exons. Exons that do not overlap are returned unchanged.

    Args:
        exons: Exons of one transcript.
        boundary: Region to split at.

    Returns:
        New exon list in transcript order.
    """
    exons = list(exons)
    pieces = []
    for exon in exons:
        if not (exon.start < boundary.end and boundary.start < exon.end):
            pieces.append(exon)
            continue
        if exon.start < boundary.start:
            pieces.append(attrs.evolve(exon, end=boundary.start))
        pieces.append(
            attrs.evolve(exon, start=max(exon.start, boundary.start), end=min(exon.end, boundary.end))
        )
        if boundary.end < exon.end:
            pieces.append(attrs.evolve(exon, start=boundary.end))
    strand = exons[0].strand if exons else None
    return order_exons(pieces, strand)


def exon_junction_positions(exons: Sequence[Exon]) -> list[int]:
    """Transcript-coordinate positions of exon-exon junctions.

    Args:
        exons: Exons in transcript order.

    Returns:
        Cumulative spliced lengths at the end of every exon except the last.
    """
    positions = []
    total = 0
    for exon in exons[:-1]:
        total += exon.length
        positions.append(total)
    return positions
