"""Splice path editing for intron cluster events.

An intron cluster (leafcutter) lists competing junctions that share a
splice site. The two isoforms of a cluster are obtained by forcing the
junctions of each usage direction, one at a time, into a reference
transcript.

Example:
    >>> from splicelens.isoforms.clusters import apply_junctions
    >>> path = apply_junctions(reference_exons, [junction_a, junction_b])
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import attrs

from splicelens.core.models import Exon
from splicelens.utils.intervals import Located, order_exons

logger = logging.getLogger(__name__)


def apply_junction(exons: Sequence[Exon], junction: Located) -> list[Exon] | None:
    """Splice a junction into an exon path.

    Exon sequence inside the junction is removed. The nearest exon on the
    left is extended or trimmed to end at the donor side and the nearest
    exon on the right to start at the acceptor side.

    Args:
        exons: Exons of one transcript (any order).
        junction: Intron to introduce (0-based half-open).

    Returns:
        New exon path in transcript order, or None when the path has no
        exon on one side of the junction.
    """
    if not exons:
        return None
    strand = exons[0].strand

    left = [e for e in exons if e.start < junction.start]
    right = [e for e in exons if e.end > junction.end]
    if not left or not right:
        return None

    pieces = []
    for exon in sorted(exons, key=lambda e: (e.start, e.end)):
        if exon.end <= junction.start or exon.start >= junction.end:
            pieces.append(exon)
            continue
        if exon.start < junction.start:
            pieces.append(attrs.evolve(exon, end=junction.start))
        if exon.end > junction.end:
            pieces.append(attrs.evolve(exon, start=junction.end))

    donor_index = max(i for i, e in enumerate(pieces) if e.start < junction.start)
    acceptor_index = min(i for i, e in enumerate(pieces) if e.end > junction.end)
    pieces[donor_index] = attrs.evolve(pieces[donor_index], end=junction.start)
    pieces[acceptor_index] = attrs.evolve(pieces[acceptor_index], start=junction.end)

    return order_exons(pieces, strand)


def apply_junctions(exons: Sequence[Exon], junctions: Iterable[Located]) -> list[Exon] | None:
    """Apply junctions in genomic order; None if any of them cannot be applied."""
    path: list[Exon] | None = list(exons)
    for junction in sorted(junctions, key=lambda j: (j.start, j.end)):
        path = apply_junction(path, junction)
        if path is None:
            logger.debug(f"Junction {junction.seqid}:{junction.start}-{junction.end} not applicable")
            return None
    return path
