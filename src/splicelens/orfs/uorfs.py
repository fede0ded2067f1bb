"""Upstream open reading frames.

uORFs are start-to-stop runs that begin in the 5'UTR, before the start
of the main ORF. For each one the distance from its stop to the nearest
downstream exon-exon junction is reported, since a junction close behind
a uORF stop affects re-initiation and NMD.

Example:
    >>> uorfs = find_uorfs(candidates, main_start=120, junctions=[150, 300])
    >>> [(u.start_site, u.junction_index) for u in uorfs]
"""

from __future__ import annotations

import bisect
import math
from collections import defaultdict
from typing import TYPE_CHECKING, Iterable, NamedTuple, Sequence

if TYPE_CHECKING:
    from splicelens.orfs.engine import OrfCandidate, OrfRecord


class Uorf(NamedTuple):
    """An upstream ORF.

    Attributes:
        start_site: Transcript position of the start codon (0-based).
        stop_site: Transcript position just after the stop codon.
        frame: Reading frame (0, 1 or 2).
        length: Length in nucleotides including the stop codon.
        junction_distance: Distance from the stop to the nearest downstream
            exon-exon junction, None if there is none.
        junction_index: 1-based index of that junction.
    """

    start_site: int
    stop_site: int
    frame: int
    length: int
    junction_distance: int | None
    junction_index: int | None


def find_uorfs(
    candidates: Iterable[OrfCandidate],
    main_start: int,
    junctions: Sequence[int],
) -> list[Uorf]:
    """Select the upstream ORFs among a transcript's ORF candidates.

    Args:
        candidates: All ORF candidates of the transcript.
        main_start: Start site of the main ORF.
        junctions: Sorted transcript positions of exon-exon junctions.

    Returns:
        uORFs with a stop codon, ordered by start site.
    """
    uorfs = []
    for candidate in candidates:
        if not candidate.has_stop or candidate.start_site >= main_start:
            continue
        index = bisect.bisect_left(junctions, candidate.stop_site)
        if index < len(junctions):
            distance, junction_index = junctions[index] - candidate.stop_site, index + 1
        else:
            distance, junction_index = None, None
        uorfs.append(
            Uorf(
                start_site=candidate.start_site,
                stop_site=candidate.stop_site,
                frame=candidate.frame,
                length=candidate.stop_site - candidate.start_site,
                junction_distance=distance,
                junction_index=junction_index,
            )
        )
    return sorted(uorfs, key=lambda u: (u.start_site, u.frame))


def select_for_uorf_search(records: Sequence[OrfRecord], fraction: float) -> set[int]:
    """Indexes of the records that get a uORF search.

    Within each gene, records are ranked by ORF length (longest first) and
    the top ``fraction`` of them, rounded up, is selected. Records without
    an ORF are never selected.
    """
    by_gene: dict[str, list[int]] = defaultdict(list)
    for i, record in enumerate(records):
        if record.orf_length is not None:
            by_gene[record.gene_id].append(i)

    selected = set()
    for indexes in by_gene.values():
        ranked = sorted(indexes, key=lambda i: -records[i].orf_length)
        keep = max(1, math.ceil(len(ranked) * fraction))
        selected.update(ranked[:keep])
    return selected
