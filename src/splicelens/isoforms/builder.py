"""Isoform reconstruction from splicing events.

For every event the builder finds the reference transcripts that give it
an annotated context and rewrites each of them into the two competing
splice paths the event implies:

| Event type          | inclusion isoform      | exclusion isoform       |
|---------------------|------------------------|-------------------------|
| skipped exon        | included_exon          | skipped_exon            |
| mutually exclusive  | included_exon2         | included_exon1          |
| intron retention    | retained_intron        | spliced_intron          |
| alt. 5'/3' site     | alt*_splicesite_long   | alt*_splicesite_short   |
| alt. first/last     | dnre                   | upre                    |
| intron cluster      | dnre (dPSI < 0 paths)  | upre (dPSI > 0 paths)   |

Reference exons that overlap a variable region are split at the region
boundary, so an event whose coordinates do not line up with annotated
exon edges still maps onto whole sub-exons. Pieces created by the split
are re-joined afterwards wherever they abut, while reference exons that
already abut in the annotation are left as they are.

Events without an annotated context produce no pairs and are logged,
never raised.

Example:
    >>> from splicelens.isoforms.builder import IsoformBuilder
    >>> builder = IsoformBuilder(annotation)
    >>> for pair in builder.iter_pairs(events):
    ...     print(pair.inclusion.transcript_id, pair.exclusion.n_exons)
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, Sequence

import attrs

from splicelens.config import IsoformConfig
from splicelens.core.annotation import ExonAnnotation
from splicelens.core.models import Exon, Isoform, IsoformPair, make_isoform_id
from splicelens.events.model import EventType, SplicingEvent
from splicelens.isoforms.clusters import apply_junctions
from splicelens.utils.intervals import (
    GenomicInterval,
    Interval,
    find_overlaps_genomic,
    order_exons,
    overlaps_by_junction,
    renumber_exons,
    split_overlapping_exons,
)
from splicelens.utils.logging import ProgressLogger

logger = logging.getLogger(__name__)

ExonPath = list[Exon]
PathBuilder = Callable[[SplicingEvent, Sequence[Exon]], "tuple[ExonPath, ExonPath] | None"]


# =============================================================================
# Path Editing
# =============================================================================


def _inside(exon: Exon, region: Interval) -> bool:
    return region.start <= exon.start and exon.end <= region.end


def replace_region(
    exons: Sequence[Exon],
    region: Interval,
    new_exons: Iterable[Interval] = (),
) -> list[Exon]:
    """Cut a region out of an exon path and insert new exons.

    Exons overlapping ``region`` are split at its edges and the pieces
    inside it are dropped. The returned exons are in genomic order and
    not yet re-joined.

    Args:
        exons: Exons of one transcript.
        region: Region to remove.
        new_exons: Exon intervals to add (usually inside ``region``).

    Returns:
        Edited exon list sorted by genomic start.
    """
    pieces = [e for e in split_overlapping_exons(exons, region) if not _inside(e, region)]
    template = exons[0]
    for interval in new_exons:
        pieces.append(attrs.evolve(template, start=interval.start, end=interval.end, exon_number=0))
    return sorted(pieces, key=lambda e: (e.start, e.end))


def join_split_exons(exons: Sequence[Exon], reference: Sequence[Exon]) -> list[Exon]:
    """Re-join abutting exons where at least one is not a reference exon.

    Args:
        exons: Edited exons of one transcript.
        reference: The unedited reference exons of that transcript.

    Returns:
        Exons in transcript order, renumbered.
    """
    known = {(e.start, e.end) for e in reference}
    joined: list[Exon] = []
    for exon in sorted(exons, key=lambda e: (e.start, e.end)):
        if joined:
            last = joined[-1]
            synthetic = (last.start, last.end) not in known or (exon.start, exon.end) not in known
            if exon.start < last.end or (exon.start == last.end and synthetic):
                joined[-1] = attrs.evolve(last, end=max(last.end, exon.end), exon_number=0)
                continue
        joined.append(exon)
    strand = reference[0].strand if reference else None
    return renumber_exons(order_exons(joined, strand))


def retain_region(exons: Sequence[Exon], region: Interval) -> list[Exon]:
    """Fuse a region with every exon it overlaps or touches."""
    template = exons[0]
    fused_start, fused_end = region.start, region.end
    kept = []
    for exon in exons:
        if exon.start <= region.end and region.start <= exon.end:
            fused_start = min(fused_start, exon.start)
            fused_end = max(fused_end, exon.end)
        else:
            kept.append(exon)
    kept.append(attrs.evolve(template, start=fused_start, end=fused_end, exon_number=0))
    return sorted(kept, key=lambda e: (e.start, e.end))


def _is_downstream(a: Interval, b: Interval, strand: str) -> bool:
    """True if ``a`` lies 3' of ``b`` in transcript orientation."""
    if strand == "-":
        return a.start < b.start
    return a.start > b.start


# =============================================================================
# Builder
# =============================================================================


class IsoformBuilder:
    """Reconstruct isoform pairs for splicing events.

    Attributes:
        annotation: Reference exon annotation.
        config: Isoform reconstruction settings.
    """

    def __init__(self, annotation: ExonAnnotation, config: IsoformConfig | None = None) -> None:
        self.annotation = annotation
        self.config = config or IsoformConfig()
        self._builders: dict[EventType, PathBuilder] = {
            EventType.SKIPPED_EXON: self._skipped_exon_paths,
            EventType.MUTUALLY_EXCLUSIVE: self._mutually_exclusive_paths,
            EventType.INTRON_RETENTION: self._intron_retention_paths,
            EventType.ALT_5SS: self._alt_site_paths,
            EventType.ALT_3SS: self._alt_site_paths,
            EventType.ALT_FIRST_EXON: self._alt_first_exon_paths,
            EventType.ALT_LAST_EXON: self._alt_last_exon_paths,
            EventType.INTRON_CLUSTER: self._cluster_paths,
        }

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def build(self, event: SplicingEvent) -> list[IsoformPair]:
        """Build the isoform pairs of one event.

        Returns:
            One pair per usable reference transcript, sorted by transcript
            id. Empty when the event has no annotated context.
        """
        builder = self._builders[event.event_type]
        candidates = self._candidate_transcripts(event)
        if not candidates:
            logger.info(f"Event {event.event_id}: no overlapping reference transcript, skipped")
            return []

        pairs = []
        for tx_id in candidates:
            reference = self.annotation.get_transcript(tx_id)
            paths = builder(event, reference)
            if paths is None:
                logger.debug(f"Event {event.event_id}: cannot be modelled on {tx_id}")
                continue
            pairs.append(self._make_pair(event, tx_id, *paths))

        if not pairs:
            logger.info(f"Event {event.event_id}: no transcript supports both isoforms, skipped")
        return pairs

    def iter_pairs(self, events: Iterable[SplicingEvent]) -> Iterator[IsoformPair]:
        """Lazily yield isoform pairs, dropping duplicate (event, transcript) pairs.

        Each call starts a fresh pass over ``events``.
        """
        events = list(events)
        progress = ProgressLogger(logger, total=len(events), description="Building isoforms")
        seen: set[tuple[str, str]] = set()
        for event in events:
            for pair in self.build(event):
                if pair.key in seen:
                    logger.debug(f"Duplicate isoform pair {pair.key} removed")
                    continue
                seen.add(pair.key)
                yield pair
            progress.update()

    def build_all(self, events: Iterable[SplicingEvent]) -> list[IsoformPair]:
        """All isoform pairs, stably sorted by event id."""
        pairs = sorted(self.iter_pairs(events), key=lambda p: p.event_id)
        logger.info(f"Built {len(pairs)} isoform pairs")
        return pairs

    # -------------------------------------------------------------------------
    # Candidate transcripts
    # -------------------------------------------------------------------------

    def _candidate_transcripts(self, event: SplicingEvent) -> list[str]:
        if event.event_type is EventType.INTRON_RETENTION:
            return self._retention_candidates(event)

        regions = [event.region]
        if event.alt_region is not None:
            regions.append(event.alt_region)

        candidates = set()
        for region in regions:
            hits = self.annotation.overlapping_transcripts(
                event.seqid,
                region.start,
                region.end,
                strand=event.strand,
                exonic=not self._allows_intronic(event),
            )
            candidates.update(tx for tx in hits if self._covers(tx, region))

        if event.upstream is not None and event.downstream is not None:
            flanked = [tx for tx in candidates if self._has_flanks(tx, event)]
            if flanked:
                candidates = set(flanked)
        return sorted(candidates)

    def _allows_intronic(self, event: SplicingEvent) -> bool:
        return self.config.include_intronic and event.event_type in (
            EventType.SKIPPED_EXON,
            EventType.MUTUALLY_EXCLUSIVE,
        )

    def _covers(self, transcript_id: str, region: Interval) -> bool:
        exons = self.annotation.get_transcript(transcript_id)
        seqid = exons[0].seqid
        if any(e.overlaps(seqid, region.start, region.end) for e in exons):
            return True
        start = min(e.start for e in exons)
        end = max(e.end for e in exons)
        return start <= region.start and region.end <= end

    def _has_flanks(self, transcript_id: str, event: SplicingEvent) -> bool:
        exons = self.annotation.get_transcript(transcript_id)
        return all(
            any(e.overlaps(event.seqid, flank.start, flank.end) for e in exons)
            for flank in (event.upstream, event.downstream)
        )

    def _retention_candidates(self, event: SplicingEvent) -> list[str]:
        introns = self.annotation.introns
        query = [GenomicInterval(event.seqid, event.start, event.end, event.strand)]
        if self.config.intron_match == "exact":
            hits = overlaps_by_junction(query, introns)
        else:
            hits = find_overlaps_genomic(query, introns)
        return sorted({introns[j].transcript_id for _, j in hits})

    # -------------------------------------------------------------------------
    # Per event type path construction
    # -------------------------------------------------------------------------

    def _skipped_exon_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        region = event.region
        included = join_split_exons(replace_region(reference, region, [region]), reference)
        skipped = join_split_exons(replace_region(reference, region), reference)
        if not skipped:
            return None
        return included, skipped

    def _mutually_exclusive_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        first, second = event.region, event.alt_region
        if second is None:
            return None
        with_second = replace_region(replace_region(reference, first), second, [second])
        with_first = replace_region(replace_region(reference, second), first, [first])
        return join_split_exons(with_second, reference), join_split_exons(with_first, reference)

    def _intron_retention_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        retained = join_split_exons(retain_region(reference, event.region), reference)
        spliced = join_split_exons(replace_region(reference, event.region), reference)
        return retained, spliced

    def _alt_site_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        short = event.alt_region
        if short is None:
            return None
        long_form = replace_region(reference, event.region, [event.region])
        short_form = replace_region(reference, event.region, [short])
        return join_split_exons(long_form, reference), join_split_exons(short_form, reference)

    def _alt_first_exon_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        return self._alt_terminal_paths(event, reference, first=True)

    def _alt_last_exon_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        return self._alt_terminal_paths(event, reference, first=False)

    def _alt_terminal_paths(self, event: SplicingEvent, reference: Sequence[Exon], first: bool):
        if event.alt_region is None:
            return None
        strand = reference[0].strand
        a, b = event.region, event.alt_region
        left = min(a.start, b.start)
        right = max(a.end, b.end)

        # The shared body lies 3' of alternative first exons, 5' of last exons
        body_on_right = first == (strand != "-")
        if body_on_right:
            body = [e for e in reference if e.start >= right]
        else:
            body = [e for e in reference if e.end <= left]
        if not body:
            return None

        downstream, upstream = (a, b) if _is_downstream(a, b, strand) else (b, a)
        template = body[0]
        paths = []
        for terminal in (downstream, upstream):
            exon = attrs.evolve(template, start=terminal.start, end=terminal.end, exon_number=0)
            paths.append(join_split_exons(body + [exon], reference))
        return paths[0], paths[1]

    def _cluster_paths(self, event: SplicingEvent, reference: Sequence[Exon]):
        decreasing = [j for j in event.introns if j.delta_psi < 0]
        increasing = [j for j in event.introns if j.delta_psi > 0]
        if not decreasing or not increasing:
            return None
        dnre = apply_junctions(reference, decreasing)
        upre = apply_junctions(reference, increasing)
        if dnre is None or upre is None:
            return None
        return join_split_exons(dnre, reference), join_split_exons(upre, reference)

    # -------------------------------------------------------------------------
    # Assembly
    # -------------------------------------------------------------------------

    def _make_pair(
        self,
        event: SplicingEvent,
        transcript_id: str,
        inclusion: ExonPath,
        exclusion: ExonPath,
    ) -> IsoformPair:
        gene_id, gene_name = self.annotation.gene_of(transcript_id)
        code = event.event_type.code
        isoforms = []
        for exons, label in zip((inclusion, exclusion), event.event_type.set_labels):
            prefix = label if event.event_type.uses_role_prefix else None
            isoform_id = make_isoform_id(
                transcript_id, code, event.event_id, set_label=label, prefix=prefix
            )
            isoforms.append(
                Isoform(
                    transcript_id=isoform_id,
                    exons=exons,
                    set_label=label,
                    gene_id=gene_id or event.gene_id,
                    gene_name=gene_name or event.gene_name,
                    event_id=event.event_id,
                    event_code=code,
                    reference_transcript_id=transcript_id,
                )
            )
        return IsoformPair(
            event_id=event.event_id,
            event_code=code,
            reference_transcript_id=transcript_id,
            inclusion=isoforms[0],
            exclusion=isoforms[1],
        )


def build_isoforms(
    events: Iterable[SplicingEvent],
    annotation: ExonAnnotation,
    config: IsoformConfig | None = None,
) -> list[IsoformPair]:
    """Convenience wrapper around ``IsoformBuilder.build_all``."""
    return IsoformBuilder(annotation, config).build_all(events)
