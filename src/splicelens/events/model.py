"""Normalized splicing events.

Every upstream tool (rMATS, IRFinder, leafcutter, ...) reports events in
its own table layout. Adapters in ``splicelens.events.adapters`` convert
those tables into ``SplicingEvent`` records collected in an ``EventSet``,
which is what the isoform builder and the comparator consume.

Coordinate conventions (0-based half-open) per event type:

- SKIPPED_EXON: ``start``/``end`` is the variable exon; ``upstream`` and
  ``downstream`` optionally hold the flanking exons.
- MUTUALLY_EXCLUSIVE: ``start``/``end`` is the first exon, ``alt_start``/
  ``alt_end`` the second.
- INTRON_RETENTION: ``start``/``end`` is the retained intron.
- ALT_5SS / ALT_3SS: ``start``/``end`` is the long form of the variable
  exon, ``alt_start``/``alt_end`` the short form.
- ALT_FIRST_EXON / ALT_LAST_EXON: ``start``/``end`` and ``alt_start``/
  ``alt_end`` are the two competing terminal exons.
- INTRON_CLUSTER: ``introns`` holds the cluster's junctions with their
  inclusion changes; ``start``/``end`` spans the cluster.

Example:
    >>> from splicelens.events.model import EventSet, EventType, SplicingEvent
    >>> event = SplicingEvent("SE_1", EventType.SKIPPED_EXON, "chr1", 99, 200, "+")
    >>> events = EventSet([event]).filter(fdr=0.05)
"""

from __future__ import annotations

import logging
import warnings
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, NamedTuple

import attrs
import pandas as pd

from splicelens.config import DEFAULT_FDR
from splicelens.core.models import EVENT_SEPARATOR, GROUP_SEPARATOR
from splicelens.exceptions import EventTableError
from splicelens.utils.intervals import Interval

logger = logging.getLogger(__name__)

# =============================================================================
# Event Types
# =============================================================================


class EventType(Enum):
    """Splicing event classes.

    The value is the short code used in isoform ids.
    """

    SKIPPED_EXON = "SE"
    MUTUALLY_EXCLUSIVE = "MXE"
    INTRON_RETENTION = "RI"
    ALT_5SS = "A5SS"
    ALT_3SS = "A3SS"
    ALT_FIRST_EXON = "AF"
    ALT_LAST_EXON = "AL"
    INTRON_CLUSTER = "LC"

    @property
    def code(self) -> str:
        """Short event code."""
        return self.value

    @property
    def set_labels(self) -> tuple[str, str]:
        """(inclusion, exclusion) isoform set labels."""
        return _SET_LABELS[self]

    @property
    def uses_role_prefix(self) -> bool:
        """Isoform ids carry an upre_/dnre_ prefix."""
        return self in (EventType.ALT_FIRST_EXON, EventType.ALT_LAST_EXON, EventType.INTRON_CLUSTER)

    @classmethod
    def from_code(cls, code: str) -> EventType:
        """Look up an event type by code, including upstream tool aliases.

        Raises:
            EventTableError: If the code is not recognised.
        """
        key = code.strip().upper()
        try:
            return _ALIASES.get(key) or cls(key)
        except ValueError:
            raise EventTableError(f"Unknown event type: {code!r}") from None


_SET_LABELS = {
    EventType.SKIPPED_EXON: ("included_exon", "skipped_exon"),
    EventType.MUTUALLY_EXCLUSIVE: ("included_exon2", "included_exon1"),
    EventType.INTRON_RETENTION: ("retained_intron", "spliced_intron"),
    EventType.ALT_5SS: ("alt5_splicesite_long", "alt5_splicesite_short"),
    EventType.ALT_3SS: ("alt3_splicesite_long", "alt3_splicesite_short"),
    EventType.ALT_FIRST_EXON: ("dnre", "upre"),
    EventType.ALT_LAST_EXON: ("dnre", "upre"),
    EventType.INTRON_CLUSTER: ("dnre", "upre"),
}

# Codes used by other splicing tools (whippet, SUPPA)
_ALIASES = {
    "CE": EventType.SKIPPED_EXON,
    "MX": EventType.MUTUALLY_EXCLUSIVE,
    "IR": EventType.INTRON_RETENTION,
    "AD": EventType.ALT_5SS,
    "A5": EventType.ALT_5SS,
    "AA": EventType.ALT_3SS,
    "A3": EventType.ALT_3SS,
    "LEAFCUTTER": EventType.INTRON_CLUSTER,
}


# =============================================================================
# Event Records
# =============================================================================


class ClusterIntron(NamedTuple):
    """One junction of an intron cluster.

    Attributes:
        seqid: Chromosome/contig name.
        start: First intronic base (0-based).
        end: Last intronic base + 1.
        delta_psi: Change in usage between conditions.
        strand: Strand, "." until inferred.
    """

    seqid: str
    start: int
    end: int
    delta_psi: float
    strand: str = "."


def _validate_event_id(instance: Any, attribute: attrs.Attribute, value: str) -> None:
    if not value or EVENT_SEPARATOR in value or GROUP_SEPARATOR in value:
        raise EventTableError(
            f"Event id {value!r} must be non-empty and contain no "
            f"{EVENT_SEPARATOR!r} or space characters"
        )


def _optional_interval(value: Any) -> Interval | None:
    if value is None:
        return None
    return Interval(int(value[0]), int(value[1]))


@attrs.define(frozen=True, slots=True)
class SplicingEvent:
    """A single differential splicing call.

    Attributes:
        event_id: Upstream identifier (no spaces or "+").
        event_type: Event class.
        seqid: Chromosome/contig name.
        start: Variable region start (0-based).
        end: Variable region end (exclusive).
        strand: Strand (+, - or . when unknown).
        significance: FDR or p-value.
        inclusion_delta: Inclusion change; positive means the inclusion
            isoform is more used in the first condition.
        gene_id: Gene identifier reported upstream.
        gene_name: Gene symbol reported upstream.
        alt_start: Second region start (MXE, alternative sites and ends).
        alt_end: Second region end.
        upstream: Upstream flanking exon, when reported.
        downstream: Downstream flanking exon, when reported.
        introns: Junctions of an intron cluster.
        source: Name of the upstream tool.
        extra: Tool-specific fields passed through to the output.
    """

    event_id: str = attrs.field(validator=_validate_event_id)
    event_type: EventType
    seqid: str
    start: int
    end: int
    strand: str = "."
    significance: float | None = None
    inclusion_delta: float | None = None
    gene_id: str = ""
    gene_name: str = ""
    alt_start: int | None = None
    alt_end: int | None = None
    upstream: Interval | None = attrs.field(default=None, converter=_optional_interval)
    downstream: Interval | None = attrs.field(default=None, converter=_optional_interval)
    introns: tuple[ClusterIntron, ...] = attrs.field(default=(), converter=tuple)
    source: str = ""
    extra: Mapping[str, Any] = attrs.field(factory=dict, eq=False, hash=False)

    def __attrs_post_init__(self) -> None:
        if self.start >= self.end:
            raise EventTableError(
                f"Event {self.event_id}: start ({self.start}) must be less than end ({self.end})"
            )
        if (self.alt_start is None) != (self.alt_end is None):
            raise EventTableError(f"Event {self.event_id}: alt_start and alt_end must be given together")

    @property
    def region(self) -> Interval:
        """Variable region."""
        return Interval(self.start, self.end)

    @property
    def effect_size(self) -> float | None:
        """Absolute inclusion change; the largest junction dPSI for clusters."""
        if self.inclusion_delta is not None:
            return abs(self.inclusion_delta)
        if self.introns:
            return max(abs(j.delta_psi) for j in self.introns)
        return None

    @property
    def alt_region(self) -> Interval | None:
        """Second variable region, if any."""
        if self.alt_start is None or self.alt_end is None:
            return None
        return Interval(self.alt_start, self.alt_end)

    def to_dict(self) -> dict[str, Any]:
        """Flat dictionary of the pass-through fields (1-based coordinates)."""
        data = {
            "event_id": self.event_id,
            "event_type": self.event_type.code,
            "seqid": self.seqid,
            "start": self.start + 1,
            "end": self.end,
            "strand": self.strand,
            "gene_id": self.gene_id,
            "gene_name": self.gene_name,
            "significance": self.significance,
            "inclusion_delta": self.inclusion_delta,
            "source": self.source,
        }
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


# =============================================================================
# Event Collections
# =============================================================================


class EventSet:
    """Immutable, ordered collection of splicing events.

    Example:
        >>> events = EventSet(adapters.read_rmats("SE.MATS.JC.txt", EventType.SKIPPED_EXON))
        >>> significant = events.filter(fdr=0.05, psi_delta=0.1)
        >>> len(significant) <= len(events)
        True
    """

    def __init__(self, events: Iterable[SplicingEvent] = ()) -> None:
        self._events: tuple[SplicingEvent, ...] = tuple(events)
        self._by_id: dict[str, SplicingEvent] = {}
        for event in self._events:
            if event.event_id in self._by_id:
                raise EventTableError(f"Duplicate event id: {event.event_id}")
            self._by_id[event.event_id] = event

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[SplicingEvent]:
        return iter(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def __add__(self, other: EventSet) -> EventSet:
        return EventSet(self._events + tuple(other))

    def get(self, event_id: str) -> SplicingEvent | None:
        """Look up an event by id."""
        return self._by_id.get(event_id)

    @property
    def event_ids(self) -> list[str]:
        """Event ids in collection order."""
        return [event.event_id for event in self._events]

    def filter(
        self,
        fdr: float | None = None,
        psi_delta: float | None = None,
        gene_ids: Iterable[str] | None = None,
        event_types: Iterable[EventType] | None = None,
    ) -> EventSet:
        """Select significant events.

        Args:
            fdr: Maximum significance value. When None, 0.05 is used and a
                warning is emitted. Use 1 to keep every event that has a
                significance value; events without one never pass.
            psi_delta: Absolute inclusion change must exceed this.
            gene_ids: Keep only events on these genes (id or symbol).
            event_types: Keep only these event types.

        Returns:
            A new EventSet; this one is unchanged.
        """
        if fdr is None:
            message = (
                f"No FDR cutoff selected; using FDR <= {DEFAULT_FDR}. "
                "Set fdr=1 to keep every event with an FDR."
            )
            warnings.warn(message, UserWarning, stacklevel=2)
            logger.warning(message)
            fdr = DEFAULT_FDR

        genes = set(gene_ids) if gene_ids is not None else None
        types = set(event_types) if event_types is not None else None

        kept = []
        n_missing = 0
        for event in self._events:
            if event.significance is None:
                n_missing += 1
                continue
            if not event.significance <= fdr:
                continue
            if psi_delta is not None and (
                event.effect_size is None or event.effect_size <= psi_delta
            ):
                continue
            if genes is not None and event.gene_id not in genes and event.gene_name not in genes:
                continue
            if types is not None and event.event_type not in types:
                continue
            kept.append(event)

        if n_missing:
            logger.info(f"Dropped {n_missing} events without a significance value")
        logger.info(f"Kept {len(kept)} of {len(self._events)} events after filtering")
        return EventSet(kept)

    def direction(self) -> dict[str, float | None]:
        """Inclusion delta per event id."""
        return {event.event_id: event.inclusion_delta for event in self._events}

    def to_dataframe(self) -> pd.DataFrame:
        """Events as a table of pass-through fields."""
        return pd.DataFrame([event.to_dict() for event in self._events])
