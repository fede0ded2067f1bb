"""Splicing events and upstream tool adapters.

Example:
    >>> from splicelens.events import EventType, read_rmats
    >>> events = read_rmats("SE.MATS.JC.txt", EventType.SKIPPED_EXON).filter(fdr=0.05)
"""

from splicelens.events.adapters import read_irfinder, read_leafcutter, read_rmats
from splicelens.events.model import ClusterIntron, EventSet, EventType, SplicingEvent

__all__ = [
    "ClusterIntron",
    "EventSet",
    "EventType",
    "SplicingEvent",
    "read_irfinder",
    "read_leafcutter",
    "read_rmats",
]
