"""Utility functions for splicelens.

This module provides common utilities used across splicelens:

- Interval operations (overlap, junction matching, merge, split)
- Sequence manipulation (reverse complement, translation)
- Logging configuration and progress reporting

Example:
    >>> from splicelens.utils import intervals, sequences
    >>> introns = intervals.introns_from_exons(exons)
    >>> protein = sequences.translate("ATGAAATAG", to_stop=True)
"""

from splicelens.utils.intervals import (
    GenomicInterval,
    Interval,
    exon_junction_positions,
    find_overlaps_genomic,
    infer_strand,
    introns_from_exons,
    merge_intervals,
    order_exons,
    overlaps_by_junction,
    split_overlapping_exons,
)
from splicelens.utils.sequences import reverse_complement, spliced_sequence, translate

__all__ = [
    "GenomicInterval",
    "Interval",
    "exon_junction_positions",
    "find_overlaps_genomic",
    "infer_strand",
    "introns_from_exons",
    "merge_intervals",
    "order_exons",
    "overlaps_by_junction",
    "reverse_complement",
    "spliced_sequence",
    "split_overlapping_exons",
    "translate",
]
