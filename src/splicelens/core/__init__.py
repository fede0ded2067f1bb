"""Core data model for splicelens.

- Exon / Intron: immutable annotation records
- Isoform / IsoformPair: reconstructed splice paths per event
- ExonAnnotation (in ``splicelens.core.annotation``): transcript index over
  reference exons

Example:
    >>> from splicelens.core import Exon, Isoform
    >>> from splicelens.core.annotation import ExonAnnotation
    >>> annotation = ExonAnnotation(exons)
"""

from splicelens.core.models import Exon, Intron, Isoform, IsoformPair, make_isoform_id

__all__ = [
    "Exon",
    "Intron",
    "Isoform",
    "IsoformPair",
    "make_isoform_id",
]
