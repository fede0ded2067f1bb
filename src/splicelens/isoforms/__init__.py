"""Alternative isoform reconstruction.

This package turns splicing events into concrete pairs of splice paths:

- Build inclusion/exclusion isoforms per event and reference transcript
- Edit exon paths by region replacement, intron retention and junction
  insertion (intron clusters)

Example:
    >>> from splicelens.isoforms import IsoformBuilder
    >>> pairs = IsoformBuilder(annotation).build_all(events)
"""

from splicelens.isoforms.builder import IsoformBuilder, build_isoforms
from splicelens.isoforms.clusters import apply_junction, apply_junctions

__all__ = [
    "IsoformBuilder",
    "apply_junction",
    "apply_junctions",
    "build_isoforms",
]
