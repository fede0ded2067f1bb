"""ORF discovery and NMD prediction.

- Scan spliced transcripts for ORFs in up to three frames
- Select the longest, per-frame or top-N ORFs
- Label NMD susceptibility with the last exon-exon junction rule
- Report upstream ORFs in the 5'UTR

Example:
    >>> from splicelens.orfs import get_orfs
    >>> orfs = get_orfs(isoforms, genome)
"""

from splicelens.orfs.engine import (
    OrfCandidate,
    OrfFinder,
    OrfRecord,
    OrfSelection,
    find_candidates,
    get_orfs,
    orfs_to_dataframe,
    uorfs_to_dataframe,
)
from splicelens.orfs.nmd import NmdCall, NmdClass, NmdRule
from splicelens.orfs.uorfs import Uorf, find_uorfs

__all__ = [
    "NmdCall",
    "NmdClass",
    "NmdRule",
    "OrfCandidate",
    "OrfFinder",
    "OrfRecord",
    "OrfSelection",
    "Uorf",
    "find_candidates",
    "find_uorfs",
    "get_orfs",
    "orfs_to_dataframe",
    "uorfs_to_dataframe",
]
