"""Cross-isoform ORF comparison.

- Normalize isoform ids into matching keys
- Pair X and Y ORFs with a staged matching cascade
- Score protein similarity with a containment-weighted edit distance
- Summarize ORF, UTR, NMD and domain changes per event

Example:
    >>> from splicelens.compare import orf_diff
    >>> changes = orf_diff(orfs_x, orfs_y)
"""

from splicelens.compare.attributes import attribute_change, representative_pairs
from splicelens.compare.domains import FeatureIndex, SequenceFeature
from splicelens.compare.keys import IdEncoding, IsoformKey, annotate_keys, parse_isoform_id
from splicelens.compare.matching import match_orfs
from splicelens.compare.orfdiff import orf_diff
from splicelens.compare.similarity import edit_distance, orf_similarity
from splicelens.compare.summary import orient_isoforms, transcript_change_summary

__all__ = [
    "FeatureIndex",
    "IdEncoding",
    "IsoformKey",
    "SequenceFeature",
    "annotate_keys",
    "attribute_change",
    "edit_distance",
    "match_orfs",
    "orf_diff",
    "orf_similarity",
    "orient_isoforms",
    "parse_isoform_id",
    "representative_pairs",
    "transcript_change_summary",
]
