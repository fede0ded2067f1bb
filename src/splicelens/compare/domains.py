"""Protein sequence feature presence in predicted ORFs.

Features come from a UniProt-style table with one row per annotated
region of a reference protein. A feature counts as present in an ORF
when its amino acid sequence occurs in the ORF's translation. Comparing
the feature sets of the X and Y ORFs of a change row shows which
domains the splicing event gains or loses.

Point features (modified residues, sequence conflicts, isoform and
variant annotations) say nothing about domain content and are ignored.

Example:
    >>> index = FeatureIndex.from_dataframe(features_df)
    >>> index.domain_changes(orf_x, orf_y, "ENSG00000100320.3")
    ('RRM:12-90', '')
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Iterable, NamedTuple

import pandas as pd

from splicelens.exceptions import InputContractError

logger = logging.getLogger(__name__)

IGNORED_FEATURE_CLASSES = frozenset({"MOD_RES", "CONFLICT", "VAR_SEQ", "VARIANT"})
FEATURE_COLUMNS = ("gene_id", "feature_class", "description", "start", "end", "aa_seq")
FEATURE_SEPARATOR = ";"

_VERSION = re.compile(r"\.\d+$")

# =============================================================================
# Data Structures
# =============================================================================


class SequenceFeature(NamedTuple):
    """An annotated protein region.

    Attributes:
        gene_id: Gene of the protein (version suffix removed).
        feature_class: Feature class (DOMAIN, REGION, MOTIF, ...).
        description: Feature description.
        start: Start position in protein (1-based).
        end: End position in protein (1-based).
        aa_seq: Amino acid sequence of the region.
    """

    gene_id: str
    feature_class: str
    description: str
    start: int
    end: int
    aa_seq: str

    @property
    def label(self) -> str:
        """Compact label, e.g. ``RRM:12-90``."""
        return re.sub(r"\s+", "", f"{self.description}:{self.start}-{self.end}")


def strip_version(gene_id: str) -> str:
    """Remove an Ensembl-style version suffix."""
    return _VERSION.sub("", gene_id)


# =============================================================================
# Feature Index
# =============================================================================


class FeatureIndex:
    """Sequence features grouped by gene."""

    def __init__(self, features: Iterable[SequenceFeature]) -> None:
        self._by_gene: dict[str, list[SequenceFeature]] = defaultdict(list)
        n_ignored = 0
        for feature in features:
            if feature.feature_class in IGNORED_FEATURE_CLASSES or not feature.aa_seq:
                n_ignored += 1
                continue
            self._by_gene[strip_version(feature.gene_id)].append(feature)
        logger.debug(
            f"Indexed features for {len(self._by_gene)} genes ({n_ignored} point features ignored)"
        )

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> FeatureIndex:
        """Build an index from a feature table.

        Raises:
            InputContractError: If required columns are missing.
        """
        missing = [c for c in FEATURE_COLUMNS if c not in df.columns]
        if missing:
            raise InputContractError(f"Feature table is missing columns: {', '.join(missing)}")
        return cls(
            SequenceFeature(
                gene_id=str(row.gene_id),
                feature_class=str(row.feature_class),
                description=str(row.description),
                start=int(row.start),
                end=int(row.end),
                aa_seq="" if pd.isna(row.aa_seq) else str(row.aa_seq),
            )
            for row in df.itertuples(index=False)
        )

    def __contains__(self, gene_id: str) -> bool:
        return strip_version(gene_id) in self._by_gene

    def features_present(self, orf_sequence: str | None, gene_id: str) -> list[str] | None:
        """Labels of the gene's features found in an ORF.

        Returns:
            Labels in annotation order, or None if the gene has no
            features or the ORF is missing.
        """
        features = self._by_gene.get(strip_version(gene_id))
        if not features or orf_sequence is None or pd.isna(orf_sequence):
            return None
        return [f.label for f in features if f.aa_seq in orf_sequence]

    def domain_changes(
        self,
        orf_x: str | None,
        orf_y: str | None,
        gene_id: str,
    ) -> tuple[str | None, str | None]:
        """Features present in only one of two ORFs.

        Returns:
            (only in X, only in Y) as ";"-joined labels, (None, None) when
            the gene has no features or an ORF is missing.
        """
        in_x = self.features_present(orf_x, gene_id)
        in_y = self.features_present(orf_y, gene_id)
        if in_x is None or in_y is None:
            return None, None
        only_x = [f for f in dict.fromkeys(in_x) if f not in in_y]
        only_y = [f for f in dict.fromkeys(in_y) if f not in in_x]
        return FEATURE_SEPARATOR.join(only_x), FEATURE_SEPARATOR.join(only_y)
