"""Normalization of isoform identifiers into matching keys.

ORF tables reach the comparator with one of four id encodings:

- GENE: the id is the gene id itself (isoforms grouped per gene)
- EVENT_SUFFIX: ``<transcript>+<code>_<set> <event_id>`` (the ``_<set>``
  part is optional)
- CLUSTER: ``upre_``/``dnre_`` + an EVENT_SUFFIX id (intron clusters and
  alternative terminal exons)
- TRANSCRIPT: a plain reference transcript id

``parse_isoform_id`` reduces each of them to an ``IsoformKey`` once, so
matching works on a single representation.

Example:
    >>> parse_isoform_id("dnre_tx1+LC chr1:clu_7", "g1")
    IsoformKey(group_id='chr1:clu_7', match_id='tx1+LC chr1:clu_7', transcript_id='tx1', encoding=<IdEncoding.CLUSTER: 'cluster'>)
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

import pandas as pd

from splicelens.core.models import (
    CLUSTER_PREFIXES,
    EVENT_SEPARATOR,
    GROUP_SEPARATOR,
    SET_SEPARATOR,
)

KEY_COLUMNS = ("group_id", "match_id", "ref_transcript_id", "encoding")


class IdEncoding(Enum):
    """Isoform id conventions."""

    GENE = "gene"
    EVENT_SUFFIX = "event_suffix"
    CLUSTER = "cluster"
    TRANSCRIPT = "transcript"


class IsoformKey(NamedTuple):
    """Canonical matching key of an isoform id.

    Attributes:
        group_id: Event id for event-derived ids, gene id otherwise.
        match_id: Id shared by both isoforms of a pair (set label removed).
        transcript_id: Reference transcript the isoform came from.
        encoding: Detected id encoding.
    """

    group_id: str
    match_id: str
    transcript_id: str
    encoding: IdEncoding


def parse_isoform_id(isoform_id: str, gene_id: str | None = None) -> IsoformKey:
    """Normalize an isoform id.

    Args:
        isoform_id: Id from an ORF table.
        gene_id: Gene of the isoform, used for GENE and TRANSCRIPT ids.

    Returns:
        IsoformKey.
    """
    encoding = IdEncoding.EVENT_SUFFIX
    core = isoform_id
    for prefix in CLUSTER_PREFIXES:
        if isoform_id.startswith(prefix):
            core = isoform_id[len(prefix) :]
            encoding = IdEncoding.CLUSTER
            break

    head, _, group_id = core.partition(GROUP_SEPARATOR)
    if group_id and EVENT_SEPARATOR in head:
        transcript_id, code = head.split(EVENT_SEPARATOR, 1)
        code = code.split(SET_SEPARATOR, 1)[0]
        match_id = f"{transcript_id}{EVENT_SEPARATOR}{code}{GROUP_SEPARATOR}{group_id}"
        return IsoformKey(group_id, match_id, transcript_id, encoding)

    if gene_id is not None and isoform_id == gene_id:
        return IsoformKey(gene_id, gene_id, isoform_id, IdEncoding.GENE)
    return IsoformKey(gene_id or isoform_id, isoform_id, isoform_id, IdEncoding.TRANSCRIPT)


def annotate_keys(orfs: pd.DataFrame) -> pd.DataFrame:
    """Copy of an ORF table with key columns added.

    Adds ``group_id``, ``match_id``, ``ref_transcript_id`` and
    ``encoding`` (the encoding's string value).
    """
    orfs = orfs.copy()
    genes = orfs["gene_id"] if "gene_id" in orfs.columns else [None] * len(orfs)
    keys = [parse_isoform_id(str(i), None if pd.isna(g) else str(g)) for i, g in zip(orfs["id"], genes)]
    orfs["group_id"] = [k.group_id for k in keys]
    orfs["match_id"] = [k.match_id for k in keys]
    orfs["ref_transcript_id"] = [k.transcript_id for k in keys]
    orfs["encoding"] = [k.encoding.value for k in keys]
    return orfs


def uses_cluster_ids(orfs: pd.DataFrame, column: str = "encoding") -> bool:
    """True if any id in a keyed table is cluster-encoded."""
    if orfs.empty:
        return False
    return bool((orfs[column] == IdEncoding.CLUSTER.value).any())
