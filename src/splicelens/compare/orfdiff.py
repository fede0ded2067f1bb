"""ORF change evaluation between X and Y isoforms.

``orf_diff`` pairs the ORFs of the two isoform sides, aggregates them per
key and scores every resulting row:

- ``percent_orf_shared``: containment similarity of the two proteins
- ``max_percent_orf_shared``: upper bound of the shared fraction given
  the two lengths, ``(max_len - |len_x - len_y|) / max_len``
- ``orf_percent_kept_x/y``: shared length relative to each side's ORF

With NMD filtering on, ORFs predicted as NMD targets are preferred out.
The comparison is attempted with both sides filtered, then only X, then
only Y, then neither; every id keeps the row of the first attempt that
produced it, recorded in ``filtered`` (``both``, ``x``, ``y`` or
``none``). An event is therefore never lost only because both of its
ORFs look NMD-targeted.
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np
import pandas as pd

from splicelens.compare.attributes import representative_pairs
from splicelens.compare.domains import FeatureIndex
from splicelens.compare.matching import match_orfs
from splicelens.compare.similarity import orf_similarity
from splicelens.config import CompareConfig, DEFAULT_NMD_FILTER_CUTOFF
from splicelens.utils.logging import ProgressLogger

logger = logging.getLogger(__name__)

AGGREGATORS: dict[str, Callable[[list[float]], float]] = {
    "max": max,
    "min": min,
    "mean": lambda values: float(np.mean(values)),
}

CHANGE_COLUMNS = [
    "id",
    "gene_id",
    "orf_length_x",
    "orf_length_y",
    "utr3_length_x",
    "utr3_length_y",
    "utr5_length_x",
    "utr5_length_y",
    "filtered",
    "percent_orf_shared",
    "max_percent_orf_shared",
    "orf_percent_kept_x",
    "orf_percent_kept_y",
]


def _passes_nmd(orfs: pd.DataFrame, cutoff: float) -> pd.DataFrame:
    scores = orfs["nmd_score"].astype("Float64")
    return orfs[(scores < cutoff).fillna(False).astype(bool)]


def _change_rows(
    x: pd.DataFrame,
    y: pd.DataFrame,
    config: CompareConfig,
) -> pd.DataFrame:
    reps = representative_pairs(match_orfs(x, y), "orf_length", config.compare_by, config.aggregate)
    if reps.empty:
        return reps
    reps["gene_id"] = reps["gene_id_x"]
    return reps


def orf_diff(
    x: pd.DataFrame,
    y: pd.DataFrame,
    config: CompareConfig | None = None,
    nmd_cutoff: float = DEFAULT_NMD_FILTER_CUTOFF,
    all_orfs: pd.DataFrame | None = None,
    features: FeatureIndex | None = None,
) -> pd.DataFrame:
    """Evaluate ORF changes between X and Y isoforms.

    Args:
        x: ORF table of the X (higher inclusion) isoforms.
        y: ORF table of the Y isoforms.
        config: Comparison settings.
        nmd_cutoff: ORFs with ``nmd_score`` below this pass NMD filtering.
        all_orfs: ORF table of the annotated protein-coding transcripts;
            enables ``gene_similarity_x/y`` when ``config.compare_to_gene``.
        features: Protein features; enables ``domains_only_in_x/y``.

    Returns:
        One row per compared id.
    """
    config = config or CompareConfig()

    if config.filter_nmd:
        fx = _passes_nmd(x, nmd_cutoff)
        fy = _passes_nmd(y, nmd_cutoff)
        attempts = [("both", fx, fy), ("x", fx, y), ("y", x, fy), ("none", x, y)]
    else:
        attempts = [(False, x, y)]

    tables = []
    for label, ax, ay in attempts:
        rows = _change_rows(ax, ay, config)
        if rows.empty:
            continue
        rows["filtered"] = label
        tables.append(rows)

    if not tables:
        logger.warning("No ORF pairs could be matched between X and Y isoforms")
        return pd.DataFrame(columns=CHANGE_COLUMNS)

    changes = pd.concat(tables, ignore_index=True).drop_duplicates(subset="id", keep="first")
    changes = changes.reset_index(drop=True)
    _score_similarity(changes, config.substitution_cost)

    if config.compare_to_gene and all_orfs is not None:
        _add_gene_similarity(changes, all_orfs, config)

    columns = list(CHANGE_COLUMNS)
    if not config.compare_utr:
        columns = [c for c in columns if not c.startswith("utr")]
    if "gene_similarity_x" in changes.columns:
        columns += ["gene_similarity_x", "gene_similarity_y"]
    if features is not None:
        _add_domain_changes(changes, features)
        columns += ["domains_only_in_x", "domains_only_in_y"]

    logger.info(f"Evaluated ORF changes for {len(changes)} ids")
    return changes[columns]


# =============================================================================
# Scoring Helpers
# =============================================================================


def _score_similarity(changes: pd.DataFrame, substitution_cost: int) -> None:
    progress = ProgressLogger(logger, total=len(changes), interval=500, description="Scoring ORFs")
    scores = []
    for seq_x, seq_y in zip(changes["orf_sequence_x"], changes["orf_sequence_y"]):
        scores.append(orf_similarity(seq_x, seq_y, substitution_cost))
        progress.update()

    shared = np.array([np.nan if s is None else s for s in scores], dtype=float)
    len_x = _as_float(changes["orf_length_x"])
    len_y = _as_float(changes["orf_length_y"])
    max_len = np.maximum(len_x, len_y)

    with np.errstate(divide="ignore", invalid="ignore"):
        changes["percent_orf_shared"] = _nullable(shared)
        changes["max_percent_orf_shared"] = _nullable((max_len - np.abs(len_x - len_y)) / max_len)
        changes["orf_percent_kept_x"] = _nullable(shared * max_len / len_x)
        changes["orf_percent_kept_y"] = _nullable(shared * max_len / len_y)


def _as_float(values: pd.Series) -> np.ndarray:
    return values.astype("Float64").to_numpy(dtype=float, na_value=np.nan)


def _nullable(values: np.ndarray) -> pd.arrays.FloatingArray:
    return pd.array(np.where(np.isfinite(values), values, np.nan), dtype="Float64")


def _add_gene_similarity(changes: pd.DataFrame, all_orfs: pd.DataFrame, config: CompareConfig) -> None:
    aggregate = AGGREGATORS[config.gene_aggregate]
    by_gene: dict[str, list[str]] = {}
    for gene_id, sequence in zip(all_orfs["gene_id"], all_orfs["orf_sequence"]):
        if sequence is not None and not pd.isna(sequence):
            by_gene.setdefault(str(gene_id), []).append(sequence)

    for side in ("x", "y"):
        values = []
        for gene_id, sequence in zip(changes["gene_id"], changes[f"orf_sequence_{side}"]):
            scores = [
                s
                for s in (
                    orf_similarity(reference, sequence, config.substitution_cost)
                    for reference in by_gene.get(str(gene_id), [])
                )
                if s is not None
            ]
            values.append(aggregate(scores) if scores else None)
        changes[f"gene_similarity_{side}"] = pd.array(values, dtype="Float64")


def _add_domain_changes(changes: pd.DataFrame, features: FeatureIndex) -> None:
    only_x, only_y = [], []
    for gene_id, seq_x, seq_y in zip(
        changes["gene_id"], changes["orf_sequence_x"], changes["orf_sequence_y"]
    ):
        in_x, in_y = features.domain_changes(seq_x, seq_y, str(gene_id))
        only_x.append(in_x)
        only_y.append(in_y)
    changes["domains_only_in_x"] = only_x
    changes["domains_only_in_y"] = only_y
