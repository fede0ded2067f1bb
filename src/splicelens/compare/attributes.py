"""Per-key aggregation of ORF attributes across matched isoform pairs.

With ``compare_by="gene"`` all pairs of one group (the event for
event-derived ids, the gene otherwise) collapse into one row; with
``compare_by="transcript"`` every matched isoform id keeps its own row.
On each side the record holding the aggregate value (max or min of the
attribute) represents the key, so its other fields (UTR lengths,
sequence, NMD score) stay consistent with the reported value.
"""

from __future__ import annotations

import logging

import pandas as pd

from splicelens.compare.matching import match_orfs

logger = logging.getLogger(__name__)

SIDES = ("_x", "_y")


def _key_column(compare_by: str) -> str:
    if compare_by == "gene":
        return "group_id"
    if compare_by == "transcript":
        return "match_id"
    raise ValueError(f"compare_by must be 'gene' or 'transcript', got {compare_by!r}")


def representative_pairs(
    pairs: pd.DataFrame,
    attribute: str = "orf_length",
    compare_by: str = "gene",
    aggregate: str = "max",
) -> pd.DataFrame:
    """Pick one X and one Y record per key.

    Args:
        pairs: Output of ``match_orfs``.
        attribute: Attribute to aggregate (without side suffix).
        compare_by: "gene" or "transcript".
        aggregate: "max" or "min".

    Returns:
        One row per key present on both sides; the key is in column
        ``id`` and every record field keeps its ``_x``/``_y`` suffix.
    """
    if aggregate not in ("max", "min"):
        raise ValueError(f"aggregate must be 'max' or 'min', got {aggregate!r}")
    key = _key_column(compare_by)
    if pairs.empty:
        return pd.DataFrame(columns=["id"])

    sides = []
    for suffix in SIDES:
        columns = [c for c in pairs.columns if c.endswith(suffix)]
        side = pairs[[key] + columns].sort_values(
            f"{attribute}{suffix}",
            ascending=(aggregate == "min"),
            na_position="last",
            kind="stable",
        )
        sides.append(side.drop_duplicates(subset=key))

    merged = sides[0].merge(sides[1], on=key, how="inner")
    return merged.rename(columns={key: "id"}).sort_values("id", kind="stable").reset_index(drop=True)


def attribute_change(
    x: pd.DataFrame,
    y: pd.DataFrame,
    attribute: str = "orf_length",
    compare_by: str = "gene",
    aggregate: str = "max",
    compare_utr: bool = False,
) -> pd.DataFrame:
    """Compare one attribute between X and Y isoform ORFs.

    Args:
        x: ORF table of the X isoforms.
        y: ORF table of the Y isoforms.
        attribute: Column to compare.
        compare_by: Aggregate per "gene" group or per "transcript".
        aggregate: "max" or "min" across the records of one key.
        compare_utr: Also report UTR lengths of the representative ORFs
            (only for ``attribute="orf_length"``).

    Returns:
        DataFrame with ``id``, ``<attribute>_x`` and ``<attribute>_y``
        (and ``utr3_length_x/y``, ``utr5_length_x/y``).
    """
    reps = representative_pairs(match_orfs(x, y), attribute, compare_by, aggregate)
    columns = ["id", f"{attribute}_x", f"{attribute}_y"]
    if compare_utr and attribute == "orf_length":
        columns += ["utr3_length_x", "utr3_length_y", "utr5_length_x", "utr5_length_y"]
    if reps.empty:
        return pd.DataFrame(columns=columns)
    return reps[columns].copy()
