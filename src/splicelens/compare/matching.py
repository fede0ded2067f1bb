"""Pairing of ORF records across the two isoform sides.

Matching runs as a priority cascade over the normalized keys from
``splicelens.compare.keys``; the first step that finds a partner wins
and, within a step, the first candidate row in table order wins:

1. exact ``(match_id, frame)``
2. ``match_id`` alone (the reading frame changed, e.g. through a 5'UTR
   frameshift)
3. cross-expansion by ``(reference transcript, frame)``: an
   event-suffixed id on one side is paired with a copy of the other
   side's record for the same reference transcript; skipped when either
   side carries cluster ids
4. anything still unpaired is dropped

The result has every input column twice, suffixed ``_x`` and ``_y``,
plus the resolved ``match_id``, ``group_id`` and the ``match_step`` that
paired the row.
"""

from __future__ import annotations

import logging

import pandas as pd

from splicelens.compare.keys import IdEncoding, annotate_keys, uses_cluster_ids

logger = logging.getLogger(__name__)

NO_FRAME = -1


def _prepare(orfs: pd.DataFrame, suffix: str) -> pd.DataFrame:
    keyed = annotate_keys(orfs).reset_index(drop=True)
    keyed["_frame"] = keyed["frame"].astype("Int64").fillna(NO_FRAME).astype(int)
    keyed["_row"] = range(len(keyed))
    return keyed.add_suffix(suffix)


def _pair(
    left: pd.DataFrame,
    right: pd.DataFrame,
    keys: list[str],
    left_suffix: str,
    right_suffix: str,
) -> pd.DataFrame:
    """Inner join keeping the first right row per key."""
    if left.empty or right.empty:
        return pd.DataFrame()
    left_on = [f"{k}{left_suffix}" for k in keys]
    right_on = [f"{k}{right_suffix}" for k in keys]
    first = right.drop_duplicates(subset=right_on, keep="first")
    return left.merge(first, left_on=left_on, right_on=right_on, how="inner")


def match_orfs(x: pd.DataFrame, y: pd.DataFrame) -> pd.DataFrame:
    """Pair X-side ORF records with their Y-side counterparts.

    Args:
        x: ORF table of the X isoforms (``id``, ``gene_id``, ``frame``, ...).
        y: ORF table of the Y isoforms.

    Returns:
        One row per resolved pair.
    """
    xs = _prepare(x, "_x")
    ys = _prepare(y, "_y")

    exact = _pair(xs, ys, ["match_id", "_frame"], "_x", "_y")
    steps = [(1, exact, "_x")]
    remaining = _unmatched(xs, [exact], "_row_x")

    frameless = _pair(remaining, ys, ["match_id"], "_x", "_y")
    steps.append((2, frameless, "_x"))
    remaining = _unmatched(remaining, [frameless], "_row_x")

    clusters = uses_cluster_ids(xs, "encoding_x") or uses_cluster_ids(ys, "encoding_y")
    if not remaining.empty and not clusters:
        suffix_x = remaining[remaining["encoding_x"] == IdEncoding.EVENT_SUFFIX.value]
        expanded_y = _pair(suffix_x, ys, ["ref_transcript_id", "_frame"], "_x", "_y")
        steps.append((3, expanded_y, "_x"))

        used_y = set()
        for _, table, _ in steps:
            if not table.empty:
                used_y.update(table["_row_y"])
        pending_y = ys[~ys["_row_y"].isin(used_y)]
        suffix_y = pending_y[pending_y["encoding_y"] == IdEncoding.EVENT_SUFFIX.value]
        expanded_x = _pair(suffix_y, xs, ["ref_transcript_id", "_frame"], "_y", "_x")
        steps.append((3, expanded_x, "_y"))
        remaining = _unmatched(remaining, [expanded_y], "_row_x")

    tables = []
    for step, table, owner in steps:
        if table.empty:
            continue
        table = table.copy()
        table["match_id"] = table[f"match_id{owner}"]
        table["group_id"] = table[f"group_id{owner}"]
        table["match_step"] = step
        tables.append(table)

    if not remaining.empty:
        logger.info(f"Dropped {len(remaining)} X-side ORF records without a Y-side counterpart")

    if not tables:
        return _empty_result(xs, ys)
    matched = pd.concat(tables, ignore_index=True)
    matched = matched.drop_duplicates(subset=["match_id", "_row_x", "_row_y"])
    helpers = [c for c in matched.columns if c.startswith("_")]
    return matched.drop(columns=helpers).reset_index(drop=True)


def _unmatched(table: pd.DataFrame, matched: list[pd.DataFrame], row_column: str) -> pd.DataFrame:
    done = set()
    for m in matched:
        if not m.empty:
            done.update(m[row_column])
    return table[~table[row_column].isin(done)]


def _empty_result(xs: pd.DataFrame, ys: pd.DataFrame) -> pd.DataFrame:
    columns = [c for c in list(xs.columns) + list(ys.columns) if not c.startswith("_")]
    return pd.DataFrame(columns=columns + ["match_id", "group_id", "match_step"])
