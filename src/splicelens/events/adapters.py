"""Adapters from upstream splicing tool tables to ``EventSet``.

Each reader accepts a path to the tool's tab-separated output or an
already loaded ``pandas.DataFrame`` and returns normalized events. Only
the fields the isoform builder and comparator need are interpreted; every
other column is carried in ``SplicingEvent.extra``.

Supported tools:

- rMATS ``*.MATS.JC.txt`` / ``*.MATS.JCEC.txt`` (SE, MXE, RI, A5SS, A3SS)
- IRFinder differential intron retention tables
- leafcutter per-intron results (grouped into intron clusters)

Example:
    >>> from splicelens.events.adapters import read_rmats
    >>> events = read_rmats("SE.MATS.JC.txt", EventType.SKIPPED_EXON)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from splicelens.core.models import Intron
from splicelens.events.model import ClusterIntron, EventSet, EventType, SplicingEvent
from splicelens.exceptions import EventTableError
from splicelens.utils.intervals import infer_strand

logger = logging.getLogger(__name__)

# =============================================================================
# Column Layouts
# =============================================================================

RMATS_COMMON = ("ID", "GeneID", "geneSymbol", "chr", "strand", "FDR", "IncLevelDifference")

# (region start, region end, alt start, alt end) columns per event type
RMATS_REGIONS = {
    EventType.SKIPPED_EXON: ("exonStart_0base", "exonEnd", None, None),
    EventType.MUTUALLY_EXCLUSIVE: (
        "1stExonStart_0base",
        "1stExonEnd",
        "2ndExonStart_0base",
        "2ndExonEnd",
    ),
    EventType.INTRON_RETENTION: ("upstreamEE", "downstreamES", None, None),
    EventType.ALT_5SS: ("longExonStart_0base", "longExonEnd", "shortES", "shortEE"),
    EventType.ALT_3SS: ("longExonStart_0base", "longExonEnd", "shortES", "shortEE"),
}

IRFINDER_COLUMNS = ("Chr", "Start", "End", "Direction", "Intron-GeneName/GeneID", "p-diff")

LEAFCUTTER_COLUMNS = ("chr", "start", "end", "clusterID", "deltapsi")

_STRAND_SUFFIX = re.compile(r"_[+-]$")


def _load_table(source: pd.DataFrame | Path | str) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        return source
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Event table not found: {path}")
    return pd.read_csv(path, sep="\t")


def _require_columns(df: pd.DataFrame, columns: Sequence[str], tool: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise EventTableError(f"{tool} table is missing columns: {', '.join(missing)}")


def _extra_fields(row: dict, used: Sequence[str]) -> dict:
    return {key: value for key, value in row.items() if key not in used}


def _float_or_none(value: object) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)


# =============================================================================
# rMATS
# =============================================================================


def read_rmats(source: pd.DataFrame | Path | str, event_type: EventType | str) -> EventSet:
    """Read one rMATS event table.

    rMATS reports 0-based starts and 1-based ends, which are already
    half-open coordinates. Event ids are ``<code>_<ID>``.

    Args:
        source: rMATS table or its path.
        event_type: Event type of the table (rMATS writes one file per type).

    Returns:
        EventSet with one event per row.

    Raises:
        EventTableError: If columns are missing or the type is unsupported.
    """
    if isinstance(event_type, str):
        event_type = EventType.from_code(event_type)
    if event_type not in RMATS_REGIONS:
        raise EventTableError(f"rMATS does not report {event_type.name} events")

    df = _load_table(source)
    start_col, end_col, alt_start_col, alt_end_col = RMATS_REGIONS[event_type]
    region_cols = [c for c in (start_col, end_col, alt_start_col, alt_end_col) if c]
    flank_cols = ["upstreamES", "upstreamEE", "downstreamES", "downstreamEE"]
    has_flanks = all(c in df.columns for c in flank_cols)
    _require_columns(df, list(RMATS_COMMON) + region_cols, "rMATS")

    use_flanks = has_flanks and event_type in (
        EventType.SKIPPED_EXON,
        EventType.MUTUALLY_EXCLUSIVE,
    )
    used = set(RMATS_COMMON) | set(region_cols)
    if use_flanks:
        used.update(flank_cols)

    events = []
    for row in df.to_dict("records"):
        upstream = downstream = None
        if use_flanks:
            upstream = (row["upstreamES"], row["upstreamEE"])
            downstream = (row["downstreamES"], row["downstreamEE"])

        events.append(
            SplicingEvent(
                event_id=f"{event_type.code}_{row['ID']}",
                event_type=event_type,
                seqid=str(row["chr"]),
                start=int(row[start_col]),
                end=int(row[end_col]),
                strand=str(row["strand"]),
                significance=_float_or_none(row["FDR"]),
                inclusion_delta=_float_or_none(row["IncLevelDifference"]),
                gene_id=str(row["GeneID"]).strip('"'),
                gene_name=str(row["geneSymbol"]).strip('"'),
                alt_start=int(row[alt_start_col]) if alt_start_col else None,
                alt_end=int(row[alt_end_col]) if alt_end_col else None,
                upstream=upstream,
                downstream=downstream,
                source="rmats",
                extra=_extra_fields(row, sorted(used)),
            )
        )

    logger.info(f"Read {len(events)} rMATS {event_type.code} events")
    return EventSet(events)


# =============================================================================
# IRFinder
# =============================================================================


def read_irfinder(source: pd.DataFrame | Path | str) -> EventSet:
    """Read an IRFinder differential intron retention table.

    FDR is the Benjamini-Hochberg adjustment of ``p-diff`` (rows without
    a p-value get no FDR) and the inclusion delta is
    ``A-IRratio - B-IRratio``. Event ids are ``<chr>:<Start>-<End>`` as
    written by IRFinder.

    Raises:
        EventTableError: If required columns are missing.
    """
    df = _load_table(source)
    _require_columns(df, list(IRFINDER_COLUMNS) + ["A-IRratio", "B-IRratio"], "IRFinder")

    pvalues = df["p-diff"].to_numpy(dtype=float)
    fdr = np.full(len(pvalues), np.nan)
    tested = ~np.isnan(pvalues)
    if tested.any():
        fdr[tested] = multipletests(pvalues[tested], method="fdr_bh")[1]
    delta = df["A-IRratio"].to_numpy(dtype=float) - df["B-IRratio"].to_numpy(dtype=float)
    used = set(IRFINDER_COLUMNS)

    events = []
    for i, row in enumerate(df.to_dict("records")):
        parts = str(row["Intron-GeneName/GeneID"]).split("/")
        gene_name = parts[0]
        gene_id = parts[1] if len(parts) > 1 else ""
        extra = _extra_fields(row, sorted(used))
        if len(parts) > 2:
            extra["status"] = parts[2]
        events.append(
            SplicingEvent(
                event_id=f"{row['Chr']}:{row['Start']}-{row['End']}",
                event_type=EventType.INTRON_RETENTION,
                seqid=str(row["Chr"]),
                start=int(row["Start"]),
                end=int(row["End"]),
                strand=str(row["Direction"]),
                significance=_float_or_none(fdr[i]),
                inclusion_delta=_float_or_none(delta[i]),
                gene_id=gene_id,
                gene_name=gene_name,
                source="irfinder",
                extra=extra,
            )
        )

    logger.info(f"Read {len(events)} IRFinder intron retention events")
    return EventSet(events)


# =============================================================================
# leafcutter
# =============================================================================


def read_leafcutter(
    source: pd.DataFrame | Path | str,
    introns: Sequence[Intron],
    fdr_column: str = "FDR",
) -> EventSet:
    """Read leafcutter per-intron results as intron cluster events.

    Introns are 1-based inclusive. Strand suffixes on cluster ids are
    removed and the strand of each cluster is inferred from the reference
    introns: exact junction matches first, majority of overlapping introns
    otherwise. Clusters whose introns all change in the same direction have
    no competing path and are skipped, as are clusters with a single intron.

    Args:
        source: leafcutter table or its path.
        introns: Reference introns used for strand inference.
        fdr_column: Column holding the cluster-level adjusted p-value.

    Returns:
        EventSet with one INTRON_CLUSTER event per usable cluster.

    Raises:
        EventTableError: If required columns are missing.
    """
    df = _load_table(source)
    _require_columns(df, LEAFCUTTER_COLUMNS, "leafcutter")

    df = df.copy()
    df["clusterID"] = df["clusterID"].astype(str).str.replace(_STRAND_SUFFIX, "", regex=True)

    events = []
    skipped = 0
    for cluster_id, group in df.groupby("clusterID", sort=True):
        deltas = group["deltapsi"].to_numpy(dtype=float)
        if len(group) < 2 or np.all(deltas < 0) or np.all(deltas > 0):
            skipped += 1
            continue

        seqid = str(group["chr"].iloc[0])
        junctions = [
            ClusterIntron(seqid, int(row.start) - 1, int(row.end), float(row.deltapsi))
            for row in group.itertuples(index=False)
        ]
        strand = infer_strand(junctions, introns)
        if strand is None:
            logger.debug(f"Cluster {cluster_id}: no strand supported by reference introns")
            strand = "."
        junctions = [j._replace(strand=strand) for j in junctions]

        significance = None
        if fdr_column in group.columns:
            significance = _float_or_none(group[fdr_column].min())

        gene_name = _first_str(group, "genes")
        gene_id = _first_str(group, "gene_id")

        events.append(
            SplicingEvent(
                event_id=str(cluster_id),
                event_type=EventType.INTRON_CLUSTER,
                seqid=seqid,
                start=min(j.start for j in junctions),
                end=max(j.end for j in junctions),
                strand=strand,
                significance=significance,
                gene_id=gene_id,
                gene_name=gene_name,
                introns=junctions,
                source="leafcutter",
                extra={"n_introns": len(junctions)},
            )
        )

    logger.info(
        f"Read {len(events)} leafcutter clusters ({skipped} skipped without competing introns)"
    )
    return EventSet(events)


def _first_str(group: pd.DataFrame, column: str) -> str:
    if column not in group.columns:
        return ""
    value = group[column].iloc[0]
    return "" if pd.isna(value) else str(value)
