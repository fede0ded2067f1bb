"""End-to-end ORF change summary for splicing events.

``transcript_change_summary`` chains the pipeline stages:

1. orient every isoform pair so that X is the higher-inclusion isoform
2. optionally export the oriented isoforms as GTF
3. predict ORFs and NMD labels on both sides
4. compare the two sides (``orf_diff``), add NMD score changes
5. attach the originating event fields

Direction is an explicit argument: a mapping of event id to inclusion
delta. A positive delta keeps the inclusion isoform (included exon,
retained intron, long splice site, ...) as X; a negative delta swaps the
pair. Events without a delta keep the inclusion isoform as X. Intron
cluster and alternative terminal exon events always use dnre as X and
upre as Y.

Example:
    >>> from splicelens.compare.summary import transcript_change_summary
    >>> changes = transcript_change_summary(pairs, genome, events=events)
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Mapping, Sequence

import attrs
import pandas as pd

from splicelens.compare.attributes import attribute_change
from splicelens.compare.domains import FeatureIndex
from splicelens.compare.orfdiff import orf_diff
from splicelens.config import Config
from splicelens.core.annotation import ExonAnnotation
from splicelens.core.models import GROUP_SEPARATOR, Isoform, IsoformPair
from splicelens.events.model import EventSet, EventType
from splicelens.io.gtf import write_isoforms_gtf
from splicelens.orfs.engine import OrfFinder, orfs_to_dataframe
from splicelens.orfs.nmd import NmdRule
from splicelens.utils.logging import Timer
from splicelens.utils.sequences import SequenceSource

logger = logging.getLogger(__name__)

COMP_SET_X = "X"
COMP_SET_Y = "Y"


# =============================================================================
# Orientation
# =============================================================================


def _is_negative(delta: float | None) -> bool:
    return delta is not None and not math.isnan(delta) and delta < 0


def orient_isoforms(
    pairs: Sequence[IsoformPair],
    direction: Mapping[str, float | None] | None = None,
) -> tuple[list[Isoform], list[Isoform]]:
    """Split isoform pairs into X and Y sides.

    Args:
        pairs: Isoform pairs from the builder.
        direction: Inclusion delta per event id.

    Returns:
        (X isoforms, Y isoforms), labelled with ``comp_set``.
    """
    direction = direction or {}
    x_side, y_side = [], []
    n_flipped = 0
    for pair in pairs:
        x, y = pair.inclusion, pair.exclusion
        fixed = EventType.from_code(pair.event_code).uses_role_prefix
        if not fixed and _is_negative(direction.get(pair.event_id)):
            x, y = y, x
            n_flipped += 1
        x_side.append(x.with_comp_set(COMP_SET_X))
        y_side.append(y.with_comp_set(COMP_SET_Y))

    logger.debug(f"Oriented {len(pairs)} pairs ({n_flipped} flipped by inclusion delta)")
    return x_side, y_side


# =============================================================================
# Pipeline
# =============================================================================


def _event_id_of(change_id: str) -> str:
    if GROUP_SEPARATOR in change_id:
        return change_id.split(GROUP_SEPARATOR, 1)[1]
    return change_id


def _reference_orfs(
    annotation: ExonAnnotation,
    isoforms: Sequence[Isoform],
    source: SequenceSource,
    config: Config,
) -> pd.DataFrame:
    genes = {isoform.gene_id for isoform in isoforms}
    references = annotation.as_isoforms(gene_ids=genes, transcript_type="protein_coding")
    finder = OrfFinder(
        attrs.evolve(config.orf, selection="longest", uorfs=False),
        NmdRule.from_config(config.nmd),
    )
    return orfs_to_dataframe(finder.run(references, source))


def transcript_change_summary(
    pairs: Sequence[IsoformPair],
    source: SequenceSource,
    events: EventSet | None = None,
    direction: Mapping[str, float | None] | None = None,
    config: Config | None = None,
    annotation: ExonAnnotation | None = None,
    features: FeatureIndex | None = None,
    export_gtf: Path | str | None = None,
) -> pd.DataFrame:
    """Summarize ORF changes caused by splicing events.

    Args:
        pairs: Isoform pairs from the builder.
        source: Genome sequence collaborator.
        events: Events the pairs were built from; supplies pass-through
            fields and, unless ``direction`` is given, the inclusion deltas.
        direction: Inclusion delta per event id.
        config: Pipeline settings.
        annotation: Reference annotation, needed for gene-level similarity.
        features: Protein features for domain presence changes.
        export_gtf: Write the oriented isoforms to this GTF file.

    Returns:
        One row per compared id with event fields first.
    """
    config = config or Config()
    if direction is None and events is not None:
        direction = events.direction()

    x_isoforms, y_isoforms = orient_isoforms(pairs, direction)

    if export_gtf is not None:
        write_isoforms_gtf(x_isoforms + y_isoforms, export_gtf)

    finder = OrfFinder(config.orf, NmdRule.from_config(config.nmd))
    with Timer("ORF prediction", logger):
        orfs_x = orfs_to_dataframe(finder.run(x_isoforms, source))
        orfs_y = orfs_to_dataframe(finder.run(y_isoforms, source))

    all_orfs = None
    if config.compare.compare_to_gene:
        if annotation is None:
            logger.warning("Gene-level similarity requested without an annotation; skipped")
        else:
            all_orfs = _reference_orfs(annotation, x_isoforms + y_isoforms, source, config)

    with Timer("ORF comparison", logger):
        changes = orf_diff(
            orfs_x,
            orfs_y,
            config.compare,
            nmd_cutoff=config.nmd.filter_cutoff,
            all_orfs=all_orfs,
            features=features,
        )

    if config.compare.filter_nmd and not changes.empty:
        nmd = attribute_change(
            orfs_x,
            orfs_y,
            attribute="nmd_score",
            compare_by=config.compare.compare_by,
            aggregate="min",
        )
        changes = changes.merge(nmd, on="id", how="left")

    if events is not None and not changes.empty:
        changes = _attach_events(changes, events)
    return changes


def _attach_events(changes: pd.DataFrame, events: EventSet) -> pd.DataFrame:
    table = events.to_dataframe()
    if table.empty:
        return changes
    changes = changes.copy()
    changes.insert(0, "event_id", [_event_id_of(str(i)) for i in changes["id"]])
    overlap = [c for c in table.columns if c in changes.columns and c != "event_id"]
    table = table.rename(columns={c: f"event_{c}" for c in overlap})
    merged = table.merge(changes, on="event_id", how="right")
    unmatched = merged["event_type"].isna().sum()
    if unmatched:
        logger.debug(f"{unmatched} change rows have no matching event")
    return merged
