"""Open reading frame prediction for exon-ordered transcripts.

The spliced sequence of each isoform is scanned codon by codon in up to
three reading frames. In each frame an ORF opens at the first start codon
and closes at the next in-frame stop codon; scanning then resumes for the
next start. An ORF that reaches the end of the transcript without a stop
is kept as a no-stop candidate and only ranked when explicitly requested.

Transcript coordinates are 0-based: ``start_site`` is the first base of
the start codon and ``stop_site`` the position just after the stop codon,
so ``utr5_length + orf_length + utr3_length == transcript_length``.

Selection modes:

- LONGEST: the single longest ORF over all frames
- PER_FRAME: the longest ORF of each frame
- TOP_N: the N longest ORFs regardless of frame

Ties are broken by earlier start, then lower frame.

Example:
    >>> from splicelens.orfs.engine import get_orfs
    >>> orfs = get_orfs(isoforms, genome)
    >>> orfs[["id", "frame", "orf_length", "nmd_class"]].head()
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, NamedTuple, Sequence

import attrs
import pandas as pd

from splicelens.config import NmdConfig, OrfConfig
from splicelens.core.models import Isoform
from splicelens.orfs.nmd import NmdRule
from splicelens.orfs.uorfs import Uorf, find_uorfs, select_for_uorf_search
from splicelens.utils.intervals import exon_junction_positions
from splicelens.utils.logging import ProgressLogger
from splicelens.utils.sequences import STOP_CODONS, SequenceSource, spliced_sequence, translate

logger = logging.getLogger(__name__)

INTEGER_COLUMNS = (
    "frame",
    "start_site",
    "stop_site",
    "orf_length",
    "utr5_length",
    "utr3_length",
    "transcript_length",
    "n_junctions",
    "stop_to_last_junction",
    "rank",
    "n_uorfs",
    "max_uorf_length",
)

# =============================================================================
# Data Structures
# =============================================================================


class OrfSelection(Enum):
    """ORF selection policy."""

    LONGEST = "longest"
    PER_FRAME = "per_frame"
    TOP_N = "top_n"


class OrfCandidate(NamedTuple):
    """A start-to-stop run in one reading frame.

    Attributes:
        frame: Reading frame (0, 1 or 2).
        start_site: Position of the start codon.
        stop_site: Position just after the stop codon, or the end of the
            last complete codon for no-stop candidates.
        has_stop: Whether an in-frame stop codon closes the run.
    """

    frame: int
    start_site: int
    stop_site: int
    has_stop: bool

    @property
    def length(self) -> int:
        return self.stop_site - self.start_site


@attrs.define(slots=True)
class OrfRecord:
    """ORF prediction for one isoform.

    A transcript without any ORF yields a single record whose
    ``orf_length`` is None.
    """

    id: str
    gene_id: str = ""
    set_label: str = ""
    frame: int | None = None
    start_site: int | None = None
    stop_site: int | None = None
    orf_sequence: str | None = None
    orf_length: int | None = None
    utr5_length: int | None = None
    utr3_length: int | None = None
    transcript_length: int = 0
    n_junctions: int = 0
    stop_to_last_junction: int | None = None
    nmd_class: str | None = None
    nmd_score: float | None = None
    has_stop: bool = False
    rank: int | None = None
    n_uorfs: int | None = None
    max_uorf_length: int | None = None
    uorfs: tuple[Uorf, ...] = ()

    @property
    def has_orf(self) -> bool:
        return self.orf_length is not None

    def to_dict(self) -> dict[str, Any]:
        """Record fields without the uORF details."""
        return attrs.asdict(self, filter=lambda attribute, _: attribute.name != "uorfs")


# =============================================================================
# Candidate Scanning
# =============================================================================


def find_candidates(
    sequence: str,
    start_codons: Iterable[str] = ("ATG",),
    frames: Sequence[int] = (0, 1, 2),
) -> list[OrfCandidate]:
    """Scan a transcript sequence for ORF candidates.

    Args:
        sequence: Upper-case spliced transcript sequence.
        start_codons: Codons that open an ORF.
        frames: Reading frames to scan.

    Returns:
        Candidates in frame order, then by position.
    """
    starts = set(start_codons)
    candidates = []
    for frame in frames:
        open_start = None
        last = frame
        for i in range(frame, len(sequence) - 2, 3):
            codon = sequence[i : i + 3]
            last = i + 3
            if open_start is None:
                if codon in starts:
                    open_start = i
            elif codon in STOP_CODONS:
                candidates.append(OrfCandidate(frame, open_start, i + 3, True))
                open_start = None
        if open_start is not None:
            candidates.append(OrfCandidate(frame, open_start, last, False))
    return candidates


def _rank_key(candidate: OrfCandidate) -> tuple[int, int, int]:
    return (-candidate.length, candidate.start_site, candidate.frame)


# =============================================================================
# ORF Finder
# =============================================================================


class OrfFinder:
    """Predict ORFs, uORFs and NMD labels for isoforms.

    Attributes:
        config: ORF prediction settings.
        nmd_rule: NMD classifier.
    """

    def __init__(self, config: OrfConfig | None = None, nmd_rule: NmdRule | None = None) -> None:
        self.config = config or OrfConfig()
        self.nmd_rule = nmd_rule or NmdRule()
        self.selection = OrfSelection(self.config.selection)
        self.frames = (0, 1, 2) if self.config.all_frames else (0,)

    def candidates(self, sequence: str) -> list[OrfCandidate]:
        """All ORF candidates of a sequence."""
        return find_candidates(sequence, self.config.start_codons, self.frames)

    def select(self, candidates: Iterable[OrfCandidate]) -> list[OrfCandidate]:
        """Apply the selection policy; result is ordered by rank."""
        eligible = [
            c
            for c in candidates
            if (c.has_stop or self.config.include_no_stop) and c.length >= self.config.min_length
        ]
        ranked = sorted(eligible, key=_rank_key)
        if not ranked:
            return []

        if self.selection is OrfSelection.LONGEST:
            return ranked[:1]
        if self.selection is OrfSelection.TOP_N:
            return ranked[: self.config.top_n]

        best_per_frame: dict[int, OrfCandidate] = {}
        for candidate in ranked:
            best_per_frame.setdefault(candidate.frame, candidate)
        return sorted(best_per_frame.values(), key=_rank_key)

    def predict(self, isoform: Isoform, sequence: str) -> list[OrfRecord]:
        """ORF records of one isoform from its spliced sequence."""
        records, _ = self._predict(isoform, sequence)
        return records

    def _predict(
        self, isoform: Isoform, sequence: str
    ) -> tuple[list[OrfRecord], list[OrfCandidate]]:
        junctions = exon_junction_positions(isoform.exons)
        candidates = self.candidates(sequence)
        selected = self.select(candidates)
        tx_length = len(sequence)

        if not selected:
            logger.debug(f"No ORF found in {isoform.transcript_id}")
            record = OrfRecord(
                id=isoform.transcript_id,
                gene_id=isoform.gene_id,
                set_label=isoform.set_label,
                transcript_length=tx_length,
                n_junctions=len(junctions),
            )
            return [record], candidates

        records = []
        for rank, candidate in enumerate(selected, 1):
            call = self.nmd_rule.classify(candidate.stop_site, junctions)
            coding = sequence[candidate.start_site : candidate.stop_site]
            records.append(
                OrfRecord(
                    id=isoform.transcript_id,
                    gene_id=isoform.gene_id,
                    set_label=isoform.set_label,
                    frame=candidate.frame,
                    start_site=candidate.start_site,
                    stop_site=candidate.stop_site,
                    orf_sequence=translate(coding, to_stop=True, partial=True),
                    orf_length=candidate.length,
                    utr5_length=candidate.start_site,
                    utr3_length=tx_length - candidate.stop_site,
                    transcript_length=tx_length,
                    n_junctions=len(junctions),
                    stop_to_last_junction=call.distance,
                    nmd_class=call.nmd_class,
                    nmd_score=call.score,
                    has_stop=candidate.has_stop,
                    rank=rank,
                )
            )
        return records, candidates

    def run(self, isoforms: Sequence[Isoform], source: SequenceSource) -> list[OrfRecord]:
        """Predict ORFs for a batch of isoforms.

        Args:
            isoforms: Isoforms to analyse.
            source: Genome sequence collaborator.

        Returns:
            ORF records, isoform by isoform.
        """
        records: list[OrfRecord] = []
        scans: list[tuple[list[OrfCandidate], list[int]]] = []
        progress = ProgressLogger(logger, total=len(isoforms), description="Predicting ORFs")

        for isoform in isoforms:
            sequence = spliced_sequence(isoform.exons, source)
            isoform_records, candidates = self._predict(isoform, sequence)
            junctions = exon_junction_positions(isoform.exons)
            records.extend(isoform_records)
            scans.extend((candidates, junctions) for _ in isoform_records)
            progress.update()

        if self.config.uorfs:
            self._add_uorfs(records, scans)
        return records

    def _add_uorfs(
        self,
        records: list[OrfRecord],
        scans: list[tuple[list[OrfCandidate], list[int]]],
    ) -> None:
        selected = select_for_uorf_search(records, self.config.select_longest)
        for i in selected:
            record = records[i]
            candidates, junctions = scans[i]
            uorfs = find_uorfs(candidates, record.start_site, junctions)
            record.uorfs = tuple(uorfs)
            record.n_uorfs = len(uorfs)
            record.max_uorf_length = max((u.length for u in uorfs), default=0)


# =============================================================================
# Table Output
# =============================================================================


def orfs_to_dataframe(records: Iterable[OrfRecord]) -> pd.DataFrame:
    """ORF records as a table with nullable integer columns."""
    rows = [record.to_dict() for record in records]
    columns = [a.name for a in attrs.fields(OrfRecord) if a.name != "uorfs"]
    df = pd.DataFrame(rows, columns=columns)
    for column in INTEGER_COLUMNS:
        df[column] = df[column].astype("Int64")
    df["nmd_score"] = df["nmd_score"].astype("Float64")
    return df


def uorfs_to_dataframe(records: Iterable[OrfRecord]) -> pd.DataFrame:
    """One row per uORF, keyed by the main ORF's id, frame and rank."""
    rows = []
    for record in records:
        for number, uorf in enumerate(record.uorfs, 1):
            row = {"id": record.id, "orf_frame": record.frame, "orf_rank": record.rank}
            row["uorf_number"] = number
            row.update(uorf._asdict())
            rows.append(row)
    return pd.DataFrame(rows)


def get_orfs(
    isoforms: Sequence[Isoform],
    source: SequenceSource,
    config: OrfConfig | None = None,
    nmd: NmdConfig | None = None,
) -> pd.DataFrame:
    """Predict ORFs for isoforms and return them as a table.

    Args:
        isoforms: Isoforms to analyse.
        source: Genome sequence collaborator.
        config: ORF prediction settings.
        nmd: NMD rule settings.

    Returns:
        DataFrame with one row per ORF record.
    """
    rule = NmdRule.from_config(nmd) if nmd is not None else None
    records = OrfFinder(config, rule).run(isoforms, source)
    logger.info(f"Predicted {sum(r.has_orf for r in records)} ORFs for {len(isoforms)} isoforms")
    return orfs_to_dataframe(records)
