"""Reference exon annotation index.

``ExonAnnotation`` groups exon records by transcript, keeps each
transcript's exons in 5' to 3' order and answers the overlap queries the
isoform builder and event adapters need.

Only exon-level records are accepted. A table carrying gene, transcript
or CDS rows is rejected, because those rows would shift every exon
number and spliced coordinate derived from it.

Example:
    >>> from splicelens.core.annotation import ExonAnnotation
    >>> annotation = ExonAnnotation.from_dataframe(exon_df)
    >>> annotation.overlapping_transcripts("chr1", 99, 200)
    ['tx1']
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Iterator

import attrs
import pandas as pd

from splicelens.core.models import Exon, Intron, Isoform
from splicelens.exceptions import AnnotationError
from splicelens.utils.intervals import introns_from_exons, order_exons, strands_compatible

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("start", "end", "strand", "transcript_id", "gene_id")
SEQID_COLUMNS = ("seqid", "seqname", "seqnames", "chrom")
FEATURE_COLUMNS = ("type", "feature")
REFERENCE_SET = "reference"


class ExonAnnotation:
    """Transcript-indexed collection of reference exons.

    Attributes:
        transcripts: Mapping of transcript id to exons in transcript order.
    """

    def __init__(self, exons: Iterable[Exon]) -> None:
        grouped: dict[str, list[Exon]] = defaultdict(list)
        for exon in exons:
            grouped[exon.transcript_id].append(exon)

        self.transcripts: dict[str, tuple[Exon, ...]] = {}
        for tx_id, tx_exons in grouped.items():
            strands = {e.strand for e in tx_exons}
            seqids = {e.seqid for e in tx_exons}
            if len(strands) > 1 or len(seqids) > 1:
                raise AnnotationError(
                    f"Transcript {tx_id} spans several sequences or strands"
                )
            ordered = order_exons(tx_exons)
            if any(e.exon_number == 0 for e in ordered):
                ordered = [attrs.evolve(e, exon_number=i) for i, e in enumerate(ordered, 1)]
            self.transcripts[tx_id] = tuple(ordered)

        # seqid -> [(start, end, strand, transcript_id)] sorted by start
        self._spans: dict[str, list[tuple[int, int, str, str]]] = defaultdict(list)
        for tx_id, tx_exons in self.transcripts.items():
            first = tx_exons[0]
            self._spans[first.seqid].append(
                (min(e.start for e in tx_exons), max(e.end for e in tx_exons), first.strand, tx_id)
            )
        for spans in self._spans.values():
            spans.sort()

        self._introns: list[Intron] | None = None
        logger.debug(f"Indexed {len(self.transcripts)} transcripts")

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, one_based: bool = True) -> ExonAnnotation:
        """Build an index from a table of exon rows.

        Args:
            df: One row per exon. Needs a sequence column (seqid, seqname,
                seqnames or chrom) and start, end, strand, transcript_id,
                gene_id. gene_name, exon_number and transcript_type are used
                when present.
            one_based: Coordinates are 1-based inclusive (GTF convention).

        Returns:
            ExonAnnotation.

        Raises:
            AnnotationError: If required columns are missing or the table
                holds rows that are not exons.
        """
        seqid_col = next((c for c in SEQID_COLUMNS if c in df.columns), None)
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if seqid_col is None:
            missing.insert(0, "seqid")
        if missing:
            raise AnnotationError(f"Annotation is missing required columns: {', '.join(missing)}")

        for col in FEATURE_COLUMNS:
            if col in df.columns:
                other = sorted(set(df[col].astype(str)) - {"exon"})
                if other:
                    raise AnnotationError(
                        f"Annotation must contain only exon rows; found: {', '.join(other)}"
                    )

        offset = 1 if one_based else 0
        exons = []
        for row in df.itertuples(index=False):
            values = row._asdict()
            exon_number = values.get("exon_number")
            exons.append(
                Exon(
                    seqid=str(values[seqid_col]),
                    start=int(values["start"]) - offset,
                    end=int(values["end"]),
                    strand=str(values["strand"]),
                    transcript_id=str(values["transcript_id"]),
                    gene_id=str(values["gene_id"]),
                    gene_name=_optional_str(values.get("gene_name")),
                    exon_number=0 if pd.isna(exon_number) or exon_number is None else int(exon_number),
                    transcript_type=_optional_str(values.get("transcript_type")),
                )
            )
        return cls(exons)

    # =========================================================================
    # Queries
    # =========================================================================

    def __len__(self) -> int:
        return len(self.transcripts)

    def __contains__(self, transcript_id: str) -> bool:
        return transcript_id in self.transcripts

    def __iter__(self) -> Iterator[str]:
        return iter(self.transcripts)

    @property
    def exons(self) -> list[Exon]:
        """All exons, transcript by transcript."""
        return [exon for tx_exons in self.transcripts.values() for exon in tx_exons]

    @property
    def introns(self) -> list[Intron]:
        """All reference introns (single-exon transcripts contribute none)."""
        if self._introns is None:
            exons = self.exons
            self._introns = introns_from_exons(exons, allow_single_exon=True) if exons else []
        return self._introns

    def get_transcript(self, transcript_id: str) -> tuple[Exon, ...]:
        """Exons of a transcript in 5' to 3' order.

        Raises:
            KeyError: If the transcript is not annotated.
        """
        return self.transcripts[transcript_id]

    def gene_of(self, transcript_id: str) -> tuple[str, str]:
        """(gene_id, gene_name) of a transcript."""
        first = self.transcripts[transcript_id][0]
        return first.gene_id, first.gene_name

    def overlapping_transcripts(
        self,
        seqid: str,
        start: int,
        end: int,
        strand: str | None = None,
        exonic: bool = True,
    ) -> list[str]:
        """Find transcripts overlapping a region.

        Args:
            seqid: Sequence name.
            start: Region start (0-based).
            end: Region end (exclusive).
            strand: Required strand; unknown strands match anything.
            exonic: Require overlap with an exon. If False, overlap with the
                transcript span (introns included) is enough.

        Returns:
            Transcript ids sorted by id.
        """
        hits = []
        for span_start, span_end, span_strand, tx_id in self._spans.get(seqid, []):
            if span_start >= end:
                break
            if span_end <= start or not strands_compatible(strand, span_strand):
                continue
            if exonic and not any(e.overlaps(seqid, start, end) for e in self.transcripts[tx_id]):
                continue
            hits.append(tx_id)
        return sorted(hits)

    def as_isoforms(
        self,
        gene_ids: Iterable[str] | None = None,
        transcript_type: str | None = "protein_coding",
    ) -> list[Isoform]:
        """Wrap reference transcripts as isoforms.

        Args:
            gene_ids: Restrict to these genes. None keeps all.
            transcript_type: Restrict to this biotype. None keeps all.

        Returns:
            One isoform per transcript, labelled "reference".
        """
        genes = set(gene_ids) if gene_ids is not None else None
        isoforms = []
        for tx_id, exons in self.transcripts.items():
            first = exons[0]
            if genes is not None and first.gene_id not in genes:
                continue
            if transcript_type is not None and first.transcript_type != transcript_type:
                continue
            isoforms.append(
                Isoform(
                    transcript_id=tx_id,
                    exons=exons,
                    set_label=REFERENCE_SET,
                    gene_id=first.gene_id,
                    gene_name=first.gene_name,
                    reference_transcript_id=tx_id,
                )
            )
        return isoforms

    def to_dataframe(self) -> pd.DataFrame:
        """Exons as a table with 1-based inclusive coordinates."""
        rows = [
            {
                "seqid": e.seqid,
                "start": e.start + 1,
                "end": e.end,
                "strand": e.strand,
                "transcript_id": e.transcript_id,
                "gene_id": e.gene_id,
                "gene_name": e.gene_name,
                "exon_number": e.exon_number,
                "transcript_type": e.transcript_type,
            }
            for e in self.exons
        ]
        return pd.DataFrame(rows)


def _optional_str(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)
