"""GTF file handling.

This module reads reference exon annotations from GTF files and writes
reconstructed isoforms back to GTF.

Features:
    - Parse GTF exon records into Exon objects or an exon table
    - Build an ExonAnnotation directly from a GTF file
    - Write isoforms (transcript + exon lines) with event attributes

GTF coordinates are 1-based and inclusive; everything returned by the
reader is 0-based half-open, and the writer converts back.

Example:
    >>> from splicelens.io.gtf import GTFReader, write_isoforms_gtf
    >>> annotation = GTFReader("gencode.gtf").to_annotation()
    >>> write_isoforms_gtf(isoforms, "isoforms.gtf")
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator

import pandas as pd

from splicelens.core.annotation import ExonAnnotation
from splicelens.core.models import Exon, Isoform

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# GTF column indices
COL_SEQID = 0
COL_SOURCE = 1
COL_TYPE = 2
COL_START = 3
COL_END = 4
COL_SCORE = 5
COL_STRAND = 6
COL_FRAME = 7
COL_ATTRIBUTES = 8

FEATURE_TRANSCRIPT = "transcript"
FEATURE_EXON = "exon"

TRANSCRIPT_TYPE_KEYS = ("transcript_type", "transcript_biotype")

_ATTRIBUTE = re.compile(r'\s*([^\s";]+)\s+(?:"([^"]*)"|([^\s;]+))\s*')


# =============================================================================
# Attribute Handling
# =============================================================================


def parse_attributes(attr_string: str) -> dict[str, str]:
    """Parse a GTF attribute column.

    Args:
        attr_string: ``key "value";`` pairs separated by semicolons.

    Returns:
        Dictionary of attributes. Repeated keys (e.g. ``tag``) keep the
        first value.
    """
    attributes: dict[str, str] = {}
    if not attr_string or attr_string == ".":
        return attributes

    for item in attr_string.split(";"):
        match = _ATTRIBUTE.fullmatch(item)
        if match is None:
            continue
        key = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attributes.setdefault(key, value)
    return attributes


def format_attributes(attributes: dict[str, Any]) -> str:
    """Format an attribute dictionary as a GTF attribute column.

    None values are skipped.
    """
    parts = []
    for key, value in attributes.items():
        if value is None:
            continue
        value = str(value).replace('"', "'")
        parts.append(f'{key} "{value}";')
    return " ".join(parts) if parts else "."


# =============================================================================
# GTF Reader
# =============================================================================


class GTFReader:
    """Read exon records from a GTF file.

    Attributes:
        path: Path to the GTF file.

    Example:
        >>> reader = GTFReader("annotation.gtf")
        >>> exons = list(reader.iter_exons())
        >>> annotation = reader.to_annotation()
    """

    def __init__(self, gtf_path: Path | str) -> None:
        """Initialize the reader.

        Args:
            gtf_path: Path to GTF file.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        self.path = Path(gtf_path)
        if not self.path.exists():
            raise FileNotFoundError(f"GTF file not found: {self.path}")
        self.n_malformed = 0

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        """Parse a single GTF line.

        Returns:
            Parsed feature dictionary or None for comments, blank and
            malformed lines.
        """
        line = line.rstrip("\n")
        if not line.strip() or line.startswith("#"):
            return None

        parts = line.split("\t")
        if len(parts) < 9:
            logger.warning(f"Malformed GTF line (expected 9 columns): {line[:50]}...")
            self.n_malformed += 1
            return None

        try:
            return {
                "seqid": parts[COL_SEQID],
                "source": parts[COL_SOURCE],
                "type": parts[COL_TYPE],
                "start": int(parts[COL_START]) - 1,
                "end": int(parts[COL_END]),
                "strand": parts[COL_STRAND] if parts[COL_STRAND] in ("+", "-") else ".",
                "attributes": parse_attributes(parts[COL_ATTRIBUTES]),
            }
        except ValueError as e:
            logger.warning(f"Error parsing GTF line: {e}")
            self.n_malformed += 1
            return None

    def iter_exons(self) -> Iterator[Exon]:
        """Iterate over exon records.

        Exons without a transcript_id are skipped.

        Yields:
            Exon objects (0-based half-open).
        """
        n_skipped = 0
        with open(self.path) as f:
            for line in f:
                feature = self._parse_line(line)
                if feature is None or feature["type"] != FEATURE_EXON:
                    continue

                attributes = feature["attributes"]
                transcript_id = attributes.get("transcript_id")
                if not transcript_id:
                    n_skipped += 1
                    continue

                exon_number = attributes.get("exon_number", "")
                yield Exon(
                    seqid=feature["seqid"],
                    start=feature["start"],
                    end=feature["end"],
                    strand=feature["strand"],
                    transcript_id=transcript_id,
                    gene_id=attributes.get("gene_id", ""),
                    gene_name=attributes.get("gene_name", ""),
                    exon_number=int(exon_number) if exon_number.isdigit() else 0,
                    transcript_type=next(
                        (attributes[k] for k in TRANSCRIPT_TYPE_KEYS if k in attributes), ""
                    ),
                )

        if n_skipped:
            logger.warning(f"Skipped {n_skipped} exon lines without transcript_id")

    def read_exon_table(self) -> pd.DataFrame:
        """Read exons into a table with 1-based inclusive coordinates."""
        rows = [
            {
                "seqid": exon.seqid,
                "start": exon.start + 1,
                "end": exon.end,
                "strand": exon.strand,
                "transcript_id": exon.transcript_id,
                "gene_id": exon.gene_id,
                "gene_name": exon.gene_name,
                "exon_number": exon.exon_number,
                "transcript_type": exon.transcript_type,
            }
            for exon in self.iter_exons()
        ]
        return pd.DataFrame(
            rows,
            columns=[
                "seqid",
                "start",
                "end",
                "strand",
                "transcript_id",
                "gene_id",
                "gene_name",
                "exon_number",
                "transcript_type",
            ],
        )

    def to_annotation(self) -> ExonAnnotation:
        """Build an ExonAnnotation from the file's exon records."""
        annotation = ExonAnnotation(self.iter_exons())
        logger.info(f"Read {len(annotation)} transcripts from {self.path.name}")
        return annotation


# =============================================================================
# GTF Writer
# =============================================================================


class GTFWriter:
    """Write isoforms to GTF.

    Every isoform becomes one transcript line followed by its exon lines
    in transcript order.

    Example:
        >>> with GTFWriter("isoforms.gtf") as writer:
        ...     writer.write_isoforms(isoforms)
    """

    def __init__(
        self,
        output_path: Path | str,
        source: str = "splicelens",
    ) -> None:
        self.path = Path(output_path)
        self.source = source
        self._file = open(self.path, "w")
        self.n_written = 0

    def __enter__(self) -> GTFWriter:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the output file."""
        if self._file:
            self._file.close()
            self._file = None

    def _format_line(
        self,
        seqid: str,
        feature_type: str,
        start: int,
        end: int,
        strand: str,
        attributes: dict[str, Any],
    ) -> str:
        # GTF is 1-based inclusive
        return (
            f"{seqid}\t{self.source}\t{feature_type}\t{start + 1}\t{end}\t.\t"
            f"{strand}\t.\t{format_attributes(attributes)}\n"
        )

    def write_isoform(self, isoform: Isoform) -> None:
        """Write one isoform."""
        if not isoform.exons:
            logger.warning(f"Isoform {isoform.transcript_id} has no exons; not written")
            return

        tx_attrs = {
            "gene_id": isoform.gene_id,
            "transcript_id": isoform.transcript_id,
            "gene_name": isoform.gene_name or None,
            "set": isoform.set_label,
            "comp_set": isoform.comp_set,
            "event_id": isoform.event_id,
        }
        self._file.write(
            self._format_line(
                isoform.seqid,
                FEATURE_TRANSCRIPT,
                isoform.start,
                isoform.end,
                isoform.strand,
                tx_attrs,
            )
        )
        for exon in isoform.exons:
            exon_attrs = dict(tx_attrs)
            exon_attrs["exon_number"] = exon.exon_number or None
            self._file.write(
                self._format_line(
                    exon.seqid,
                    FEATURE_EXON,
                    exon.start,
                    exon.end,
                    exon.strand,
                    exon_attrs,
                )
            )
        self.n_written += 1

    def write_isoforms(self, isoforms: Iterable[Isoform]) -> None:
        """Write multiple isoforms."""
        for isoform in isoforms:
            self.write_isoform(isoform)


# =============================================================================
# Convenience Functions
# =============================================================================


def read_annotation(path: Path | str) -> ExonAnnotation:
    """Read a reference exon annotation from a GTF file."""
    return GTFReader(path).to_annotation()


def write_isoforms_gtf(
    isoforms: Iterable[Isoform],
    path: Path | str,
    source: str = "splicelens",
) -> int:
    """Write isoforms to a GTF file.

    Returns:
        Number of isoforms written.
    """
    with GTFWriter(path, source=source) as writer:
        writer.write_isoforms(isoforms)
        n_written = writer.n_written
    logger.info(f"Wrote {n_written} isoforms to {path}")
    return n_written
