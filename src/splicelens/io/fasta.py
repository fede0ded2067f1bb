"""Genome sequence access.

Two sequence sources implement the ``get_sequence`` collaborator used by
ORF prediction:

- ``GenomeAccessor``: indexed FASTA access through pyfaidx
- ``InMemoryGenome``: sequences held in a dict, for small genomes and tests

Both use 0-based half-open coordinates, return upper-case sequence and
reverse-complement minus-strand requests.

Example:
    >>> from splicelens.io.fasta import GenomeAccessor
    >>> with GenomeAccessor("genome.fa") as genome:
    ...     seq = genome.get_sequence("chr1", 1000, 2000, strand="-")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Mapping

import pyfaidx

from splicelens.utils.sequences import reverse_complement

Strand = Literal["+", "-", "."]

logger = logging.getLogger(__name__)


def _check_region(lengths: Mapping[str, int], seqid: str, start: int, end: int) -> None:
    if seqid not in lengths:
        raise KeyError(f"Unknown scaffold: {seqid}")
    scaffold_length = lengths[seqid]
    if start < 0:
        raise ValueError(f"Start position cannot be negative: {start}")
    if end > scaffold_length:
        raise ValueError(f"End position {end} exceeds scaffold length {scaffold_length}")
    if start >= end:
        raise ValueError(f"Start ({start}) must be less than end ({end})")


# =============================================================================
# Indexed FASTA
# =============================================================================


class GenomeAccessor:
    """Indexed FASTA access using pyfaidx.

    Attributes:
        path: Path to the FASTA file.

    Example:
        >>> genome = GenomeAccessor("genome.fa")
        >>> seq = genome.get_sequence("chr1", 1000, 2000)
        >>> genome.close()
    """

    def __init__(self, fasta_path: Path | str) -> None:
        """Open a FASTA file, creating the .fai index if needed.

        Raises:
            FileNotFoundError: If FASTA file doesn't exist.
        """
        self.path = Path(fasta_path)
        if not self.path.exists():
            raise FileNotFoundError(f"FASTA file not found: {self.path}")

        self._fasta: pyfaidx.Fasta | None = None
        self._scaffold_lengths: dict[str, int] = {}
        self._open()

    def _open(self) -> None:
        self._fasta = pyfaidx.Fasta(
            str(self.path),
            sequence_always_upper=True,
            read_ahead=10000,
            rebuild=False,
        )
        self._scaffold_lengths = {seqid: len(self._fasta[seqid]) for seqid in self._fasta.keys()}
        logger.info(
            f"Opened FASTA: {self.path.name}, "
            f"{len(self._scaffold_lengths)} scaffolds, "
            f"{sum(self._scaffold_lengths.values()):,} bp total"
        )

    @property
    def scaffold_lengths(self) -> dict[str, int]:
        """Return {seqid: length} mapping."""
        return self._scaffold_lengths.copy()

    def __enter__(self) -> GenomeAccessor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the FASTA file."""
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def get_sequence(self, seqid: str, start: int, end: int, strand: Strand = "+") -> str:
        """Get sequence for a region (0-based, half-open).

        Args:
            seqid: Scaffold/chromosome name.
            start: Start position (0-based, inclusive).
            end: End position (0-based, exclusive).
            strand: Returns the reverse complement if "-".

        Raises:
            KeyError: If seqid not in FASTA.
            ValueError: If coordinates are invalid.
        """
        if self._fasta is None:
            raise RuntimeError("FASTA file not opened")
        _check_region(self._scaffold_lengths, seqid, start, end)

        sequence = str(self._fasta[seqid][start:end])
        if strand == "-":
            sequence = reverse_complement(sequence)
        return sequence

    def get_length(self, seqid: str) -> int:
        """Length of a scaffold.

        Raises:
            KeyError: If seqid not in FASTA.
        """
        if seqid not in self._scaffold_lengths:
            raise KeyError(f"Unknown scaffold: {seqid}")
        return self._scaffold_lengths[seqid]

    def __contains__(self, seqid: str) -> bool:
        return seqid in self._scaffold_lengths

    def __len__(self) -> int:
        return len(self._scaffold_lengths)


# =============================================================================
# In-memory Sequences
# =============================================================================


class InMemoryGenome:
    """Sequence source backed by a dict of sequences.

    Example:
        >>> genome = InMemoryGenome({"chr1": "ACGTATGAAATAG"})
        >>> genome.get_sequence("chr1", 4, 13)
        'ATGAAATAG'
    """

    def __init__(self, sequences: Mapping[str, str]) -> None:
        self._sequences = {seqid: seq.upper() for seqid, seq in sequences.items()}
        self._scaffold_lengths = {seqid: len(seq) for seqid, seq in self._sequences.items()}

    def get_sequence(self, seqid: str, start: int, end: int, strand: Strand = "+") -> str:
        """Get sequence for a region (0-based, half-open)."""
        _check_region(self._scaffold_lengths, seqid, start, end)
        sequence = self._sequences[seqid][start:end]
        if strand == "-":
            sequence = reverse_complement(sequence)
        return sequence

    def get_length(self, seqid: str) -> int:
        """Length of a sequence."""
        if seqid not in self._scaffold_lengths:
            raise KeyError(f"Unknown scaffold: {seqid}")
        return self._scaffold_lengths[seqid]

    def __contains__(self, seqid: str) -> bool:
        return seqid in self._sequences

    def __len__(self) -> int:
        return len(self._sequences)


def load_genome(fasta_path: Path | str) -> GenomeAccessor:
    """Open an indexed genome FASTA."""
    return GenomeAccessor(fasta_path)
