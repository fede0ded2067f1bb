"""Sequence manipulation utilities.

This module provides utilities for working with nucleotide and protein
sequences:

- Reverse complement (IUPAC aware)
- Translation with the standard genetic code
- Start/stop codon sets
- Spliced transcript sequence assembly from exons

Example:
    >>> from splicelens.utils.sequences import reverse_complement, translate
    >>> rc = reverse_complement("ATGCATGC")
    >>> protein = translate("ATGAAATAG")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from splicelens.core.models import Exon

# =============================================================================
# Constants
# =============================================================================

COMPLEMENT_TABLE = str.maketrans(
    "ACGTacgtNnRYSWKMBDHVryswkmbdhv",
    "TGCAtgcaNnYRSWMKVHDByrswmkvhdb",
)

# Standard genetic code (NCBI Table 1)
_BASES = "TCAG"
_AMINO_ACIDS = "FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG"
CODON_TABLE_STANDARD = {
    a + b + c: _AMINO_ACIDS[16 * i + 4 * j + k]
    for i, a in enumerate(_BASES)
    for j, b in enumerate(_BASES)
    for k, c in enumerate(_BASES)
}

START_CODONS = frozenset({"ATG"})
STOP_CODONS = frozenset({"TAA", "TAG", "TGA"})


class SequenceSource(Protocol):
    """Anything that returns strand-aware genomic sequence.

    Coordinates are 0-based half-open. Minus-strand requests return the
    reverse complement.
    """

    def get_sequence(self, seqid: str, start: int, end: int, strand: str = "+") -> str:
        ...


# =============================================================================
# Complement and Reverse Complement
# =============================================================================


def reverse_complement(sequence: str) -> str:
    """Get the reverse complement of a DNA sequence.

    Handles IUPAC ambiguity codes and preserves case.

    Args:
        sequence: DNA sequence string.

    Returns:
        Reverse complement sequence.
    """
    return sequence.translate(COMPLEMENT_TABLE)[::-1]


# =============================================================================
# Translation
# =============================================================================


def translate(
    sequence: str,
    to_stop: bool = False,
    partial: bool = False,
) -> str:
    """Translate a DNA sequence to protein.

    Args:
        sequence: DNA coding sequence.
        to_stop: If True, stop at first stop codon (not included).
        partial: Ignore trailing bases that do not form a full codon.

    Returns:
        Amino acid sequence. Unknown codons translate to "X".

    Raises:
        ValueError: If sequence length is not a multiple of 3 and
            ``partial`` is False.
    """
    if len(sequence) % 3 != 0 and not partial:
        raise ValueError(f"Sequence length ({len(sequence)}) is not a multiple of 3")

    protein = []
    for i in range(0, len(sequence) - len(sequence) % 3, 3):
        aa = CODON_TABLE_STANDARD.get(sequence[i : i + 3].upper(), "X")
        if aa == "*" and to_stop:
            break
        protein.append(aa)

    return "".join(protein)


# =============================================================================
# Spliced Sequences
# =============================================================================


def spliced_sequence(exons: Iterable[Exon], source: SequenceSource) -> str:
    """Concatenate exon sequences in transcript orientation.

    Args:
        exons: Exons in transcript 5' to 3' order.
        source: Genome sequence collaborator.

    Returns:
        Upper-case spliced transcript sequence.
    """
    return "".join(
        source.get_sequence(exon.seqid, exon.start, exon.end, exon.strand).upper()
        for exon in exons
    )
