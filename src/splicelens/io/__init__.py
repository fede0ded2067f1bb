"""Input/output modules for splicelens.

This package provides readers and writers for:

- GTF annotation files (reference exons in, reconstructed isoforms out)
- FASTA genome files
"""

from splicelens.io.fasta import GenomeAccessor, InMemoryGenome, load_genome
from splicelens.io.gtf import GTFReader, GTFWriter, read_annotation, write_isoforms_gtf

__all__ = [
    "GTFReader",
    "GTFWriter",
    "GenomeAccessor",
    "InMemoryGenome",
    "load_genome",
    "read_annotation",
    "write_isoforms_gtf",
]
