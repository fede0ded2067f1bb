"""splicelens: functional consequences of alternative splicing events.

splicelens takes differential splicing calls from upstream tools, rebuilds
the two competing transcript isoforms implied by each event, predicts their
open reading frames and NMD susceptibility, and summarizes how much the
protein product changes between them.

Example:
    >>> import splicelens
    >>> splicelens.__version__
    '0.3.0'

Modules:
    core: Exon/isoform data model and the reference exon annotation
    events: Splicing event records and upstream tool adapters
    isoforms: Isoform reconstruction per event type
    orfs: ORF discovery, uORFs and the NMD heuristic
    compare: Cross-isoform ORF matching, similarity and change tables
    io: GTF and FASTA handlers
    utils: Interval, sequence and logging utilities
"""

__version__ = "0.3.0"

__all__ = [
    "__version__",
]
