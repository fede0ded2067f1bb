"""Configuration management for splicelens.

Settings come from default values, an optional TOML file and
command-line arguments (applied by the CLI on top of the loaded file).

Example:
    >>> from splicelens.config import Config
    >>> config = Config.load("splicelens.toml")
    >>> config.nmd.threshold
    50

TOML layout mirrors the attribute names::

    [orf]
    selection = "per_frame"

    [nmd]
    threshold = 50
    borderline_width = 5

    [compare]
    compare_by = "gene"
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import attrs

# =============================================================================
# Default Configuration Values
# =============================================================================

# ORF prediction defaults
DEFAULT_START_CODONS = ("ATG",)
DEFAULT_ORF_SELECTION = "per_frame"
DEFAULT_TOP_N = 3
DEFAULT_MIN_ORF_LENGTH = 0
DEFAULT_SELECT_LONGEST = 1.0

# NMD rule defaults (last exon-exon junction rule)
DEFAULT_NMD_THRESHOLD = 50
DEFAULT_NMD_BORDERLINE_WIDTH = 1
DEFAULT_NMD_FILTER_CUTOFF = 0.5

# Isoform reconstruction defaults
DEFAULT_INTRON_MATCH = "exact"

# Comparison defaults
DEFAULT_SUBSTITUTION_COST = 100
DEFAULT_COMPARE_BY = "gene"
DEFAULT_AGGREGATE = "max"

# Event filter defaults
DEFAULT_FDR = 0.05
DEFAULT_PSI_DELTA = 0.1

ORF_SELECTIONS = ("longest", "per_frame", "top_n")
INTRON_MATCH_TYPES = ("exact", "overlap")
COMPARE_BY = ("gene", "transcript")
AGGREGATES = ("max", "min", "mean")


def _in(options: tuple[str, ...]):
    return attrs.validators.in_(options)


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class OrfConfig:
    """Configuration for ORF prediction.

    Attributes:
        start_codons: Codons that open an ORF.
        selection: "longest", "per_frame" or "top_n".
        top_n: Number of ORFs kept in "top_n" mode.
        all_frames: Scan all three frames (only frame 0 otherwise).
        include_no_stop: Rank ORFs running off the transcript end.
        min_length: Minimum ORF length in nucleotides.
        uorfs: Search 5'UTRs for upstream ORFs.
        select_longest: Fraction of ORFs per gene (longest first) that get
            a uORF search.
    """

    start_codons: tuple[str, ...] = attrs.field(default=DEFAULT_START_CODONS, converter=tuple)
    selection: str = attrs.field(default=DEFAULT_ORF_SELECTION, validator=_in(ORF_SELECTIONS))
    top_n: int = attrs.field(default=DEFAULT_TOP_N, validator=attrs.validators.ge(1))
    all_frames: bool = True
    include_no_stop: bool = False
    min_length: int = attrs.field(default=DEFAULT_MIN_ORF_LENGTH, validator=attrs.validators.ge(0))
    uorfs: bool = True
    select_longest: float = attrs.field(default=DEFAULT_SELECT_LONGEST)

    @select_longest.validator
    def _check_select_longest(self, attribute: attrs.Attribute, value: float) -> None:
        if not 0 < value <= 1:
            raise ValueError(f"select_longest must be in (0, 1], got {value}")


@attrs.define
class NmdConfig:
    """Configuration for the NMD heuristic.

    Attributes:
        threshold: Distance (nt) upstream of the last exon-exon junction
            beyond which a stop codon marks the transcript as NMD-likely.
        borderline_width: Distances closer than this (nt) to the threshold,
            on either side, are labelled borderline. 0 gives a hard rule.
        filter_cutoff: ORFs with an NMD score below this pass NMD filtering.
            Borderline scores are below 0.5.
    """

    threshold: int = attrs.field(default=DEFAULT_NMD_THRESHOLD, validator=attrs.validators.ge(0))
    borderline_width: int = attrs.field(
        default=DEFAULT_NMD_BORDERLINE_WIDTH, validator=attrs.validators.ge(0)
    )
    filter_cutoff: float = DEFAULT_NMD_FILTER_CUTOFF


@attrs.define
class IsoformConfig:
    """Configuration for isoform reconstruction.

    Attributes:
        intron_match: "exact" junction matching for retained introns, or
            "overlap" to accept any overlapping reference intron.
        include_intronic: Allow skipped exons that fall inside a reference
            intron (novel exon inclusion).
    """

    intron_match: str = attrs.field(default=DEFAULT_INTRON_MATCH, validator=_in(INTRON_MATCH_TYPES))
    include_intronic: bool = True


@attrs.define
class CompareConfig:
    """Configuration for cross-isoform ORF comparison.

    Attributes:
        compare_by: Aggregate by "gene" group or compare per "transcript".
        aggregate: Summary used when collapsing ORFs ("max" or "min").
        gene_aggregate: Summary of gene-level similarity ("max", "min", "mean").
        substitution_cost: Edit cost of an amino acid substitution.
        filter_nmd: Prefer ORFs not predicted as NMD targets.
        compare_utr: Report UTR lengths of the compared ORFs.
        compare_to_gene: Compare against all annotated coding ORFs of the gene.
    """

    compare_by: str = attrs.field(default=DEFAULT_COMPARE_BY, validator=_in(COMPARE_BY))
    aggregate: str = attrs.field(default=DEFAULT_AGGREGATE, validator=_in(("max", "min")))
    gene_aggregate: str = attrs.field(default=DEFAULT_AGGREGATE, validator=_in(AGGREGATES))
    substitution_cost: int = attrs.field(
        default=DEFAULT_SUBSTITUTION_COST, validator=attrs.validators.ge(1)
    )
    filter_nmd: bool = True
    compare_utr: bool = True
    compare_to_gene: bool = False


@attrs.define
class FilterConfig:
    """Configuration for significant event selection.

    Attributes:
        fdr: Maximum FDR. None means "not chosen" and falls back to
            0.05 with a warning.
        psi_delta: Minimum absolute inclusion change.
    """

    fdr: float | None = None
    psi_delta: float = DEFAULT_PSI_DELTA


@attrs.define
class Config:
    """Main configuration container for splicelens.

    Attributes:
        orf: ORF prediction configuration.
        nmd: NMD heuristic configuration.
        isoforms: Isoform reconstruction configuration.
        compare: ORF comparison configuration.
        filter: Event filter configuration.
    """

    orf: OrfConfig = attrs.Factory(OrfConfig)
    nmd: NmdConfig = attrs.Factory(NmdConfig)
    isoforms: IsoformConfig = attrs.Factory(IsoformConfig)
    compare: CompareConfig = attrs.Factory(CompareConfig)
    filter: FilterConfig = attrs.Factory(FilterConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a configuration from a nested dictionary.

        Raises:
            ValueError: On unknown sections or invalid values.
        """
        sections = {
            "orf": OrfConfig,
            "nmd": NmdConfig,
            "isoforms": IsoformConfig,
            "compare": CompareConfig,
            "filter": FilterConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        kwargs = {}
        for name, section_cls in sections.items():
            try:
                kwargs[name] = section_cls(**data.get(name, {}))
            except TypeError as e:
                raise ValueError(f"Invalid [{name}] configuration: {e}") from e
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Config:
        """Load configuration from a TOML file.

        Args:
            path: Path to configuration file. If None, returns defaults.

        Returns:
            Loaded configuration object.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            ValueError: If configuration file is invalid.
        """
        if path is None:
            return cls()

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return attrs.asdict(self)

    def save(self, path: Path | str) -> None:
        """Save configuration as TOML.

        Args:
            path: Path to save configuration file.
        """
        lines = []
        for section, values in self.to_dict().items():
            lines.append(f"[{section}]")
            for key, value in values.items():
                if value is None:
                    continue
                lines.append(f"{key} = {_toml_value(value)}")
            lines.append("")
        Path(path).write_text("\n".join(lines))


_TOML_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def _toml_string(value: str) -> str:
    chars = []
    for char in value:
        if char in _TOML_ESCAPES:
            chars.append(_TOML_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            chars.append(f"\\u{ord(char):04X}")
        else:
            chars.append(char)
    return '"' + "".join(chars) + '"'


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return str(value)
