"""Command-line interface for splicelens.

This module provides the main entry point for the splicelens CLI tool.
It uses Click to define commands for the event-to-protein pipeline.

Commands:
    isoforms: Rebuild the isoform pair of every event and write them as GTF
    orfs: Predict ORFs and NMD labels for the annotated transcripts
    summarize: Full pipeline, events to a table of ORF changes
    config: Write the default configuration as TOML

Example:
    $ splicelens --help
    $ splicelens isoforms -e SE.MATS.JC.txt -t rmats --event-type SE -a gencode.gtf -o isoforms.gtf
    $ splicelens summarize -e SE.MATS.JC.txt -t rmats --event-type SE -a gencode.gtf --genome genome.fa -o changes.tsv
"""

from __future__ import annotations

from pathlib import Path

import click
import pandas as pd
from rich.console import Console

from splicelens import __version__
from splicelens.compare.domains import FeatureIndex
from splicelens.compare.summary import transcript_change_summary
from splicelens.config import Config
from splicelens.core.annotation import ExonAnnotation
from splicelens.events.adapters import read_irfinder, read_leafcutter, read_rmats
from splicelens.events.model import EventSet
from splicelens.exceptions import SplicelensError
from splicelens.io.fasta import GenomeAccessor
from splicelens.io.gtf import read_annotation, write_isoforms_gtf
from splicelens.isoforms.builder import IsoformBuilder
from splicelens.orfs.engine import OrfFinder, orfs_to_dataframe
from splicelens.orfs.nmd import NmdRule
from splicelens.utils.logging import setup_logging

console = Console()

EVENT_TOOLS = ("rmats", "irfinder", "leafcutter")


@click.group()
@click.version_option(version=__version__, prog_name="splicelens")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="TOML configuration file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, config_path: Path | None) -> None:
    """splicelens: functional consequences of alternative splicing.

    splicelens rebuilds the competing isoforms of differential splicing
    events, predicts their ORFs and NMD susceptibility, and reports how the
    protein product changes.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    setup_logging(verbosity=0 if quiet else (2 if verbose else 1))
    try:
        ctx.obj["config"] = Config.load(config_path)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)


# =============================================================================
# Shared options and loaders
# =============================================================================


def event_options(func):
    """Options selecting and filtering the event table."""
    options = [
        click.option(
            "-e",
            "--events",
            type=click.Path(exists=True, path_type=Path),
            required=True,
            help="Event table from the upstream splicing tool.",
        ),
        click.option(
            "-t",
            "--tool",
            type=click.Choice(EVENT_TOOLS),
            default="rmats",
            show_default=True,
            help="Tool that produced the event table.",
        ),
        click.option(
            "--event-type",
            type=str,
            default="SE",
            show_default=True,
            help="rMATS event type (SE, MXE, RI, A5SS, A3SS).",
        ),
        click.option(
            "-a",
            "--annotation",
            type=click.Path(exists=True, path_type=Path),
            required=True,
            help="Reference annotation GTF.",
        ),
        click.option("--fdr", type=float, help="Maximum event FDR [default: 0.05]."),
        click.option("--psi-delta", type=float, help="Minimum absolute inclusion change."),
        click.option(
            "--no-filter",
            is_flag=True,
            help="Model all events, ignoring significance and effect size.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_events(
    events: Path,
    tool: str,
    event_type: str,
    annotation: ExonAnnotation,
    config: Config,
    fdr: float | None,
    psi_delta: float | None,
    no_filter: bool,
) -> EventSet:
    if tool == "rmats":
        event_set = read_rmats(events, event_type)
    elif tool == "irfinder":
        event_set = read_irfinder(events)
    else:
        event_set = read_leafcutter(events, annotation.introns)

    if no_filter:
        return event_set
    return event_set.filter(
        fdr=fdr if fdr is not None else config.filter.fdr,
        psi_delta=psi_delta if psi_delta is not None else config.filter.psi_delta,
    )


def _fail(ctx: click.Context, error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    if ctx.obj.get("verbose"):
        import traceback

        traceback.print_exc()
    raise SystemExit(1)


# =============================================================================
# isoforms command
# =============================================================================


@main.command()
@event_options
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output GTF of reconstructed isoforms.",
)
@click.pass_context
def isoforms(
    ctx: click.Context,
    events: Path,
    tool: str,
    event_type: str,
    annotation: Path,
    fdr: float | None,
    psi_delta: float | None,
    no_filter: bool,
    output: Path,
) -> None:
    """Rebuild the inclusion and exclusion isoforms of every event.

    Each event is modelled on every reference transcript that can carry
    both of its splice paths. The isoforms are written as GTF with the
    event id and isoform role as attributes.
    """
    config: Config = ctx.obj["config"]
    quiet = ctx.obj.get("quiet", False)

    try:
        reference = read_annotation(annotation)
        event_set = _load_events(
            events, tool, event_type, reference, config, fdr, psi_delta, no_filter
        )
        pairs = IsoformBuilder(reference, config.isoforms).build_all(event_set)
        n_written = write_isoforms_gtf(
            [isoform for pair in pairs for isoform in pair.isoforms], output
        )
    except (SplicelensError, FileNotFoundError, ValueError) as e:
        _fail(ctx, e)

    if not quiet:
        console.print(f"[blue]Events:[/blue] {len(event_set)}")
        console.print(f"[blue]Isoform pairs:[/blue] {len(pairs)}")
        console.print(f"[green]Wrote {n_written} isoforms:[/green] {output}")


# =============================================================================
# orfs command
# =============================================================================


@main.command()
@click.option(
    "-a",
    "--annotation",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Annotation or isoform GTF.",
)
@click.option(
    "--genome",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Reference genome FASTA file.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output ORF table (TSV).",
)
@click.option("--gene", "genes", multiple=True, help="Restrict to these gene ids (repeatable).")
@click.pass_context
def orfs(
    ctx: click.Context,
    annotation: Path,
    genome: Path,
    output: Path,
    genes: tuple[str, ...],
) -> None:
    """Predict ORFs and NMD labels for every transcript of a GTF."""
    config: Config = ctx.obj["config"]
    quiet = ctx.obj.get("quiet", False)

    try:
        reference = read_annotation(annotation)
        transcripts = reference.as_isoforms(gene_ids=genes or None, transcript_type=None)
        finder = OrfFinder(config.orf, NmdRule.from_config(config.nmd))
        with GenomeAccessor(genome) as accessor:
            table = orfs_to_dataframe(finder.run(transcripts, accessor))
        table.to_csv(output, sep="\t", index=False)
    except (SplicelensError, FileNotFoundError, KeyError, ValueError) as e:
        _fail(ctx, e)

    if not quiet:
        console.print(f"[blue]Transcripts:[/blue] {len(transcripts)}")
        console.print(f"[green]Wrote {len(table)} ORFs:[/green] {output}")


# =============================================================================
# summarize command
# =============================================================================


@main.command()
@event_options
@click.option(
    "--genome",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Reference genome FASTA file.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output table of ORF changes (TSV).",
)
@click.option(
    "--export-gtf",
    type=click.Path(path_type=Path),
    help="Also write the oriented isoforms as GTF.",
)
@click.option(
    "--features",
    type=click.Path(exists=True, path_type=Path),
    help="Protein feature table (TSV) for domain changes.",
)
@click.option(
    "--compare-by",
    type=click.Choice(("gene", "transcript")),
    help="Aggregate per event group or compare per transcript.",
)
@click.pass_context
def summarize(
    ctx: click.Context,
    events: Path,
    tool: str,
    event_type: str,
    annotation: Path,
    fdr: float | None,
    psi_delta: float | None,
    no_filter: bool,
    genome: Path,
    output: Path,
    export_gtf: Path | None,
    features: Path | None,
    compare_by: str | None,
) -> None:
    """Summarize ORF changes caused by splicing events.

    Runs the full pipeline: event filtering, isoform reconstruction,
    ORF and NMD prediction on both isoforms, and ORF comparison.
    """
    config: Config = ctx.obj["config"]
    quiet = ctx.obj.get("quiet", False)
    if compare_by is not None:
        config.compare.compare_by = compare_by

    try:
        reference = read_annotation(annotation)
        event_set = _load_events(
            events, tool, event_type, reference, config, fdr, psi_delta, no_filter
        )
        pairs = IsoformBuilder(reference, config.isoforms).build_all(event_set)
        feature_index = (
            FeatureIndex.from_dataframe(pd.read_csv(features, sep="\t"))
            if features is not None
            else None
        )
        with GenomeAccessor(genome) as accessor:
            changes = transcript_change_summary(
                pairs,
                accessor,
                events=event_set,
                config=config,
                annotation=reference,
                features=feature_index,
                export_gtf=export_gtf,
            )
        changes.to_csv(output, sep="\t", index=False)
    except (SplicelensError, FileNotFoundError, KeyError, ValueError) as e:
        _fail(ctx, e)

    if not quiet:
        console.print("")
        console.print("[bold]Summary:[/bold]")
        console.print(f"  Events:          {len(event_set):,}")
        console.print(f"  Isoform pairs:   {len(pairs):,}")
        console.print(f"  Compared ids:    {len(changes):,}")
        if export_gtf is not None:
            console.print(f"[green]Wrote isoforms:[/green] {export_gtf}")
        console.print(f"[green]Wrote ORF changes:[/green] {output}")


# =============================================================================
# config command
# =============================================================================


@main.command("config")
@click.argument("output", type=click.Path(path_type=Path))
@click.pass_context
def write_config(ctx: click.Context, output: Path) -> None:
    """Write the active configuration to OUTPUT as TOML."""
    config: Config = ctx.obj["config"]
    config.save(output)
    if not ctx.obj.get("quiet", False):
        console.print(f"[green]Wrote configuration:[/green] {output}")


if __name__ == "__main__":
    main()
