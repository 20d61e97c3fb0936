#!/usr/bin/env python3
"""
vcfconvert - genotype format conversion

Command-line interface for converting VCF/BCF files to gen/sample files and
ancestral-allele call tables to VCF/BCF.
"""

from pathlib import Path
from typing import Optional, Annotated
import logging
import sys
import os
import typer
from rich.console import Console
from rich.logging import RichHandler

from .version import __version__
from .runner import (
    create_gensample_plan,
    create_tsv2vcf_plan,
    execute_plan,
    print_summary,
)
from .errors import handle_exception_with_exit

app = typer.Typer(
    name="vcfconvert",
    help="Convert between VCF/BCF, gen/sample and ancestral-allele tables",
    add_completion=False,
    no_args_is_help=True,
)


# Configure console for better test compatibility
def _is_test_environment() -> bool:
    """Detect if we're running in a test environment."""
    return (
        "pytest" in sys.modules
        or os.getenv("PYTEST_CURRENT_TEST") is not None
        or os.getenv("CI") is not None
        or os.getenv("GITHUB_ACTIONS") is not None
        or "unittest" in sys.modules
    )


if _is_test_environment():
    os.environ["NO_COLOR"] = "1"
    os.environ["FORCE_COLOR"] = "0"

console = Console(
    stderr=True,
    no_color=_is_test_environment(),
    width=80 if _is_test_environment() else None,
    legacy_windows=False,
)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through rich."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=console, show_path=False, rich_tracebacks=verbose)
    )
    root.setLevel(level)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"vcfconvert version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to custom configuration file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress non-error output"),
    ] = False,
) -> None:
    """
    Convert genotype data between VCF/BCF, gen/sample and call tables.
    """
    if verbose and quiet:
        console.print("[red]Error: --verbose and --quiet cannot be used together[/red]")
        raise typer.Exit(1)

    _configure_logging(verbose, quiet)

    if config:
        from .config import load_config

        try:
            load_config(config)
            if verbose:
                console.print(f"[green]Loaded configuration from: {config}[/green]")
        except (ValueError, FileNotFoundError) as e:
            console.print(f"[red]Error loading config file {config}: {e}[/red]")
            raise typer.Exit(1)


@app.command()
def gensample(
    input_path: Annotated[
        str,
        typer.Argument(metavar="INPUT", help="Input VCF/BCF file"),
    ],
    output: Annotated[
        str,
        typer.Option(
            "--gensample",
            "-g",
            help="Output prefix, or <gen-file>,<sample-file>",
        ),
    ],
    tag: Annotated[
        Optional[str],
        typer.Option("--tag", help="Genotype field to convert: GT or PL"),
    ] = None,
    include: Annotated[
        Optional[str],
        typer.Option("--include", "-i", help="Select sites matching the expression"),
    ] = None,
    exclude: Annotated[
        Optional[str],
        typer.Option("--exclude", "-e", help="Drop sites matching the expression"),
    ] = None,
    regions: Annotated[
        Optional[str],
        typer.Option("--regions", "-r", help="Restrict to comma-separated regions"),
    ] = None,
    regions_file: Annotated[
        Optional[str],
        typer.Option("--regions-file", "-R", help="Restrict to regions listed in a file"),
    ] = None,
    targets: Annotated[
        Optional[str],
        typer.Option("--targets", "-t", help="Similar to -r but streams rather than indexes"),
    ] = None,
    targets_file: Annotated[
        Optional[str],
        typer.Option("--targets-file", "-T", help="Similar to -R but streams rather than indexes"),
    ] = None,
    samples: Annotated[
        Optional[str],
        typer.Option("--samples", "-s", help="List of samples to include (^ to exclude, - for all)"),
    ] = None,
    samples_file: Annotated[
        Optional[str],
        typer.Option("--samples-file", "-S", help="File of samples to include"),
    ] = None,
) -> None:
    """
    Convert a VCF/BCF file to gen + sample files.

    Each biallelic-or-more site becomes one gen line with three probabilities
    per sample, derived from GT or PL.
    """
    try:
        plan = create_gensample_plan(
            input_path=input_path,
            output_spec=output,
            tag=tag,
            include=include,
            exclude=exclude,
            regions=regions,
            regions_file=regions_file,
            targets=targets,
            targets_file=targets_file,
            samples=samples,
            samples_file=samples_file,
        )
        result = execute_plan(plan)
        print_summary(result, console)

    except Exception as e:
        handle_exception_with_exit(e, "gensample conversion failed")


@app.command()
def tsv2vcf(
    input_path: Annotated[
        str,
        typer.Argument(metavar="INPUT", help="Call table (plain or gzipped, '-' for stdin)"),
    ],
    fasta_ref: Annotated[
        Optional[Path],
        typer.Option("--fasta-ref", "-f", help="Reference sequence in FASTA format"),
    ] = None,
    samples: Annotated[
        Optional[str],
        typer.Option("--samples", "-s", help="Comma-separated sample names, in call column order"),
    ] = None,
    samples_file: Annotated[
        Optional[str],
        typer.Option("--samples-file", "-S", help="File of sample names, one per line"),
    ] = None,
    columns: Annotated[
        Optional[str],
        typer.Option("--columns", "-c", help="Column order, e.g. ID,CHROM,POS,AA"),
    ] = None,
    output: Annotated[
        str,
        typer.Option("--output", "-o", help="Output file name"),
    ] = "-",
    output_type: Annotated[
        Optional[str],
        typer.Option(
            "--output-type",
            "-O",
            help="b: compressed BCF, u: uncompressed BCF, z: compressed VCF, v: uncompressed VCF",
        ),
    ] = None,
) -> None:
    """
    Convert an ancestral-allele call table to VCF/BCF.

    Rows with a gap, indel or no-call in any sample are skipped and counted.
    """
    try:
        plan = create_tsv2vcf_plan(
            input_path=input_path,
            reference=fasta_ref,
            samples=samples,
            samples_file=samples_file,
            columns=columns,
            output=output,
            output_type=output_type,
        )
        result = execute_plan(plan)
        print_summary(result, console)

    except Exception as e:
        handle_exception_with_exit(e, "tsv2vcf conversion failed")


if __name__ == "__main__":
    app()
