#!/usr/bin/env python3
"""
Error taxonomy and exit code mapping for vcfconvert.

Exit code specification:
- 0: success
- 1: configuration/input errors (bad sample list, unreadable reference,
     missing required option, unrecognised output type or tag)
- 2: source errors (unopenable or unindexed input, malformed region spec)
- 3: record errors (a site or row that violates the SNP-only encoding)
- 4: sink errors (write or close failures)
"""

import typer
from rich.console import Console

console = Console(stderr=True)


class VcfConvertError(Exception):
    """Base class for all vcfconvert failures."""

    pass


class ConfigurationError(VcfConvertError):
    """Raised when the run is misconfigured. Detected before any I/O."""

    pass


class SampleMismatchError(ConfigurationError):
    """Raised when a sample list does not match the source header."""

    pass


class SourceError(VcfConvertError):
    """Raised when an input cannot be opened, indexed or restricted."""

    pass


class RecordError(VcfConvertError):
    """Raised when a record breaks a structural assumption of the encoding."""

    pass


class UnsupportedCallLength(RecordError):
    """Raised for call tokens longer than two characters."""

    pass


class SinkError(VcfConvertError):
    """Raised when writing or closing an output fails."""

    pass


class SiteSkip(VcfConvertError):
    """
    Signals that the current site or row is dropped.

    Never fatal: the pipeline counts it and continues.
    """

    pass


class ExitCode:
    """Exit code constants."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    SOURCE_ERROR = 2
    RECORD_ERROR = 3
    SINK_ERROR = 4


def map_exception_to_exit_code(exception: Exception) -> int:
    """
    Map exception types to appropriate exit codes.

    Args:
        exception: The exception to map

    Returns:
        Appropriate exit code (1-4)
    """
    if isinstance(
        exception,
        (
            ConfigurationError,
            ValueError,
            FileNotFoundError,
            typer.BadParameter,
        ),
    ):
        return ExitCode.CONFIG_ERROR

    if isinstance(exception, SourceError):
        return ExitCode.SOURCE_ERROR

    if isinstance(exception, RecordError):
        return ExitCode.RECORD_ERROR

    if isinstance(exception, (SinkError, OSError)):
        return ExitCode.SINK_ERROR

    # Default to configuration error for unknown exceptions
    return ExitCode.CONFIG_ERROR


def _with_suggestions(message: str, suggestions: list) -> str:
    return f"{message}\n\nSuggestions:\n" + "\n".join(f"  • {s}" for s in suggestions)


def format_helpful_error_message(exception: Exception) -> str:
    """
    Format exception with helpful suggestions.

    Args:
        exception: The exception to format

    Returns:
        User-friendly error message with suggestions
    """
    error_msg = str(exception)

    if isinstance(exception, SampleMismatchError):
        return _with_suggestions(
            error_msg,
            [
                "Check that every sample name appears in the input header",
                "Remove duplicated names from the sample list",
                "Prefix the list with '^' to exclude samples instead",
            ],
        )

    elif isinstance(exception, ConfigurationError):
        return _with_suggestions(
            error_msg,
            [
                "Check the command-line options with --help",
                "Supported --tag values: GT, PL",
                "Supported --output-type values: b, u, z, v",
            ],
        )

    elif isinstance(exception, SourceError):
        return _with_suggestions(
            error_msg,
            [
                "Check that the input file exists and is readable",
                "Index the input with 'bcftools index' or 'tabix -p vcf' to use --regions",
                "Use --targets to stream through an unindexed file",
            ],
        )

    elif isinstance(exception, RecordError):
        return _with_suggestions(
            error_msg,
            [
                "Only single-nucleotide calls of one or two characters are supported",
                "Check that every row has one call column per sample",
            ],
        )

    elif isinstance(exception, SinkError):
        return _with_suggestions(
            error_msg,
            [
                "Ensure the output directory exists and is writable",
                "Ensure sufficient disk space",
            ],
        )

    elif isinstance(exception, FileNotFoundError):
        return _with_suggestions(
            error_msg,
            [
                "Check that the file path is correct",
                "Ensure the file exists and is readable",
            ],
        )

    # Default message for unknown exceptions
    return error_msg


def handle_exception_with_exit(exception: Exception, context: str = "") -> None:
    """
    Handle exception with appropriate exit code and helpful message.

    Args:
        exception: The exception to handle
        context: Additional context for the error
    """
    exit_code = map_exception_to_exit_code(exception)
    error_message = format_helpful_error_message(exception)

    if context:
        full_message = f"{context}: {error_message}"
    else:
        full_message = error_message

    console.print(f"[red]Error: {full_message}[/red]")

    raise typer.Exit(exit_code)
