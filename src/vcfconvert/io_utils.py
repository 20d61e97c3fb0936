"""
I/O utilities for vcfconvert.

This module derives the gen/sample output paths from a single output
specifier, writes the sample file atomically, and provides the (optionally
BGZF-compressed) gen stream writer.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Sequence

import pysam

from .errors import ConfigurationError, SinkError
from .models import OutputTargets

logger = logging.getLogger(__name__)

SAMPLE_FILE_HEADER = "ID_1 ID_2 missing\n0 0 0\n"


def resolve_output_targets(
    spec: str, gen_suffix: str = ".gen.gz", samples_suffix: str = ".samples"
) -> OutputTargets:
    """
    Derive gen and sample paths from an output specifier.

    ``<gen-path>,<sample-path>`` is used as given; anything else is a prefix
    extended with ``gen_suffix`` and ``samples_suffix``. The gen stream is
    compressed unless its path lacks a .gz suffix.

    Args:
        spec: Output specifier
        gen_suffix: Suffix appended to a prefix for the gen file
        samples_suffix: Suffix appended to a prefix for the sample file

    Returns:
        OutputTargets

    Raises:
        ConfigurationError: If the specifier is empty
    """
    if not spec:
        raise ConfigurationError("Missing output specifier")

    if "," in spec:
        gen_path, _, sample_path = spec.partition(",")
        if not gen_path or not sample_path:
            raise ConfigurationError(f"Could not parse output specifier: {spec!r}")
    else:
        gen_path = spec + gen_suffix
        sample_path = spec + samples_suffix

    compressed = len(gen_path) >= 3 and gen_path[-3:].lower() == ".gz"
    return OutputTargets(
        gen_path=gen_path, sample_path=sample_path, compressed=compressed
    )


def write_sample_file(output_path: Path, sample_names: Sequence[str]) -> None:
    """
    Write the companion sample file with atomic operations.

    Args:
        output_path: Output path
        sample_names: Samples in authoritative order

    Raises:
        SinkError: If writing fails
    """
    output_path = Path(output_path)
    temp_file: Optional[Path] = None
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=output_path.name + ".",
            dir=output_path.parent,
        )
        temp_file = Path(temp_path)

        with os.fdopen(temp_fd, "w") as f:
            f.write(SAMPLE_FILE_HEADER)
            for name in sample_names:
                f.write(f"{name} {name} 0\n")

        temp_file.replace(output_path)
        temp_file = None

    except OSError as e:
        if temp_file and temp_file.exists():
            temp_file.unlink()
        raise SinkError(f"Failed to write {output_path}: {e}") from e

    logger.info(f"Wrote {len(sample_names)} samples to {output_path}")


class GenStreamWriter:
    """
    Writer for the gen stream, BGZF-compressed or plain.

    Any short write or close failure is raised as SinkError.
    """

    def __init__(self, path: str, compressed: bool = True):
        self.path = path
        self.compressed = compressed
        self._handle: Optional[Any] = None
        self.lines_written = 0

    def open(self) -> "GenStreamWriter":
        try:
            if self.compressed:
                self._handle = pysam.BGZFile(self.path, "wb")
            else:
                self._handle = open(self.path, "wb")
        except OSError as e:
            raise SinkError(f"Failed to open {self.path}: {e}") from e
        logger.debug(
            f"Opened gen stream {self.path} ({'bgzf' if self.compressed else 'plain'})"
        )
        return self

    def write(self, line: str) -> None:
        if self._handle is None:
            raise SinkError(f"Gen stream {self.path} is not open")
        data = line.encode()
        try:
            written = self._handle.write(data)
        except OSError as e:
            raise SinkError(f"Error writing {self.path}: {e}") from e
        if written is not None and written != len(data):
            raise SinkError(
                f"Error writing {self.path}: {written} of {len(data)} bytes written"
            )
        self.lines_written += 1

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            handle.close()
        except OSError as e:
            raise SinkError(f"Error closing {self.path}: {e}") from e

    def __enter__(self) -> "GenStreamWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        # Release the handle without masking the original error
        try:
            self.close()
        except SinkError as close_error:
            logger.debug(f"Ignoring close failure after error: {close_error}")
