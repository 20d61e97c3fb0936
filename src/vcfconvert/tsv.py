"""
Tabular input for tsv2vcf.

Rows are whitespace-separated. Column roles are bound by name through a
comma-separated column list, e.g. ``ID,CHROM,POS,AA``. The AA role consumes
one call token per sample starting at its position; columns named '-' are
ignored.
"""

import gzip
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Container, Iterator, List, Optional, TextIO

from .errors import ConfigurationError, RecordError, SiteSkip, SourceError

logger = logging.getLogger(__name__)

REQUIRED_ROLES = ("CHROM", "POS", "ID", "AA")
IGNORED_COLUMN = "-"


@dataclass
class TabularRow:
    """One parsed row: site coordinates plus per-sample call tokens."""

    chrom: str
    pos: int  # 0-based
    id: Optional[str]
    calls: List[str]


@dataclass
class ColumnLayout:
    """Column-name-to-role bindings."""

    columns: List[str]

    @classmethod
    def parse(cls, spec: str) -> "ColumnLayout":
        """
        Parse a column list.

        Raises:
            ConfigurationError: If a required role is missing or bound twice
        """
        columns = [c.strip().upper() for c in spec.split(",")]
        for role in REQUIRED_ROLES:
            count = columns.count(role)
            if count == 0:
                raise ConfigurationError(f"Expected {role} column in {spec!r}")
            if count > 1:
                raise ConfigurationError(f"Column {role} given {count} times in {spec!r}")
        return cls(columns)

    def split(self, line: str, nsamples: int, contigs: Container[str]) -> TabularRow:
        """
        Split a row into its roles.

        Raises:
            SiteSkip: If the row is malformed (missing fields, unknown contig,
                non-integer position)
            RecordError: If there are fewer call tokens than samples
        """
        tokens = line.split()
        fields = {}
        calls: List[str] = []
        cursor = 0
        for name in self.columns:
            if name == "AA":
                calls = tokens[cursor : cursor + nsamples]
                fields[name] = calls
                cursor += nsamples
                continue
            if cursor >= len(tokens):
                raise SiteSkip(f"Missing {name} column")
            if name != IGNORED_COLUMN:
                fields[name] = tokens[cursor]
            cursor += 1

        chrom = fields["CHROM"]
        if chrom not in contigs:
            raise SiteSkip(f"Unknown contig {chrom!r}")
        try:
            pos = int(fields["POS"]) - 1
        except ValueError:
            raise SiteSkip(f"Could not parse position {fields['POS']!r}")
        if pos < 0:
            raise SiteSkip(f"Invalid position {fields['POS']!r}")

        if len(calls) < nsamples:
            raise RecordError(
                f"Too few columns for {nsamples} samples at {chrom}:{pos + 1}"
            )

        site_id = fields["ID"]
        return TabularRow(
            chrom=chrom,
            pos=pos,
            id=None if site_id == "." else site_id,
            calls=calls,
        )


@contextmanager
def open_table(path: str) -> Iterator[TextIO]:
    """
    Open a plain or gzip-compressed table ('-' reads stdin).

    Raises:
        SourceError: If the file cannot be opened
    """
    if path == "-":
        yield sys.stdin
        return

    p = Path(path)
    try:
        handle = gzip.open(p, "rt") if p.name.endswith(".gz") else open(p, "r")
    except OSError as e:
        raise SourceError(f"Could not read: {path}: {e}") from e
    try:
        yield handle
    finally:
        handle.close()


def iter_data_lines(handle: TextIO) -> Iterator[str]:
    """Yield non-empty, non-comment lines."""
    for line in handle:
        line = line.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue
        yield line
