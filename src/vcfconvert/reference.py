"""
Reference sequence lookup backed by an indexed FASTA file.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pysam

from .errors import ConfigurationError, RecordError

logger = logging.getLogger(__name__)


class ReferenceSequence:
    """
    Single-base lookups against a FASTA reference.

    Use as a context manager so the FASTA handle is released on every exit
    path.
    """

    def __init__(self, fasta_path: Path):
        self.fasta_path = Path(fasta_path)
        self._fasta: Optional[pysam.FastaFile] = None

    def open(self) -> "ReferenceSequence":
        """
        Open the FASTA file, building the .fai index if needed.

        Raises:
            ConfigurationError: If the reference or its index cannot be loaded
        """
        if not self.fasta_path.exists():
            raise ConfigurationError(f"Could not load the reference {self.fasta_path}")
        try:
            self._fasta = pysam.FastaFile(str(self.fasta_path))
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Could not load the reference {self.fasta_path}: {e}"
            ) from e
        logger.info(
            f"Loaded reference {self.fasta_path} ({self._fasta.nreferences} sequences)"
        )
        return self

    def close(self) -> None:
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def __enter__(self) -> "ReferenceSequence":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def fasta(self) -> pysam.FastaFile:
        if self._fasta is None:
            raise ConfigurationError("Reference is not open")
        return self._fasta

    def contigs(self) -> List[Tuple[str, int]]:
        """(name, length) pairs in index order."""
        return list(zip(self.fasta.references, self.fasta.lengths))

    def base_at(self, chrom: str, pos: int) -> str:
        """
        Return the uppercased reference base at a 0-based position.

        Raises:
            RecordError: If the contig or position is absent
        """
        try:
            base = self.fasta.fetch(chrom, pos, pos + 1)
        except (KeyError, ValueError, IndexError) as e:
            raise RecordError(
                f"Reference fetch failed at {chrom}:{pos + 1}: {e}"
            ) from e
        if not base:
            raise RecordError(f"Reference fetch failed at {chrom}:{pos + 1}")
        return base.upper()
