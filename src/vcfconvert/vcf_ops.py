"""
VCF operations module for vcfconvert.

This module wraps pysam for opening variant sources and sinks, parsing
region/target restrictions, iterating records through either mechanism, and
building the header used for tsv2vcf output.
"""

import gzip
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pysam

from .errors import ConfigurationError, SinkError, SourceError
from .models import OutputType, RegionSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """Genomic interval in 0-based half-open coordinates; open ends are None."""

    chrom: str
    start: Optional[int] = None
    end: Optional[int] = None

    def overlaps(self, start: int, stop: int) -> bool:
        if self.start is not None and stop <= self.start:
            return False
        if self.end is not None and start >= self.end:
            return False
        return True


def parse_region(text: str) -> Region:
    """
    Parse a region string: ``chr``, ``chr:pos``, ``chr:start-end`` or
    ``chr:start-`` (1-based, inclusive).

    Raises:
        SourceError: If the coordinates are malformed
    """
    text = text.strip()
    if not text:
        raise SourceError("Empty region")

    chrom, sep, coords = text.rpartition(":")
    if not sep:
        return Region(text)

    coords = coords.replace(",", "")
    try:
        if "-" in coords:
            beg, _, end = coords.partition("-")
            start = int(beg) - 1
            stop = int(end) if end else None
        else:
            start = int(coords) - 1
            stop = start + 1
    except ValueError:
        # Contig names may contain ':' themselves
        return Region(text)

    if start < 0 or (stop is not None and stop <= start):
        raise SourceError(f"Invalid region coordinates: {text}")
    return Region(chrom, start, stop)


def read_region_file(path: Path) -> List[Region]:
    """
    Read regions from a file.

    Lines hold ``chr pos`` or ``chr start end`` separated by whitespace,
    1-based inclusive; files ending in .bed are 0-based half-open.
    Lines starting with '#' are ignored.

    Raises:
        SourceError: If the file cannot be read or a line is malformed
    """
    is_bed = path.name.endswith((".bed", ".bed.gz"))
    regions = []
    try:
        opener = gzip.open if path.name.endswith(".gz") else open
        with opener(path, "rt") as f:
            for line_no, raw in enumerate(f, start=1):
                line = raw.strip()
                if not line or line.startswith(("#", "track", "browser")):
                    continue
                fields = line.split()
                try:
                    if len(fields) == 1:
                        regions.append(Region(fields[0]))
                    elif len(fields) == 2:
                        pos = int(fields[1])
                        regions.append(Region(fields[0], pos - 1, pos))
                    else:
                        start, end = int(fields[1]), int(fields[2])
                        if not is_bed:
                            start -= 1
                        regions.append(Region(fields[0], start, end))
                except ValueError:
                    raise SourceError(
                        f"Malformed line {line_no} in regions file {path}: {line}"
                    )
    except OSError as e:
        raise SourceError(f"Failed to read the regions: {path}: {e}") from e
    return regions


def parse_regions(spec: RegionSpec) -> List[Region]:
    """Resolve a region/target specification into a list of regions."""
    if spec.is_file:
        regions = read_region_file(Path(spec.value))
    else:
        regions = [parse_region(part) for part in spec.value.split(",") if part]
    if not regions:
        raise SourceError(f"Failed to read the regions: {spec.value}")
    return regions


def merge_regions(regions: Sequence[Region]) -> Dict[str, List[Region]]:
    """Group regions by contig and merge overlapping intervals."""
    by_chrom: Dict[str, List[Region]] = defaultdict(list)
    for region in regions:
        by_chrom[region.chrom].append(region)

    merged: Dict[str, List[Region]] = {}
    for chrom, items in by_chrom.items():
        items.sort(key=lambda r: (r.start or 0))
        out: List[Region] = []
        for region in items:
            if out and (out[-1].end is None or (region.start or 0) <= out[-1].end):
                last = out[-1]
                end = (
                    None
                    if last.end is None or region.end is None
                    else max(last.end, region.end)
                )
                out[-1] = Region(chrom, last.start, end)
            else:
                out.append(region)
        merged[chrom] = out
    return merged


def open_variant_source(path: str) -> Any:
    """
    Open a VCF/BCF file (or '-' for stdin) for reading.

    Raises:
        SourceError: If the file cannot be opened
    """
    if path != "-" and not Path(path).exists():
        raise SourceError(f"Failed to open: {path} (file not found)")
    try:
        return pysam.VariantFile(path)
    except (OSError, ValueError) as e:
        raise SourceError(f"Failed to open {path}: {e}") from e


def iter_regions(variant_file: Any, regions: Sequence[Region]) -> Iterator[Any]:
    """
    Yield records overlapping the regions using the file's index.

    Each record is yielded once, even when it spans several merged
    intervals on its contig.

    Raises:
        SourceError: If the file is not indexed
    """
    index = getattr(variant_file, "index", None)
    if index is None:
        raise SourceError(
            f"Failed to open or the file not indexed: {_source_name(variant_file)}"
        )

    for chrom, items in merge_regions(regions).items():
        if chrom not in index:
            logger.debug(f"Contig {chrom} not in index, skipping")
            continue
        # Intervals are sorted and disjoint, so a record starting before the
        # previous interval's end was already yielded from it
        previous_end = None
        for region in items:
            try:
                for record in variant_file.fetch(chrom, region.start, region.end):
                    if previous_end is not None and record.start < previous_end:
                        continue
                    yield record
            except ValueError as e:
                raise SourceError(f"Failed to fetch {chrom}: {e}") from e
            previous_end = region.end


def iter_targets(variant_file: Any, targets: Sequence[Region]) -> Iterator[Any]:
    """Stream every record and keep those overlapping a target."""
    by_chrom = merge_regions(targets)
    for record in variant_file:
        intervals = by_chrom.get(record.chrom)
        if not intervals:
            continue
        if any(t.overlaps(record.start, record.stop) for t in intervals):
            yield record


def iter_records(
    variant_file: Any,
    regions: Optional[Sequence[Region]] = None,
    targets: Optional[Sequence[Region]] = None,
) -> Iterator[Any]:
    """
    Yield records from a variant file, restricted by regions and/or targets.

    Regions jump through the index; targets are matched while streaming.
    """
    if regions:
        records = iter_regions(variant_file, regions)
        if targets:
            by_chrom = merge_regions(targets)
            records = (
                r
                for r in records
                if any(
                    t.overlaps(r.start, r.stop) for t in by_chrom.get(r.chrom, [])
                )
            )
        yield from records
    elif targets:
        yield from iter_targets(variant_file, targets)
    else:
        yield from variant_file


def build_tsv2vcf_header(
    contigs: Sequence[tuple], sample_names: Sequence[str]
) -> Any:
    """
    Build the output header for tsv2vcf.

    Args:
        contigs: (name, length) pairs in reference index order
        sample_names: Samples in output order

    Returns:
        pysam.VariantHeader
    """
    header = pysam.VariantHeader()
    for name, length in contigs:
        header.contigs.add(name, length=length)
    header.formats.add("GT", 1, "String", "Genotype")
    for name in sample_names:
        header.add_sample(name)
    return header


def open_variant_sink(path: str, header: Any, output_type: OutputType) -> Any:
    """
    Open a VCF/BCF writer.

    Raises:
        SinkError: If the output cannot be opened
    """
    try:
        return pysam.VariantFile(path, output_type.write_mode, header=header)
    except (OSError, ValueError) as e:
        raise SinkError(f"Failed to open {path} for writing: {e}") from e


def parse_output_type(value: str) -> OutputType:
    """
    Resolve a single-letter output type.

    Raises:
        ConfigurationError: For unknown letters
    """
    try:
        return OutputType(value[:1])
    except ValueError:
        raise ConfigurationError(f'The output type "{value}" not recognised')


def _source_name(variant_file: Any) -> str:
    name = getattr(variant_file, "filename", b"")
    return name.decode() if isinstance(name, bytes) else str(name)
