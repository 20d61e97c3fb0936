"""
Core data models for vcfconvert.

This module defines the primary data structures used throughout the application,
including run plans, per-run counters, genotype calls and enums for the
various options.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any

from .errors import ConfigurationError


class ConversionMode(Enum):
    """Conversion direction."""

    GENSAMPLE = "gensample"
    TSV2VCF = "tsv2vcf"


class ProbTag(Enum):
    """FORMAT field the gen probabilities are derived from."""

    GT = "GT"
    PL = "PL"


class FilterLogic(Enum):
    """Whether sites matching the filter expression are kept or dropped."""

    INCLUDE = "include"
    EXCLUDE = "exclude"


class OutputType(Enum):
    """Variant output type, keyed by the single-letter code."""

    COMPRESSED_BCF = "b"
    UNCOMPRESSED_BCF = "u"
    COMPRESSED_VCF = "z"
    VCF = "v"

    @property
    def write_mode(self) -> str:
        """pysam.VariantFile mode string for this output type."""
        return {
            OutputType.COMPRESSED_BCF: "wb",
            OutputType.UNCOMPRESSED_BCF: "wb0",
            OutputType.COMPRESSED_VCF: "wz",
            OutputType.VCF: "w",
        }[self]


class CallClass(Enum):
    """Genotype class of a single decoded call, relative to the reference."""

    HOM_RR = "hom_rr"
    HET_RA = "het_ra"
    HOM_AA = "hom_aa"
    HET_AA = "het_aa"


@dataclass(frozen=True)
class GenotypeCall:
    """
    One sample's unphased genotype as a pair of allele indices.

    Either index may be None for a missing allele. Ploidy is carried by
    ``haploid`` alone; a haploid call ignores ``second``.
    """

    first: Optional[int]
    second: Optional[int] = None
    haploid: bool = False

    @property
    def is_haploid(self) -> bool:
        return self.haploid

    def as_tuple(self) -> tuple:
        """Allele tuple in the shape pysam expects for FORMAT/GT."""
        if self.is_haploid:
            return (self.first,)
        return (self.first, self.second)


@dataclass
class ConversionCounters:
    """
    Per-run tallies.

    The four genotype-class tallies are incremented once per decoded sample
    call; ``total`` and ``skipped`` count sites (or rows).
    """

    total: int = 0
    skipped: int = 0
    written: int = 0
    hom_rr: int = 0
    het_ra: int = 0
    hom_aa: int = 0
    het_aa: int = 0

    def record_call(self, call_class: CallClass) -> None:
        """Increment the tally for one classified call."""
        setattr(self, call_class.value, getattr(self, call_class.value) + 1)

    def merge(self, other: "ConversionCounters") -> None:
        """Add another accumulator's tallies into this one."""
        for name in (
            "total",
            "skipped",
            "written",
            "hom_rr",
            "het_ra",
            "hom_aa",
            "het_aa",
        ):
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "skipped": self.skipped,
            "written": self.written,
            "hom_rr": self.hom_rr,
            "het_ra": self.het_ra,
            "hom_aa": self.hom_aa,
            "het_aa": self.het_aa,
        }


@dataclass
class OutputTargets:
    """Destination paths for a gen/sample conversion."""

    gen_path: str
    sample_path: str
    compressed: bool


@dataclass
class SampleSpec:
    """
    Raw sample specification as given by the user.

    ``value`` is either an inline comma-separated list or a path to a file
    with one sample per line, as indicated by ``is_file``. A leading ``^``
    negates the selection.
    """

    value: str
    is_file: bool = False

    @property
    def negated(self) -> bool:
        return self.value.startswith("^")

    @property
    def body(self) -> str:
        """Specification without the negation marker."""
        return self.value[1:] if self.negated else self.value

    @property
    def selects_all(self) -> bool:
        return self.value == "-"


@dataclass
class SampleSet:
    """
    Resolved sample selection.

    ``names`` is the authoritative sample order for the run. ``indices``
    maps each retained name to its position in the subsetted source header,
    or is empty when no reordering is needed.
    """

    names: List[str]
    negated: bool = False
    from_file: bool = False
    indices: List[int] = field(default_factory=list)

    @property
    def reordered(self) -> bool:
        return bool(self.indices)

    def __len__(self) -> int:
        return len(self.names)


@dataclass
class RegionSpec:
    """Region or target restriction: inline list or file path."""

    value: str
    is_file: bool = False


@dataclass
class GensampleOptions:
    """Options for the VCF -> gen/sample direction."""

    input_path: str
    output_spec: str
    tag: ProbTag = ProbTag.GT
    samples: Optional[SampleSpec] = None
    regions: Optional[RegionSpec] = None
    targets: Optional[RegionSpec] = None
    filter_expr: Optional[str] = None
    filter_logic: FilterLogic = FilterLogic.INCLUDE


@dataclass
class Tsv2VcfOptions:
    """Options for the ancestral-allele table -> VCF direction."""

    input_path: str
    reference: Optional[Path]
    samples: Optional[SampleSpec]
    columns: str = "ID,CHROM,POS,AA"
    output: str = "-"
    output_type: OutputType = OutputType.VCF


@dataclass
class ConversionPlan:
    """
    Complete execution plan for a vcfconvert run.

    Exactly one of the option blocks is set, matching ``mode``.
    """

    mode: ConversionMode
    gensample: Optional[GensampleOptions] = None
    tsv2vcf: Optional[Tsv2VcfOptions] = None

    def __post_init__(self) -> None:
        if self.mode == ConversionMode.GENSAMPLE and self.gensample is None:
            raise ConfigurationError("gensample mode requires gensample options")
        if self.mode == ConversionMode.TSV2VCF and self.tsv2vcf is None:
            raise ConfigurationError("tsv2vcf mode requires tsv2vcf options")


@dataclass
class ConversionResult:
    """Outcome of a completed run."""

    mode: ConversionMode
    counters: ConversionCounters
    outputs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "counters": self.counters.to_dict(),
            "outputs": list(self.outputs),
        }
