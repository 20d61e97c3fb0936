"""
Genotype encoding and decoding.

Two directions are handled here:
- Decoding textual base calls (e.g. "CA") from an ancestral-allele table
  into allele indices for a VCF record, using a per-site AlleleTable.
- Encoding VCF genotypes (GT) or genotype likelihoods (PL) into the
  three-probability columns of the gen format.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

import numpy as np

from .alleles import AlleleTable
from .errors import ConfigurationError, RecordError, SiteSkip, UnsupportedCallLength
from .models import CallClass, ConversionCounters, GenotypeCall, ProbTag

logger = logging.getLogger(__name__)

# First characters marking a gap, indel or no-call in an allele table
SKIP_MARKERS = ("-", "I", "D")

PROB3_HOM_REF = "1 0 0"
PROB3_HET = "0 1 0"
PROB3_HOM_ALT = "0 0 1"
PROB3_MISSING_DIPLOID = "0.33 0.33 0.33"
PROB3_MISSING_HAPLOID = "0.5 0.0 0.5"

# Phred value used in place of a missing PL entry
PL_MISSING_CAP = 255


@dataclass
class DecodedSite:
    """Alleles and per-sample calls decoded for one accepted site."""

    alleles: List[str]
    calls: List[GenotypeCall]
    counters: ConversionCounters = field(default_factory=ConversionCounters)


def parse_tag(value: Optional[str]) -> ProbTag:
    """
    Resolve the --tag option.

    Raises:
        ConfigurationError: If the tag is not GT or PL
    """
    if value is None:
        return ProbTag.GT
    try:
        return ProbTag(value.upper())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported --tag {value!r}: expected one of "
            + ", ".join(t.value for t in ProbTag)
        )


def classify_call(first: int, second: int, reference: int = 0) -> CallClass:
    """
    Classify a decoded call against the reference allele index.

    Args:
        first: Allele index of the first position
        second: Allele index of the second position
        reference: Reference allele index (always 0 for decoded sites)

    Returns:
        One of the four mutually exclusive genotype classes
    """
    if first == reference and second == reference:
        return CallClass.HOM_RR
    if first == reference or second == reference:
        return CallClass.HET_RA
    if first == second:
        return CallClass.HOM_AA
    return CallClass.HET_AA


def decode_call(token: str, table: AlleleTable) -> GenotypeCall:
    """
    Decode a one or two character base call into table allele indices.

    A single character yields a homozygous call. Two characters are kept in
    the order given.

    Raises:
        UnsupportedCallLength: If the token is longer than two characters
        SiteSkip: If the token starts with a gap, indel or no-call marker
        RecordError: If the token is empty
    """
    if len(token) > 2:
        raise UnsupportedCallLength(
            f"Expected one or two characters, got {token!r}"
        )
    if not token:
        raise RecordError("Empty genotype call")
    if token[0] in SKIP_MARKERS:
        raise SiteSkip(f"Non-SNP call {token!r}")

    first = table.index_of(token[0])
    second = table.index_of(token[1]) if len(token) == 2 else first
    return GenotypeCall(first, second)


def decode_site(reference_base: str, tokens: Sequence[str]) -> DecodedSite:
    """
    Decode every sample's call at one site.

    Tallies are collected in a site-local accumulator so that the caller
    only merges them once the whole site is accepted.

    Args:
        reference_base: Reference base at the site
        tokens: One call token per sample, in sample order

    Returns:
        DecodedSite with emitted alleles and VCF allele indices per sample

    Raises:
        SiteSkip: If any sample's call is unusable
        UnsupportedCallLength: If any token is longer than two characters
    """
    table = AlleleTable(reference_base)
    counters = ConversionCounters()
    raw_calls = []

    for token in tokens:
        call = decode_call(token, table)
        counters.record_call(classify_call(call.first, call.second))
        raw_calls.append(call)

    calls = [
        GenotypeCall(
            table.emitted_index(c.first),
            table.emitted_index(c.second),
            haploid=c.haploid,
        )
        for c in raw_calls
    ]
    return DecodedSite(alleles=table.alleles(), calls=calls, counters=counters)


def encode_call(call: GenotypeCall, alleles: Sequence[str]) -> str:
    """
    Render a genotype call back as a textual base call.

    Homozygous calls collapse to a single character; missing alleles are
    written as "N".
    """

    def base(index: Optional[int]) -> str:
        return "N" if index is None else alleles[index]

    if call.is_haploid or call.first == call.second:
        return base(call.first)
    return base(call.first) + base(call.second)


def gt_to_prob3(gt: Optional[Sequence[Optional[int]]]) -> str:
    """
    Convert a FORMAT/GT allele tuple to gen probabilities.

    Raises:
        RecordError: For ploidy other than one or two
    """
    if gt is None or len(gt) == 0:
        return PROB3_MISSING_DIPLOID

    if len(gt) == 2:
        if gt[0] is None or gt[1] is None:
            return PROB3_MISSING_DIPLOID
        if gt[0] != gt[1]:
            return PROB3_HET
        if gt[0] == 1:
            return PROB3_HOM_ALT
        # hom ref, or hom for a minor alt
        return PROB3_HOM_REF

    if len(gt) == 1:
        if gt[0] is None:
            return PROB3_MISSING_HAPLOID
        if gt[0] == 1:
            return PROB3_HOM_ALT
        return PROB3_HOM_REF

    raise RecordError(f"Ploidy {len(gt)} is not supported")


def pl_to_prob3(pl: Optional[Sequence[Optional[int]]], float_format: str = "%f") -> str:
    """
    Convert phred-scaled genotype likelihoods to normalised probabilities.

    Diploid likelihoods give the first three normalised values. Haploid
    likelihoods (two values) are spread over the hom-ref and hom-alt columns.
    Missing entries are capped at PL_MISSING_CAP; a vector with nothing usable
    in it, or a single value, is written as missing.
    """
    if pl is None or len(pl) < 2 or all(v is None for v in pl):
        return PROB3_MISSING_DIPLOID

    capped = [PL_MISSING_CAP if v is None else v for v in pl]
    probs = np.power(10.0, -0.1 * np.asarray(capped, dtype=float))
    total = probs.sum()
    if total <= 0:
        return PROB3_MISSING_DIPLOID
    probs = probs / total

    if len(probs) == 2:
        values = [probs[0], 0.0, probs[1]]
    else:
        values = list(probs[:3])
    return " ".join(float_format % v for v in values)


def site_id(record: Any) -> str:
    """Site ID if present, otherwise CHROM:POS."""
    if record.id and record.id != ".":
        return record.id
    return f"{record.chrom}:{record.pos}"


class GenLineEncoder:
    """
    Renders variant records as gen-format lines.

    Samples are emitted in the order given at construction, which is the
    authoritative sample order of the run. Keys are sample names or
    positions in the (subsetted) source header.
    """

    def __init__(
        self,
        sample_keys: Sequence[Union[int, str]],
        tag: ProbTag = ProbTag.GT,
        float_format: str = "%f",
    ):
        self.sample_keys = list(sample_keys)
        self.tag = tag
        self.float_format = float_format

    def sample_prob3(self, record: Any, key: Union[int, str]) -> str:
        sample = record.samples[key]
        if self.tag == ProbTag.GT:
            return gt_to_prob3(sample.get("GT"))
        return pl_to_prob3(sample.get("PL"), self.float_format)

    def encode(self, record: Any) -> Optional[str]:
        """
        Encode one record, or return None if it carries no alternate allele.

        Raises:
            RecordError: If the record lacks the FORMAT field selected by the tag
        """
        alleles = record.alleles or ()
        if len(alleles) < 2:
            logger.debug(f"Skipping monomorphic site {record.chrom}:{record.pos}")
            return None

        if self.sample_keys and self.tag.value not in record.format:
            raise RecordError(
                f"FORMAT/{self.tag.value} missing at {record.chrom}:{record.pos}"
            )

        ref, alt = alleles[0], alleles[1]
        fields = [
            f"{record.chrom}:{record.pos}_{ref}_{alt}",
            site_id(record),
            str(record.pos),
            ref,
            alt,
        ]
        fields.extend(self.sample_prob3(record, key) for key in self.sample_keys)
        return " ".join(fields) + "\n"
