"""
Tests for codec.py genotype decoding and gen-line encoding.

Covers call decoding from allele tables, site decoding with skip rules and
tallies, GT/PL conversion to gen probabilities and full gen lines.
"""

import pysam
import pytest

from vcfconvert.alleles import AlleleTable
from vcfconvert.codec import (
    GenLineEncoder,
    classify_call,
    decode_call,
    decode_site,
    encode_call,
    gt_to_prob3,
    parse_tag,
    pl_to_prob3,
    site_id,
)
from vcfconvert.errors import (
    ConfigurationError,
    RecordError,
    SiteSkip,
    UnsupportedCallLength,
)
from vcfconvert.models import CallClass, GenotypeCall, ProbTag


class TestDecodeCall:
    """Test single-token decoding."""

    def test_two_characters_keep_order(self):
        table = AlleleTable("C")
        assert decode_call("AC", table) == GenotypeCall(1, 0)

    def test_single_character_is_homozygous(self):
        table = AlleleTable("C")
        assert decode_call("G", table) == GenotypeCall(1, 1)
        assert decode_call("C", table) == GenotypeCall(0, 0)

    @pytest.mark.parametrize("token", ["--", "-A", "II", "DD", "I", "D"])
    def test_skip_markers(self, token):
        with pytest.raises(SiteSkip):
            decode_call(token, AlleleTable("C"))

    def test_three_characters_rejected(self):
        with pytest.raises(UnsupportedCallLength):
            decode_call("ACG", AlleleTable("A"))

    def test_empty_token_rejected(self):
        with pytest.raises(RecordError):
            decode_call("", AlleleTable("A"))


class TestClassifyCall:
    """Test genotype class assignment."""

    def test_classes(self):
        assert classify_call(0, 0) == CallClass.HOM_RR
        assert classify_call(0, 1) == CallClass.HET_RA
        assert classify_call(2, 0) == CallClass.HET_RA
        assert classify_call(1, 1) == CallClass.HOM_AA
        assert classify_call(1, 2) == CallClass.HET_AA


class TestDecodeSite:
    """Test whole-site decoding."""

    def test_simple_site(self):
        site = decode_site("C", ["CC", "CA", "AA"])

        assert site.alleles == ["C", "A"]
        assert [c.as_tuple() for c in site.calls] == [(0, 0), (0, 1), (1, 1)]
        assert site.counters.hom_rr == 1
        assert site.counters.het_ra == 1
        assert site.counters.hom_aa == 1
        assert site.counters.het_aa == 0

    def test_site_with_gap_is_skipped(self):
        with pytest.raises(SiteSkip):
            decode_site("C", ["CC", "CA", "AA", "--"])

    def test_alleles_in_assigned_order(self):
        """Alternate alleles follow first appearance, not alphabet order."""
        site = decode_site("T", ["GA", "GG", "T"])

        assert site.alleles == ["T", "G", "A"]
        assert [c.as_tuple() for c in site.calls] == [(1, 2), (1, 1), (0, 0)]
        assert site.counters.het_aa == 1
        assert site.counters.hom_aa == 1
        assert site.counters.hom_rr == 1

    def test_unknown_base_becomes_missing(self):
        site = decode_site("G", ["GN", "NA", "AA"])

        assert site.alleles == ["G", "A"]
        assert [c.as_tuple() for c in site.calls] == [(0, None), (None, 1), (1, 1)]

    def test_tallies_are_per_sample(self):
        site = decode_site("A", ["AA"] * 4)
        assert site.counters.hom_rr == 4

    def test_lowercase_calls(self):
        site = decode_site("a", ["ac", "cc"])
        assert site.alleles == ["A", "C"]
        assert [c.as_tuple() for c in site.calls] == [(0, 1), (1, 1)]


class TestEncodeCall:
    """Test rendering calls back as text."""

    def test_homozygous_collapses(self):
        assert encode_call(GenotypeCall(1, 1), ["C", "A"]) == "A"

    def test_heterozygous(self):
        assert encode_call(GenotypeCall(0, 1), ["C", "A"]) == "CA"

    def test_missing(self):
        assert encode_call(GenotypeCall(0, None), ["C", "A"]) == "CN"

    def test_haploid(self):
        assert encode_call(GenotypeCall(1, haploid=True), ["C", "A"]) == "A"
        assert GenotypeCall(1, haploid=True).as_tuple() == (1,)

    def test_missing_second_allele_stays_diploid(self):
        call = GenotypeCall(0, None)
        assert not call.is_haploid
        assert call.as_tuple() == (0, None)

    def test_homozygous_decodes_back(self):
        """A homozygous call survives encode -> decode unchanged."""
        for token in ("CC", "AA"):
            site = decode_site("C", [token, "CA"])
            text = encode_call(site.calls[0], site.alleles)
            again = decode_site("C", [text, "CA"])
            assert again.calls[0] == site.calls[0]


class TestGtToProb3:
    """Test GT conversion."""

    @pytest.mark.parametrize(
        "gt,expected",
        [
            ((0, 0), "1 0 0"),
            ((0, 1), "0 1 0"),
            ((1, 0), "0 1 0"),
            ((1, 1), "0 0 1"),
            ((2, 2), "1 0 0"),
            ((None, 1), "0.33 0.33 0.33"),
            ((None, None), "0.33 0.33 0.33"),
            ((0,), "1 0 0"),
            ((1,), "0 0 1"),
            ((None,), "0.5 0.0 0.5"),
            (None, "0.33 0.33 0.33"),
        ],
    )
    def test_conversion(self, gt, expected):
        assert gt_to_prob3(gt) == expected

    def test_polyploid_rejected(self):
        with pytest.raises(RecordError):
            gt_to_prob3((0, 1, 1))


class TestPlToProb3:
    """Test PL conversion."""

    def test_diploid(self):
        assert pl_to_prob3((0, 30, 300)) == "0.999001 0.000999 0.000000"
        assert pl_to_prob3((30, 0, 30)) == "0.000998 0.998004 0.000998"

    def test_haploid(self):
        assert pl_to_prob3((0, 30)) == "0.999001 0.000000 0.000999"

    def test_missing(self):
        assert pl_to_prob3(None) == "0.33 0.33 0.33"
        assert pl_to_prob3((None,)) == "0.33 0.33 0.33"
        assert pl_to_prob3((None, None, None)) == "0.33 0.33 0.33"

    def test_single_value_is_missing(self):
        assert pl_to_prob3((10,)) == "0.33 0.33 0.33"

    def test_partially_missing_entries_are_capped(self):
        assert pl_to_prob3((0, None, 255)) == "1.000000 0.000000 0.000000"
        assert pl_to_prob3((None, 0, None), "%.2f") == "0.00 1.00 0.00"

    def test_float_format(self):
        assert pl_to_prob3((0, 0, 0), "%.2f") == "0.33 0.33 0.33"


class TestParseTag:
    """Test --tag resolution."""

    def test_default(self):
        assert parse_tag(None) == ProbTag.GT

    def test_case_insensitive(self):
        assert parse_tag("pl") == ProbTag.PL

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            parse_tag("GP")


class TestGenLineEncoder:
    """Test gen lines built from real pysam records."""

    def test_gt_lines(self, vcf_path):
        encoder = GenLineEncoder(["S1", "S2", "S3"])
        with pysam.VariantFile(str(vcf_path)) as vf:
            lines = [encoder.encode(r) for r in vf]

        assert lines[0] == "chr1:100_C_A rs1 100 C A 1 0 0 0 1 0 0 0 1\n"
        assert lines[1] is None
        assert lines[2] == "chr1:300_T_C rs3 300 T C 0.33 0.33 0.33 0 1 0 1 0 0\n"
        assert lines[3] == "chr2:50_A_G chr2:50 50 A G 0 1 0 0 0 1 1 0 0\n"

    def test_sample_order_follows_keys(self, vcf_path):
        encoder = GenLineEncoder(["S3", "S1"])
        with pysam.VariantFile(str(vcf_path)) as vf:
            first = encoder.encode(next(iter(vf)))
        assert first == "chr1:100_C_A rs1 100 C A 0 0 1 1 0 0\n"

    def test_pl_lines(self, vcf_path):
        encoder = GenLineEncoder([0, 1], tag=ProbTag.PL)
        with pysam.VariantFile(str(vcf_path)) as vf:
            first = encoder.encode(next(iter(vf)))
        assert first == (
            "chr1:100_C_A rs1 100 C A "
            "0.999001 0.000999 0.000000 0.000998 0.998004 0.000998\n"
        )

    def test_missing_tag_is_record_error(self, vcf_path):
        encoder = GenLineEncoder(["S1"], tag=ProbTag.PL)
        with pysam.VariantFile(str(vcf_path)) as vf:
            records = list(vf)
            with pytest.raises(RecordError, match="FORMAT/PL"):
                encoder.encode(records[3])

    def test_site_id_fallback(self, vcf_path):
        with pysam.VariantFile(str(vcf_path)) as vf:
            records = list(vf)
            assert site_id(records[0]) == "rs1"
            assert site_id(records[3]) == "chr2:50"
