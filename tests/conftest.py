"""
Shared fixtures for vcfconvert tests.

Variant and reference files are written as plain text and indexed with
pysam where a test needs an index.
"""

from pathlib import Path

import pysam
import pytest

import vcfconvert.config


VCF_HEADER = """##fileformat=VCFv4.2
##FILTER=<ID=PASS,Description="All filters passed">
##FILTER=<ID=LowQual,Description="Low quality">
##contig=<ID=chr1,length=1000>
##contig=<ID=chr2,length=500>
##INFO=<ID=DP,Number=1,Type=Integer,Description="Total depth">
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
##FORMAT=<ID=PL,Number=G,Type=Integer,Description="Phred-scaled genotype likelihoods">
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\tS2\tS3
"""

VCF_RECORDS = [
    "chr1\t100\trs1\tC\tA\t50\tPASS\tDP=20\tGT:PL\t0/0:0,30,300\t0/1:30,0,30\t1/1:300,30,0",
    "chr1\t200\t.\tG\t.\t40\tPASS\tDP=5\tGT\t0/0\t0/0\t0/0",
    "chr1\t300\trs3\tT\tC,G\t10\tLowQual\tDP=8\tGT\t./.\t1/2\t2/2",
    "chr2\t50\t.\tA\tG\t60\tPASS\tDP=30\tGT\t0|1\t1|1\t0/0",
]

FASTA_TEXT = """>chr1
ACGTACGTAC
>chr2
GGGGCCCC
"""


def write_vcf(path: Path, records=None) -> Path:
    """Write a small three-sample VCF."""
    records = VCF_RECORDS if records is None else records
    path.write_text(VCF_HEADER + "".join(f"{r}\n" for r in records))
    return path


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the module-level configuration from leaking between tests."""
    vcfconvert.config._config = None
    yield
    vcfconvert.config._config = None


@pytest.fixture
def vcf_path(tmp_path):
    """Plain, unindexed VCF with four sites."""
    return write_vcf(tmp_path / "input.vcf")


@pytest.fixture
def indexed_vcf_path(tmp_path):
    """BGZF-compressed, tabix-indexed copy of the four-site VCF."""
    plain = write_vcf(tmp_path / "indexed.vcf")
    return Path(pysam.tabix_index(str(plain), preset="vcf", force=True))


@pytest.fixture
def fasta_path(tmp_path):
    """Two-contig reference with a .fai index."""
    path = tmp_path / "ref.fa"
    path.write_text(FASTA_TEXT)
    pysam.faidx(str(path))
    return path


@pytest.fixture
def long_deletion_vcf_path(tmp_path):
    """Indexed VCF whose first record spans chr1:100-249."""
    deletion = "chr1\t100\tdel1\t" + "A" * 150 + "\tA\t50\tPASS\tDP=20\tGT\t0/1\t0/0\t1/1"
    plain = write_vcf(tmp_path / "long.vcf", [deletion, VCF_RECORDS[1]])
    return Path(pysam.tabix_index(str(plain), preset="vcf", force=True))
