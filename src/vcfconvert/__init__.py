"""
vcfconvert - VCF/BCF genotype conversion tool

Converts variant records to the probabilistic gen/sample format and builds
VCF/BCF records from per-site ancestral-allele call tables.
"""

from .version import __version__

__all__ = ["__version__"]
