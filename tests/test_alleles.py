"""
Tests for alleles.py per-site allele table.
"""

import pytest

from vcfconvert.alleles import AlleleTable, base_to_slot, UNKNOWN_SLOT


class TestBaseToSlot:
    """Test base symbol mapping."""

    def test_known_bases(self):
        assert [base_to_slot(b) for b in "ACGT"] == [0, 1, 2, 3]

    def test_case_insensitive(self):
        assert base_to_slot("g") == base_to_slot("G")

    def test_anything_else_is_unknown(self):
        for base in ("N", "R", "*", "x"):
            assert base_to_slot(base) == UNKNOWN_SLOT


class TestAlleleTable:
    """Test allele index assignment."""

    def test_reference_is_index_zero(self):
        table = AlleleTable("c")
        assert table.index_of("C") == 0
        assert table.reference_base == "C"
        assert len(table) == 1

    def test_first_seen_order(self):
        """Non-reference bases get consecutive indices in order of appearance."""
        table = AlleleTable("T")
        assert table.index_of("G") == 1
        assert table.index_of("A") == 2
        assert table.index_of("G") == 1
        assert len(table) == 3
        assert table.alleles() == ["T", "G", "A"]

    def test_lookup_is_case_insensitive(self):
        table = AlleleTable("A")
        assert table.index_of("c") == table.index_of("C") == 1

    def test_at_most_five_indices(self):
        table = AlleleTable("A")
        for base in "CGTNRY":
            table.index_of(base)
        assert len(table) == 5

    def test_reference_registered_late_is_rejected(self):
        table = AlleleTable("A")
        table.index_of("C")
        with pytest.raises(ValueError):
            table.index_of("C", is_reference=True)


class TestUnknownSlot:
    """Test handling of N and other unknown bases."""

    def test_unknown_not_emitted(self):
        table = AlleleTable("G")
        n_index = table.index_of("N")
        a_index = table.index_of("A")

        assert table.is_unknown(n_index)
        assert table.alleles() == ["G", "A"]
        assert table.emitted_index(0) == 0
        assert table.emitted_index(n_index) is None
        # A was assigned after N and shifts down into N's place
        assert table.emitted_index(a_index) == 1

    def test_unknown_reference_is_emitted(self):
        table = AlleleTable("N")
        assert not table.is_unknown(0)
        assert table.index_of("A") == 1
        assert table.alleles() == ["N", "A"]
        assert table.emitted_index(1) == 1
