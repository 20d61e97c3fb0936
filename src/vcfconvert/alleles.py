"""
Per-site allele table for single-nucleotide sites.

Maps the five base symbols (A, C, G, T and N for anything else) to allele
indices assigned in first-seen order. The reference base always holds
index 0.
"""

from typing import List, Optional

SYMBOLS = "ACGTN"
UNKNOWN_SLOT = 4


def base_to_slot(base: str) -> int:
    """Map a base character to its symbol slot (0-4), case-insensitively."""
    slot = SYMBOLS.find(base.upper())
    if slot < 0 or slot == UNKNOWN_SLOT:
        return UNKNOWN_SLOT
    return slot


class AlleleTable:
    """
    Allele indices for one site.

    Constructed fresh for every site and discarded once the site has been
    emitted or rejected.
    """

    def __init__(self, reference_base: str):
        self._indices: List[Optional[int]] = [None] * len(SYMBOLS)
        self._next = 0
        self.reference_base = reference_base.upper()
        self.reference_slot = base_to_slot(self.reference_base)
        self.index_of(self.reference_base, is_reference=True)

    def index_of(self, base: str, is_reference: bool = False) -> int:
        """
        Return the allele index of ``base``, assigning the next one if unseen.

        Args:
            base: Single base character (any case)
            is_reference: True when registering the site's reference base

        Returns:
            Allele index in [0, 5)
        """
        slot = base_to_slot(base)
        index = self._indices[slot]
        if is_reference:
            if index is None and self._next == 0:
                self._indices[slot] = 0
                self._next = 1
                return 0
            if index != 0:
                raise ValueError(
                    f"Reference base {base!r} registered after other alleles"
                )
            return index
        if index is None:
            index = self._next
            self._indices[slot] = index
            self._next += 1
        return index

    def __len__(self) -> int:
        return self._next

    def is_unknown(self, index: int) -> bool:
        """True if ``index`` belongs to the non-reference unknown slot."""
        return (
            self.reference_slot != UNKNOWN_SLOT
            and self._indices[UNKNOWN_SLOT] == index
        )

    def alleles(self) -> List[str]:
        """
        Alleles to emit: the reference base, then every observed
        non-reference base other than N, in increasing index order.
        """
        observed = sorted(
            (index, SYMBOLS[slot])
            for slot, index in enumerate(self._indices)
            if index is not None and index > 0 and slot != UNKNOWN_SLOT
        )
        return [self.reference_base] + [symbol for _, symbol in observed]

    def emitted_index(self, index: int) -> Optional[int]:
        """
        Translate a table index to its position in ``alleles()``.

        Returns None for the unknown slot, which has no emitted allele.
        """
        if self.is_unknown(index):
            return None
        unknown = self._indices[UNKNOWN_SLOT]
        if self.reference_slot != UNKNOWN_SLOT and unknown is not None:
            if index > unknown:
                return index - 1
        return index
