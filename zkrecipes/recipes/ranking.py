"""
Sequence ranking untuk sequential nodes.

Rank ditentukan murni oleh sequence suffix (10 digit) yang di-assign
coordination service. Rank 0 = pemegang lock.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..coordination.client import SEQUENCE_DIGITS
from ..exceptions import NodeVanished


@dataclass(frozen=True)
class Rank:
    """Posisi node di antara siblings"""
    position: int
    predecessor: Optional[str] = None

    @property
    def is_first(self) -> bool:
        return self.position == 0


def parse_sequence(name: str) -> int:
    """Ambil sequence number dari suffix nama node"""
    if not has_sequence(name):
        raise ValueError(f"Node name {name!r} has no sequence suffix")
    return int(name[-SEQUENCE_DIGITS:])


def has_sequence(name: str) -> bool:
    suffix = name[-SEQUENCE_DIGITS:]
    return len(suffix) == SEQUENCE_DIGITS and suffix.isdigit()


def sort_by_sequence(names: Iterable[str]) -> List[str]:
    """Sort nama node ascending berdasarkan sequence number"""
    return sorted(names, key=parse_sequence)


def compute_rank(own_name: str, siblings: Iterable[str]) -> Rank:
    """
    Hitung rank own_name di antara siblings.

    Returns:
        Rank dengan predecessor (node tepat sebelum own_name) jika position > 0

    Raises:
        NodeVanished: own_name tidak ada di siblings
    """
    ordered = sort_by_sequence(siblings)
    try:
        position = ordered.index(own_name)
    except ValueError:
        raise NodeVanished(own_name) from None

    if position == 0:
        return Rank(position=0)
    return Rank(position=position, predecessor=ordered[position - 1])
