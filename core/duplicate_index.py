# core/duplicate_index.py

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, NamedTuple

from core.fingerprint import hamming_distance


class FrameRef(NamedTuple):
    """A sampled frame: its position in the owner's sample set, and the owner"""
    ordinal: int
    owner: str


@dataclass(frozen=True)
class IndexEntry:
    fingerprint: int
    ref: FrameRef


class DuplicateIndex:
    """
    Append-only multimap from frame fingerprint to the frames that produced it

    Entries are kept in insertion order and never removed or overwritten,
    so every file is compared against everything indexed before it.
    Lookups are a linear scan over all entries.
    """

    def __init__(self, distance: Callable[[int, int], int] = hamming_distance):
        self.distance = distance
        self._entries: List[IndexEntry] = []
        self._frame_counts: Dict[str, int] = {}

    def insert(self, fingerprint: int, ref: FrameRef):
        """Append one entry. Duplicate fingerprints are all retained."""
        self._entries.append(IndexEntry(fingerprint, ref))

    def query_approx(self, fingerprint: int, max_distance: int) -> List[FrameRef]:
        """
        Find indexed frames close to a fingerprint

        Args:
            fingerprint: Query fingerprint
            max_distance: Exclusive upper bound on the distance

        Returns:
            Matching frame refs in insertion order (possibly empty)
        """
        return [
            entry.ref for entry in self._entries
            if self.distance(fingerprint, entry.fingerprint) < max_distance
        ]

    def register_file(self, owner: str, frame_count: int):
        """Record how many frames a file contributed (zero is allowed)"""
        self._frame_counts[owner] = frame_count

    def frame_count(self, owner: str) -> int:
        return self._frame_counts.get(owner, 0)

    def owners(self) -> List[str]:
        return list(self._frame_counts)

    def entries(self) -> Iterator[IndexEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, owner: str) -> bool:
        return owner in self._frame_counts
