"""Per-location replacement tables built by the definition scanner."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterator, Optional, Tuple

from .ir import DebugLoc

LocationKey = Tuple[str, int, int]


class CandidateTable:
    """Map from use-site text to replacement text at one source location.

    Insertion order is kept; inserting a use text that is already present
    replaces its definition text (last write wins).
    """

    __slots__ = ("location", "_entries")

    def __init__(self, location: DebugLoc) -> None:
        self.location = location
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    def insert(self, use_text: str, def_text: str) -> None:
        self._entries[use_text] = def_text

    def lookup(self, use_text: str) -> Optional[str]:
        return self._entries.get(use_text)

    def items(self):
        return self._entries.items()

    def __contains__(self, use_text: str) -> bool:
        return use_text in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}->{v!r}" for k, v in self._entries.items())
        return f"CandidateTable({self.location}, {{{body}}})"


class CandidateTableBuilder:
    """All candidate tables of one function, keyed by debug location."""

    def __init__(self) -> None:
        self._tables: Dict[LocationKey, CandidateTable] = OrderedDict()

    def get_or_create(self, location: DebugLoc) -> CandidateTable:
        key = location.key()
        table = self._tables.get(key)
        if table is None:
            table = self._tables[key] = CandidateTable(location)
        return table

    def find(self, key: LocationKey) -> Optional[CandidateTable]:
        return self._tables.get(key)

    def tables(self) -> Iterator[CandidateTable]:
        return iter(self._tables.values())

    def candidate_count(self) -> int:
        return sum(len(t) for t in self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)
