"""Counters collected while the pass runs."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict

from .errors import SkipReason


@dataclass
class PassStatistics:
    functions_processed: int = 0
    candidates: int = 0
    replacements: int = 0
    skipped: Counter = field(default_factory=Counter)

    def skip(self, reason: SkipReason) -> None:
        self.skipped[reason] += 1

    def merge(self, other: "PassStatistics") -> None:
        self.functions_processed += other.functions_processed
        self.candidates += other.candidates
        self.replacements += other.replacements
        self.skipped.update(other.skipped)

    def to_dict(self) -> Dict[str, object]:
        return {
            "functions_processed": self.functions_processed,
            "candidates": self.candidates,
            "replacements": self.replacements,
            "skipped": {r.value: n for r, n in self.skipped.items()},
        }
