"""Configuration of the copy propagation pass."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class CopyPropagationConfig:
    """Tuning knobs for the copy propagation pass."""
    languages: Tuple[str, ...] = ("c", "c++")
    system_prefixes: Tuple[str, ...] = (
        "/usr/include",
        "/usr/local/include",
        "/usr/lib/gcc",
        "/usr/lib/clang",
    )
    user_roots: Tuple[str, ...] = field(default_factory=tuple)
    propagate_constants: bool = True
    propagate_copies: bool = True
    protect_address_of: bool = True
    skip_macro_expansions: bool = True

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if not self.languages:
            warnings.append("languages is empty; no function will be processed")
        if not (self.propagate_constants or self.propagate_copies):
            warnings.append(
                "both propagate_constants and propagate_copies are disabled")
        for root in self.user_roots:
            if not os.path.isabs(root):
                warnings.append(f"user root is not absolute: {root}")
        return warnings

    def is_supported_language(self, language) -> bool:
        return bool(language) and language.lower() in self.languages
