"""
cppcheckdata_copyprop/scanner.py
════════════════════════════════

Definition discovery: one forward pass over a function's instructions
that turns ``dbg.value`` records into candidate replacement tables.

For every value bound by a ``dbg.value`` record (each value once, however
many records bind it) and every user of that value in the same function
that has a debug location, the use locations are resolved; if there are
any, the table for the user's location is created and every usable
location is handed to the synthesizer.

License: MIT
"""

from __future__ import annotations

import logging
from typing import Optional, Set

from .candidates import CandidateTableBuilder
from .config import CopyPropagationConfig
from .dominators import DominatorTree
from .errors import SkipReason
from .ir import DbgValue, IRFunction, UndefValue
from .location_resolver import LocationResolver
from .statistics import PassStatistics
from .synthesizer import ReplacementSynthesizer

logger = logging.getLogger(__name__)


class DefinitionScanner:
    """Collect candidate tables for one function."""

    def __init__(
        self,
        function: IRFunction,
        dom_tree: DominatorTree,
        synthesizer: ReplacementSynthesizer,
        config: Optional[CopyPropagationConfig] = None,
        stats: Optional[PassStatistics] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.function = function
        self.dom_tree = dom_tree
        self.synthesizer = synthesizer
        self.config = config or CopyPropagationConfig()
        self.stats = stats if stats is not None else PassStatistics()
        self._log = log or logger
        self.resolver = LocationResolver(function, dom_tree, log=self._log)

    def _wanted(self, value) -> bool:
        if value.is_constant:
            return self.config.propagate_constants
        return self.config.propagate_copies

    def scan(self) -> CandidateTableBuilder:
        builder = CandidateTableBuilder()
        seen: Set[int] = set()
        for inst in self.function.instructions():
            if not isinstance(inst, DbgValue):
                continue
            value = inst.value
            if value is None or isinstance(value, UndefValue):
                continue
            if id(value) in seen:
                continue
            seen.add(id(value))
            if not self._wanted(value):
                continue
            for user in value.users_in(self.function):
                if user.debug_loc is None:
                    continue
                resolved = self.resolver.resolve(value, user)
                if not resolved.uses:
                    continue
                self._log.debug(
                    "remember %r as a root for replacement at %s",
                    user, user.debug_loc)
                table = builder.get_or_create(user.debug_loc)
                for use in resolved.uses:
                    if use.template:
                        self.stats.skip(SkipReason.TEMPLATE_INSTANTIATION)
                        continue
                    if not use.valid:
                        self.stats.skip(SkipReason.INVALID_LOCATION)
                        continue
                    result = self.synthesizer.synthesize(
                        value, resolved.definition, use)
                    if not result.ok:
                        self._log.debug(
                            "no replacement for %s at %s: %s",
                            use.variable.name, user.debug_loc,
                            result.reason.value)
                        self.stats.skip(result.reason)
                        continue
                    self._log.debug(
                        "found source-level definition %r for %r to replace %s",
                        result.def_text, value, result.use_text)
                    table.insert(result.use_text, result.def_text)
                    self.stats.candidates += 1
        return builder
