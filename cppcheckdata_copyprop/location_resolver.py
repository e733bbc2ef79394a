"""
cppcheckdata_copyprop/location_resolver.py
══════════════════════════════════════════

Maps a (value, user instruction) pair to the source-level memory locations
that hold the value when the user executes.

The resolver works on ``dbg.value`` records only:

    ┌─────────────────────────────────────────────────────────────────┐
    │  bindings(V)   records binding V, grouped by (variable, path)   │
    │                                                                 │
    │  use location  one per group; valid iff a binding of the group  │
    │                dominates the user and no clobbering record      │
    │                can execute between that binding and the user    │
    │                                                                 │
    │  definition    the group bound first, judged like the others    │
    └─────────────────────────────────────────────────────────────────┘

A *clobbering* record rebinds the same variable to a different value
(``undef`` included).  "Can execute between" is plain control-flow
reachability ``binding -> clobber -> user``, which is conservative inside
loops: fewer locations are valid, never more.

License: MIT
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .dominators import DominatorTree
from .ir import DbgValue, DIVariable, Instruction, IRFunction, Value
from .memory_location import DIMemoryLocation

logger = logging.getLogger(__name__)

GroupKey = Tuple[DIVariable, tuple]


@dataclass
class ResolvedLocations:
    """Result of :meth:`LocationResolver.resolve`.

    Attributes:
        definition: Location of the value's original definition; only
            computed for non-constant values
        uses: Locations holding the value at the user, in binding order
    """
    definition: Optional[DIMemoryLocation] = None
    uses: List[DIMemoryLocation] = field(default_factory=list)


class LocationResolver:
    """Resolve memory locations for the values of one function."""

    def __init__(
        self,
        function: IRFunction,
        dom_tree: DominatorTree,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.function = function
        self.dom_tree = dom_tree
        self._log = log or logger
        self._by_value: Dict[int, "OrderedDict[GroupKey, List[DbgValue]]"] = {}
        self._by_variable: Dict[DIVariable, List[DbgValue]] = {}
        for rec in function.debug_values():
            self._by_variable.setdefault(rec.variable, []).append(rec)
            if rec.value is None:
                continue
            groups = self._by_value.setdefault(id(rec.value), OrderedDict())
            groups.setdefault((rec.variable, rec.path), []).append(rec)

    # ----- helpers ----------------------------------------------------------

    def bindings(self, value: Value) -> "OrderedDict[GroupKey, List[DbgValue]]":
        return self._by_value.get(id(value), OrderedDict())

    def _is_clobbered(self, binding: DbgValue, user: Instruction) -> bool:
        for other in self._by_variable.get(binding.variable, ()):
            if other is binding or other.value is binding.value:
                continue
            if self.dom_tree.reaches(binding, other) and \
                    self.dom_tree.reaches(other, user):
                self._log.debug(
                    "binding of %s at %s may be clobbered by %r before %r",
                    binding.variable.name, binding.debug_loc, other, user)
                return True
        return False

    def _holds_at(self, records: List[DbgValue], user: Instruction) -> bool:
        for rec in records:
            if self.dom_tree.dominates(rec, user) and \
                    not self._is_clobbered(rec, user):
                return True
        return False

    def _location(self, key: GroupKey, records: List[DbgValue],
                  user: Instruction) -> DIMemoryLocation:
        variable, path = key
        return DIMemoryLocation(
            variable=variable,
            path=path,
            valid=self._holds_at(records, user),
            template=variable.is_template,
            loc=variable.loc,
        )

    def _first_bound(self, groups: "OrderedDict[GroupKey, List[DbgValue]]") -> GroupKey:
        keys = list(groups)
        for key in keys:
            first = groups[key][0]
            if all(
                self.dom_tree.dominates(first, groups[other][0])
                for other in keys if other != key
            ):
                return key
        return keys[0]

    # ----- public API -------------------------------------------------------

    def resolve(self, value: Value, user: Instruction) -> ResolvedLocations:
        """
        Find the locations that hold *value* when *user* executes.

        Args:
            value: An operand of *user*
            user: The consuming instruction

        Returns:
            The definition location (non-constant values only) and the
            use locations; both may be empty
        """
        groups = self.bindings(value)
        result = ResolvedLocations()
        if not groups:
            return result
        for key, records in groups.items():
            result.uses.append(self._location(key, records, user))
        if not value.is_constant:
            key = self._first_bound(groups)
            result.definition = self._location(key, groups[key], user)
        return result
