"""
cppcheckdata_copyprop.dominators
================================

Dominance and reachability queries over an :class:`~.ir.IRFunction`.

Typical usage::

    from cppcheckdata_copyprop.dominators import DominatorTree

    dt = DominatorTree(function)
    if dt.dominates(binding, use):
        ...

Implementation notes
--------------------
* Dominator sets are computed with the classic iterative algorithm over
  the blocks reachable from the entry block.
* Blocks that cannot be reached from the entry are dominated by nothing
  and dominate nothing; queries about them answer ``False``.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Union

from .ir import BasicBlock, Instruction, IRFunction

Point = Union[BasicBlock, Instruction]


class DominatorTree:
    """Dominator information for one function.

    Attributes
    ----------
    function : IRFunction
    reachable : set[BasicBlock]
        Blocks reachable from the entry block.
    """

    def __init__(self, function: IRFunction) -> None:
        self.function = function
        self.reachable: Set[BasicBlock] = set()
        self._dom: Dict[BasicBlock, Set[BasicBlock]] = {}
        self._idom: Dict[BasicBlock, Optional[BasicBlock]] = {}
        self._index: Dict[int, int] = {}
        self._reach_cache: Dict[BasicBlock, Set[BasicBlock]] = {}
        if function.entry is not None:
            self.reachable = self._reachable_from(function.entry, inclusive=True)
            self._compute()
        for bb in function.blocks:
            for i, inst in enumerate(bb.instructions):
                self._index[id(inst)] = i

    # ----- construction -----------------------------------------------------

    def _ordered_blocks(self) -> List[BasicBlock]:
        return [b for b in self.function.blocks if b in self.reachable]

    def _compute(self) -> None:
        entry = self.function.entry
        nodes = self._ordered_blocks()
        all_nodes = set(nodes)
        dom: Dict[BasicBlock, Set[BasicBlock]] = {entry: {entry}}
        for n in nodes:
            if n is not entry:
                dom[n] = set(all_nodes)
        changed = True
        while changed:
            changed = False
            for n in nodes:
                if n is entry:
                    continue
                preds = [p for p in n.predecessors if p in all_nodes]
                if not preds:
                    new_dom = {n}
                else:
                    new_dom = set.intersection(*(dom[p] for p in preds))
                    new_dom = new_dom | {n}
                if new_dom != dom[n]:
                    dom[n] = new_dom
                    changed = True
        self._dom = dom
        # the immediate dominator is the strict dominator dominated by all others
        for n in nodes:
            strict = dom[n] - {n}
            idom = None
            for cand in strict:
                if all(other in dom[cand] for other in strict):
                    idom = cand
                    break
            self._idom[n] = idom

    def _reachable_from(self, start: BasicBlock, inclusive: bool) -> Set[BasicBlock]:
        visited: Set[BasicBlock] = set()
        worklist = [start] if inclusive else list(start.successors)
        while worklist:
            n = worklist.pop()
            if n in visited:
                continue
            visited.add(n)
            worklist.extend(n.successors)
        return visited

    # ----- queries ----------------------------------------------------------

    def is_reachable(self, block: BasicBlock) -> bool:
        return block in self.reachable

    def dominators_of(self, block: BasicBlock) -> Set[BasicBlock]:
        return set(self._dom.get(block, ()))

    def idom(self, block: BasicBlock) -> Optional[BasicBlock]:
        """Immediate dominator of *block* (``None`` for the entry)."""
        return self._idom.get(block)

    def position(self, inst: Instruction) -> int:
        return self._index[id(inst)]

    def dominates(self, a: Point, b: Point) -> bool:
        """True if every path from the entry to *b* passes through *a*.

        Instructions in the same block are ordered by position; a point
        dominates itself.
        """
        block_a = a if isinstance(a, BasicBlock) else a.block
        block_b = b if isinstance(b, BasicBlock) else b.block
        if block_a is None or block_b is None:
            return False
        if block_a not in self.reachable or block_b not in self.reachable:
            return False
        if a is b:
            return True
        if block_a is block_b:
            if isinstance(a, BasicBlock):
                return True
            if isinstance(b, BasicBlock):
                # an instruction never dominates the start of its own block
                return False
            return self.position(a) < self.position(b)
        return block_a in self._dom[block_b]

    def properly_dominates(self, a: Point, b: Point) -> bool:
        return a is not b and self.dominates(a, b)

    def successors_closure(self, block: BasicBlock) -> Set[BasicBlock]:
        """Blocks reachable from *block* through at least one edge."""
        cached = self._reach_cache.get(block)
        if cached is None:
            cached = self._reach_cache[block] = self._reachable_from(
                block, inclusive=False)
        return cached

    def reaches(self, a: Instruction, b: Instruction) -> bool:
        """True if some control-flow path leads from *a* to *b*.

        Within one block a later instruction is reached directly; an
        earlier one only through a cycle back into the block.
        """
        if a.block is None or b.block is None:
            return False
        if a.block is b.block and self.position(a) < self.position(b):
            return True
        return b.block in self.successors_closure(a.block)
