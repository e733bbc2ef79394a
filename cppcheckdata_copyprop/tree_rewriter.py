"""
cppcheckdata_copyprop/tree_rewriter.py
══════════════════════════════════════

Applies candidate tables to the Cppcheck AST of one function.

Traversal is depth-first over every AST root of the function.  The state
is an explicit stack of active tables:

    ┌─────────────────────────────────────────────────────────────────┐
    │  enter node whose location has a table   push table             │
    │  leave that node                         pop table              │
    │  ++ / -- node                            do not descend at all  │
    │  identifier reference, stack non-empty   look the declared name │
    │                                          up in the TOP table    │
    │                                          only; replace the      │
    │                                          token's text on a hit  │
    └─────────────────────────────────────────────────────────────────┘

A nested table therefore overrides its enclosing one instead of adding
to it.  Replaced leaves are never expanded again, so edits of one
traversal cannot overlap.

Increment and decrement operands are never rewritten: they read and
write the current value of the variable, ``x = i; ++x; return i;`` must
not become ``x = i; ++i; return i;``.  The target of a plain or compound
assignment is never rewritten either.  Operands of unary ``&`` are left
alone unless the configuration says otherwise.

License: MIT
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .ast_helper import (
    is_address_of,
    is_assignment,
    is_identifier_reference,
    is_increment_decrement,
    is_macro_expansion,
    iter_ast_roots,
    loc_key,
    tok_op1,
    tok_op2,
    tok_str,
    tok_variable,
    token_span,
    variable_name,
)
from .candidates import CandidateTable, CandidateTableBuilder
from .config import CopyPropagationConfig
from .errors import SourceLocationError
from .source_rewriter import SourceRewriter

logger = logging.getLogger(__name__)

Token = Any


class DefUseVisitor:
    """Rewrite variable references of one function's syntax tree."""

    def __init__(
        self,
        rewriter: SourceRewriter,
        tables: CandidateTableBuilder,
        config: Optional[CopyPropagationConfig] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.rewriter = rewriter
        self.tables = tables
        self.config = config or CopyPropagationConfig()
        self._log = log or logger
        self._scopes: List[CandidateTable] = []
        self.replacements = 0

    @property
    def active_table(self) -> Optional[CandidateTable]:
        return self._scopes[-1] if self._scopes else None

    # ----- traversal --------------------------------------------------------

    def traverse_range(self, start: Token, end: Token) -> int:
        """Traverse every AST root between *start* and *end* (inclusive).

        Returns the number of replacements made.
        """
        before = self.replacements
        for root in iter_ast_roots(start, end):
            self.traverse(root)
        return self.replacements - before

    def traverse(self, tok: Token) -> None:
        if tok is None:
            return
        if is_increment_decrement(tok):
            return
        table = None
        key = loc_key(tok)
        if key is not None:
            table = self.tables.find(key)
        if table is not None:
            self._log.debug(
                "traverse propagation target at %s:%d:%d", *key)
            self._scopes.append(table)
        try:
            self._visit(tok)
        finally:
            if table is not None:
                self._scopes.pop()

    def _visit(self, tok: Token) -> None:
        if is_identifier_reference(tok):
            self.visit_identifier(tok)
            return
        op1, op2 = tok_op1(tok), tok_op2(tok)
        if is_identifier_reference(op1) and (
                is_assignment(tok) or
                (self.config.protect_address_of and is_address_of(tok))):
            op1 = None
        self.traverse(op1)
        self.traverse(op2)

    # ----- leaves -----------------------------------------------------------

    def visit_identifier(self, tok: Token) -> None:
        table = self.active_table
        if table is None:
            return
        name = variable_name(tok_variable(tok)) or tok_str(tok)
        replacement = table.lookup(name)
        if replacement is None:
            return
        if self.config.skip_macro_expansions and is_macro_expansion(tok):
            self._log.debug("skip %s: produced by a macro expansion", name)
            return
        line, column, length = token_span(tok)
        file = tok.file
        try:
            start = self.rewriter.offset(file, line, column)
        except SourceLocationError as exc:
            self._log.debug("skip %s: %s", name, exc)
            return
        if self.rewriter.original_text(file, start, start + length) != tok_str(tok):
            self._log.debug(
                "skip %s at %s:%d:%d: source text does not match the token",
                name, file, line, column)
            return
        self._log.debug(
            "replace variable at %s:%d:%d with %r", file, line, column, replacement)
        self.rewriter.replace_text(file, start, start + length, replacement)
        self.replacements += 1
