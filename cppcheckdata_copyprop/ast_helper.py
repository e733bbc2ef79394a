#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cppcheckdata_copyprop/ast_helper.py
═══════════════════════════════════

Token and AST accessors for the Cppcheck syntax tree.

Cppcheck attaches an AST to its token list: operator tokens carry
``astOperand1``/``astOperand2`` links, every operand links back through
``astParent``.  The tree rewriter only needs a small part of that model:

    ┌─────────────────────────────────────────────────────────────────┐
    │  Safe accessors      tok_str, tok_op1, tok_parent, tok_file ... │
    ├─────────────────────────────────────────────────────────────────┤
    │  Positions           loc_key, token_span                        │
    ├─────────────────────────────────────────────────────────────────┤
    │  Classification      is_increment_decrement, is_assignment,     │
    │                      is_address_of, is_identifier_reference     │
    ├─────────────────────────────────────────────────────────────────┤
    │  Token ranges        iter_tokens_in_range, iter_ast_roots       │
    └─────────────────────────────────────────────────────────────────┘

All accessors accept ``None`` and return a neutral value instead of
raising.

License: MIT
"""

from __future__ import annotations

import os
from typing import Any, FrozenSet, Iterator, Optional, Tuple

# We use Any for Token to avoid hard dependency on cppcheckdata module
# at import time.
Token = Any


# ═══════════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

INCREMENT_DECREMENT_OPS: FrozenSet[str] = frozenset({'++', '--'})

ASSIGNMENT_OPS: FrozenSet[str] = frozenset({
    '=', '+=', '-=', '*=', '/=', '%=',
    '&=', '|=', '^=', '<<=', '>>=',
})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — SAFE ACCESSORS
# ═══════════════════════════════════════════════════════════════════════════

def tok_str(tok: Token) -> str:
    """
    Safely get the string representation of a token.

    Args:
        tok: A cppcheckdata Token object (may be None)

    Returns:
        The token's string value, or empty string if tok is None
    """
    if tok is None:
        return ""
    return getattr(tok, "str", "") or ""


def tok_op1(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand1", None)


def tok_op2(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand2", None)


def tok_parent(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astParent", None)


def tok_next(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "next", None)


def tok_variable(tok: Token) -> Optional[Any]:
    """
    Safely get the Variable object associated with a token.

    Args:
        tok: A cppcheckdata Token object (may be None)

    Returns:
        The Variable object, or None
    """
    if tok is None:
        return None
    return getattr(tok, "variable", None)


def tok_file(tok: Token) -> str:
    if tok is None:
        return "<unknown>"
    return getattr(tok, "file", "<unknown>") or "<unknown>"


def tok_line(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "linenr", 0) or 0)


def tok_column(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "column", 0) or 0)


def variable_name(var: Any) -> str:
    """Declared name of a cppcheckdata Variable (via its name token)."""
    if var is None:
        return ""
    name_tok = getattr(var, "nameToken", None)
    if name_tok is not None:
        return tok_str(name_tok)
    return getattr(var, "name", "") or ""


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — POSITIONS
# ═══════════════════════════════════════════════════════════════════════════

def loc_key(tok: Token) -> Optional[Tuple[str, int, int]]:
    """
    Location key of a token, comparable with ``DebugLoc.key()``.

    Args:
        tok: A cppcheckdata Token object (may be None)

    Returns:
        ``(normalised file, line, column)``, or None when the token has no
        usable position
    """
    if tok is None:
        return None
    file = getattr(tok, "file", None)
    line = tok_line(tok)
    if not file or not line:
        return None
    return (os.path.normpath(file), line, tok_column(tok))


def token_span(tok: Token) -> Tuple[int, int, int]:
    """(line, column, length) of the token's spelling in the source."""
    return (tok_line(tok), tok_column(tok), len(tok_str(tok)))


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 — CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════

def is_increment_decrement(tok: Token) -> bool:
    """
    Check if a token is ++ or -- (prefix or postfix).

    Args:
        tok: Token to check

    Returns:
        True if tok is increment or decrement
    """
    return tok_str(tok) in INCREMENT_DECREMENT_OPS


def is_assignment(tok: Token) -> bool:
    """Simple or compound assignment operator with both operands."""
    if tok is None:
        return False
    return tok_str(tok) in ASSIGNMENT_OPS and tok_op1(tok) is not None


def is_address_of(tok: Token) -> bool:
    """
    Check if a token is an address-of operator (&var).

    Distinguishes unary & from binary bitwise AND.
    """
    if tok is None:
        return False
    if tok_str(tok) != '&':
        return False
    # Unary & has operand1 but not operand2
    return tok_op1(tok) is not None and tok_op2(tok) is None


def is_declaration_name(tok: Token) -> bool:
    """True for the name token of a variable declaration."""
    var = tok_variable(tok)
    if var is None:
        return False
    name_tok = getattr(var, "nameToken", None)
    if name_tok is None:
        return False
    if name_tok is tok:
        return True
    tok_id = getattr(tok, "Id", None)
    return tok_id is not None and tok_id == getattr(name_tok, "Id", None)


def is_identifier_reference(tok: Token) -> bool:
    """
    Check if a token references a declared variable.

    Declarations themselves are not references.

    Args:
        tok: Token to check

    Returns:
        True if tok is a name token resolved to a variable and is not the
        variable's own declaration
    """
    if tok is None or not getattr(tok, "isName", False):
        return False
    if tok_variable(tok) is None:
        return False
    return not is_declaration_name(tok)


def is_macro_expansion(tok: Token) -> bool:
    return bool(getattr(tok, "isExpandedMacro", False))


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4 — TOKEN RANGES
# ═══════════════════════════════════════════════════════════════════════════

def iter_tokens_in_range(start: Token, end: Token) -> Iterator[Token]:
    """
    Iterate tokens from start to end (inclusive).

    Args:
        start: First token
        end: Last token (inclusive)

    Yields:
        Tokens in the range
    """
    tok = start
    while tok is not None:
        yield tok
        if tok is end:
            break
        tok = tok_next(tok)


def iter_ast_roots(start: Token, end: Token) -> Iterator[Token]:
    """
    Yield the AST roots found between two tokens.

    A root is a token without ``astParent`` that either has operands or
    is itself an identifier reference (``x;``).
    """
    for tok in iter_tokens_in_range(start, end):
        if tok_parent(tok) is not None:
            continue
        if tok_op1(tok) is not None or tok_op2(tok) is not None:
            yield tok
        elif is_identifier_reference(tok):
            yield tok
