"""
cppcheckdata_copyprop/synthesizer.py
════════════════════════════════════

Renders the text of a replacement: the use site (the variable reference
that will be rewritten) and the definition (what it is rewritten to).

    ┌──────────────────────┬──────────────────────────────────────────┐
    │  Value               │  Definition text                         │
    ├──────────────────────┼──────────────────────────────────────────┤
    │  FunctionRef         │  name of the source declaration          │
    │  ConstantFP          │  shortest round-tripping decimal         │
    │  ConstantInt         │  signed/unsigned decimal, chosen by the  │
    │                      │  DWARF encoding of the use variable      │
    │  Argument/Instruction│  unparsed definition location            │
    └──────────────────────┴──────────────────────────────────────────┘

A definition text that is a unary expression is parenthesized before it
is handed out.  Nothing here raises: every outcome is a
:class:`SynthesisResult`.

License: MIT
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import SkipReason
from .ir import (
    Constant,
    ConstantFP,
    ConstantInt,
    DIBasicType,
    DwarfEncoding,
    FunctionRef,
    Value,
)
from .memory_location import DIMemoryLocation, unparse_memory_location

logger = logging.getLogger(__name__)

# low-level name -> source-level name of the declared function, or None
DeclLookup = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class SynthesisResult:
    use_text: str = ""
    def_text: str = ""
    reason: Optional[SkipReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, use_text: str, def_text: str) -> "SynthesisResult":
        return cls(use_text, def_text, None)

    @classmethod
    def failure(cls, reason: SkipReason, use_text: str = "") -> "SynthesisResult":
        return cls(use_text, "", reason)


# ═══════════════════════════════════════════════════════════════════════════
#  CONSTANT RENDERING
# ═══════════════════════════════════════════════════════════════════════════

def _as_float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def format_float(value: float, bits: int = 64) -> Optional[str]:
    """
    Render a floating constant as canonical decimal text.

    The shortest text that reads back as the same value of the given
    width is chosen, and it always carries a decimal point or an exponent
    so it stays a floating literal.

    Args:
        value: The constant
        bits: Width of the constant (32 selects single precision)

    Returns:
        The text, or None for infinities and NaNs
    """
    if not math.isfinite(value):
        return None
    if bits == 32:
        try:
            target = _as_float32(value)
        except OverflowError:
            return None
        text = repr(target)
        for precision in range(1, 10):
            candidate = "%.*g" % (precision, target)
            if _as_float32(float(candidate)) == target:
                text = candidate
                break
    else:
        text = repr(value)
    if not any(c in text for c in ".eE"):
        text += ".0"
    return text


# leading characters of a rendered definition that is a unary expression
_PREFIX_OPERATORS = frozenset("-+*&!~")


def parenthesize(text: str) -> str:
    """
    Make a definition text safe to paste over an operand.

    Identifiers, unsigned literals and postfix expressions (``A[5]``,
    ``(*A)[5]``) bind tighter than any operator around a variable
    reference and are returned unchanged.  A unary expression (``-5``,
    ``-1.5``, ``*p``) is wrapped, so ``y-x`` becomes ``y-(-5)`` rather
    than ``y--5`` and ``x[1]`` becomes ``(*p)[1]`` rather than ``*p[1]``.
    """
    if text and text[0] in _PREFIX_OPERATORS:
        return f"({text})"
    return text


def format_int(constant: ConstantInt, encoding: Optional[DwarfEncoding]) -> Optional[str]:
    if encoding is DwarfEncoding.SIGNED:
        return str(constant.signed_value)
    if encoding is DwarfEncoding.UNSIGNED:
        return str(constant.unsigned_value)
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  SYNTHESIZER
# ═══════════════════════════════════════════════════════════════════════════

class ReplacementSynthesizer:
    """Build (use text, definition text) pairs for one function."""

    def __init__(
        self,
        language: Optional[str],
        decl_lookup: DeclLookup,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.language = language
        self.decl_lookup = decl_lookup
        self._log = log or logger

    def _constant_text(self, value: Constant, use: DIMemoryLocation):
        if isinstance(value, FunctionRef):
            name = self.decl_lookup(value.function_name)
            if not name:
                return None, SkipReason.NO_DECLARATION
            return name, None
        if isinstance(value, ConstantFP):
            text = format_float(value.value, value.bits)
            if text is None:
                return None, SkipReason.UNSUPPORTED_CONSTANT
            return text, None
        if isinstance(value, ConstantInt):
            ty = use.variable.type
            if not isinstance(ty, DIBasicType):
                return None, SkipReason.TYPE_AMBIGUOUS
            text = format_int(value, ty.encoding)
            if text is None:
                return None, SkipReason.TYPE_AMBIGUOUS
            return text, None
        return None, SkipReason.UNSUPPORTED_CONSTANT

    def synthesize(
        self,
        value: Value,
        definition: Optional[DIMemoryLocation],
        use: DIMemoryLocation,
    ) -> SynthesisResult:
        """
        Render the replacement of *use* by the definition of *value*.

        Args:
            value: The propagated value
            definition: Where a non-constant value was originally defined
            use: The location whose references would be rewritten

        Returns:
            A successful result with both texts, or a failure with a reason
        """
        use_text = unparse_memory_location(use, self.language)
        if use_text is None:
            return SynthesisResult.failure(SkipReason.UNRESOLVABLE_LOCATION)

        if isinstance(value, Constant):
            def_text, reason = self._constant_text(value, use)
            if reason is not None:
                return SynthesisResult.failure(reason, use_text)
        else:
            if definition is None or definition.loc is None:
                return SynthesisResult.failure(
                    SkipReason.UNRESOLVABLE_LOCATION, use_text)
            if definition.template:
                return SynthesisResult.failure(
                    SkipReason.TEMPLATE_INSTANTIATION, use_text)
            if not definition.valid:
                return SynthesisResult.failure(
                    SkipReason.INVALID_LOCATION, use_text)
            def_text = unparse_memory_location(definition, self.language)
            if def_text is None:
                return SynthesisResult.failure(
                    SkipReason.UNRESOLVABLE_LOCATION, use_text)

        if def_text == use_text:
            return SynthesisResult.failure(SkipReason.NO_OP_REJECTED, use_text)
        return SynthesisResult.success(use_text, parenthesize(def_text))
