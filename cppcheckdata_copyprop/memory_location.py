"""
cppcheckdata_copyprop/memory_location.py
════════════════════════════════════════

Source-level memory-location descriptors and their unparser.

A descriptor names an addressable source entity: a base variable plus an
optional access path.  Path elements are applied left to right::

    A                      ()
    A[5]                   (Subscript("5"),)
    (*A)[5]                (Deref(), Subscript("5"))
    B[X][2]                (Subscript("X"), Subscript("2"))

``Offset`` (a raw byte offset) has no grammar form and ``Member`` is not
propagated, so descriptors that contain them cannot be unparsed.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .ir import DebugLoc, DIVariable


# ═══════════════════════════════════════════════════════════════════════════
#  ACCESS PATH
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Subscript:
    index: str


@dataclass(frozen=True)
class Deref:
    pass


@dataclass(frozen=True)
class Offset:
    bytes: int


@dataclass(frozen=True)
class Member:
    name: str


PathElement = Union[Subscript, Deref, Offset, Member]


# ═══════════════════════════════════════════════════════════════════════════
#  DESCRIPTOR
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DIMemoryLocation:
    """
    Source-level description of a memory location.

    Attributes:
        variable: The base variable
        path: Access path applied to the base variable
        valid: False when the location does not hold the described value
            on every path reaching the point it was resolved for
        template: True for locations inside template instantiations
        loc: Declaration point of the base variable, if known
    """
    variable: DIVariable
    path: Tuple[PathElement, ...] = ()
    valid: bool = True
    template: bool = False
    loc: Optional[DebugLoc] = None

    def __str__(self) -> str:
        text = unparse_memory_location(self, "c")
        return text if text is not None else f"<{self.variable.name}+{self.path}>"


# ═══════════════════════════════════════════════════════════════════════════
#  UNPARSER
# ═══════════════════════════════════════════════════════════════════════════

UNPARSE_LANGUAGES = frozenset({"c", "c++"})


def unparse_memory_location(loc: DIMemoryLocation, language: Optional[str]) -> Optional[str]:
    """
    Render a descriptor as source text.

    Args:
        loc: The descriptor to render
        language: Source language of the enclosing function

    Returns:
        The source text, or None if the language is not supported or the
        access path has no textual form
    """
    if not language or language.lower() not in UNPARSE_LANGUAGES:
        return None
    name = loc.variable.name
    if not name:
        return None
    text = name
    # True while text is a prefix expression that must be parenthesised
    # before a postfix operator is applied to it
    prefix = False
    for elem in loc.path:
        if isinstance(elem, Subscript):
            if not elem.index:
                return None
            if prefix:
                text = f"({text})"
            text = f"{text}[{elem.index}]"
            prefix = False
        elif isinstance(elem, Deref):
            text = f"*{text}"
            prefix = True
        else:
            return None
    return text
