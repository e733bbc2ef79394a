"""
cppcheckdata_copyprop/errors.py
═══════════════════════════════

Diagnostic model, skip taxonomy and exception types for the copy
propagation pass.

Failure handling is split in two:

    ┌─────────────────────────────────────────────────────────────────┐
    │  SkipReason     — expected, local outcomes. A resolution step   │
    │                   that cannot produce a candidate returns one   │
    │                   of these instead of raising; the caller drops │
    │                   the candidate and carries on.                 │
    ├─────────────────────────────────────────────────────────────────┤
    │  Exceptions     — malformed input or API misuse (bad IR text,   │
    │                   overlapping edits, out-of-range positions).   │
    ├─────────────────────────────────────────────────────────────────┤
    │  Diagnostic     — what the pass reports to its caller, e.g. a   │
    │                   module skipped for lack of a transformation   │
    │                   context.                                      │
    └─────────────────────────────────────────────────────────────────┘

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════════
#  SKIP TAXONOMY
# ═══════════════════════════════════════════════════════════════════════════

class SkipReason(Enum):
    """Why a module, function or single candidate was not propagated."""

    # module level
    PRECONDITION_UNAVAILABLE = "precondition-unavailable"

    # function level
    NOT_USER_SOURCE = "not-user-source"
    NO_DECLARATION = "no-declaration"
    UNSUPPORTED_LANGUAGE = "unsupported-language"

    # candidate level
    UNRESOLVABLE_LOCATION = "unresolvable-location"
    INVALID_LOCATION = "invalid-location"
    TEMPLATE_INSTANTIATION = "template-instantiation"
    TYPE_AMBIGUOUS = "type-ambiguous"
    UNSUPPORTED_CONSTANT = "unsupported-constant"
    NO_OP_REJECTED = "no-op-rejected"

    @property
    def is_candidate_level(self) -> bool:
        return self not in (
            SkipReason.PRECONDITION_UNAVAILABLE,
            SkipReason.NOT_USER_SOURCE,
            SkipReason.NO_DECLARATION,
            SkipReason.UNSUPPORTED_LANGUAGE,
        )


# ═══════════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC MODEL
# ═══════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """cppcheck-compatible severity levels."""
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic emitted by the pass.

    Attributes
    ----------
    error_id : Stable identifier (e.g., "transformationContextUnavailable")
    message  : Human-readable description
    severity : DiagnosticSeverity
    location : Where the problem applies (a module has no line)
    reason   : Matching SkipReason, when there is one
    extra    : Free-form context for downstream tooling
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation = field(default_factory=SourceLocation)
    reason: Optional[SkipReason] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.value}: {self.message} [{self.error_id}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errorId": self.error_id,
            "message": self.message,
            "severity": self.severity.value,
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "reason": self.reason.value if self.reason else None,
            "extra": dict(self.extra),
        }


# ═══════════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════

class CopyPropagationError(Exception):
    """Base class for all errors raised by this package."""


class PreconditionUnavailable(CopyPropagationError):
    """The transformation context required to edit sources is missing."""


class IRParseError(CopyPropagationError):
    """The textual IR could not be mapped to the IR model."""

    def __init__(self, message: str, form: Any = None) -> None:
        self.message = message
        self.form = form
        super().__init__(message if form is None else f"{message}: {form!r}")


class SourceLocationError(CopyPropagationError):
    """A (line, column) position lies outside the source buffer."""


class OverlappingEditError(CopyPropagationError):
    """Two edits of the same buffer overlap."""

    def __init__(self, file: str, start: int, end: int, other: tuple) -> None:
        self.file = file
        self.start = start
        self.end = end
        self.other = other
        super().__init__(
            f"{file}: edit [{start}, {end}) overlaps edit "
            f"[{other[0]}, {other[1]})"
        )
