"""
cppcheckdata_copyprop — Source-Level Copy Propagation for Cppcheck Dumps
========================================================================

Rewrites C and C++ sources so that a variable reference is replaced by
the source text of the value the variable holds, whenever a low-level
representation of the same translation unit proves the value available
at that point.  The syntax tree and the source positions come from a
Cppcheck ``.dump`` file; the proof comes from ``dbg.value`` records of
an IR module read with :func:`load_module`.

Core modules
------------
ir, ir_parser
    Low-level instructions, debug metadata and their S-expression reader.
dominators
    Dominance and reachability over basic blocks.
memory_location
    Source-level memory-location descriptors and their unparser.
location_resolver, synthesizer, scanner, candidates
    The scan sub-pass: ``dbg.value`` records to candidate tables.
ast_helper, tree_rewriter, source_rewriter
    The traverse sub-pass: candidate tables to textual edits.
transformation
    Cppcheck configuration, declaration lookup, source classification.
copy_propagation
    The pass itself.

Quick start
-----------
::

    from cppcheckdata_copyprop import (
        CopyPropagationPass, TransformationContext, TransformationEngine,
        load_dump, load_module)

    data = load_dump("foo.c.dump")
    module = load_module("foo.ir")
    engine = TransformationEngine()
    engine.register(module, TransformationContext(data.configurations[0]))
    result = CopyPropagationPass(engine).run_on_module(module)
    engine.get_context(module).rewriter.write_back(".copyprop")
"""

from __future__ import annotations

import logging

__version__ = "0.1.0"
__license__ = "MIT"

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

from .candidates import CandidateTable, CandidateTableBuilder  # noqa: E402
from .config import CopyPropagationConfig  # noqa: E402
from .copy_propagation import CopyPropagationPass, PassResult  # noqa: E402
from .dominators import DominatorTree  # noqa: E402
from .errors import (  # noqa: E402
    CopyPropagationError,
    Diagnostic,
    DiagnosticSeverity,
    IRParseError,
    OverlappingEditError,
    PreconditionUnavailable,
    SkipReason,
    SourceLocation,
    SourceLocationError,
)
from .ir_parser import load_module, parse_module  # noqa: E402
from .memory_location import DIMemoryLocation, unparse_memory_location  # noqa: E402
from .source_rewriter import SourceRewriter  # noqa: E402
from .statistics import PassStatistics  # noqa: E402
from .transformation import (  # noqa: E402
    TransformationContext,
    TransformationEngine,
    load_dump,
)

__all__ = [
    "CandidateTable",
    "CandidateTableBuilder",
    "CopyPropagationConfig",
    "CopyPropagationError",
    "CopyPropagationPass",
    "DIMemoryLocation",
    "Diagnostic",
    "DiagnosticSeverity",
    "DominatorTree",
    "IRParseError",
    "OverlappingEditError",
    "PassResult",
    "PassStatistics",
    "PreconditionUnavailable",
    "SkipReason",
    "SourceLocation",
    "SourceLocationError",
    "SourceRewriter",
    "TransformationContext",
    "TransformationEngine",
    "load_dump",
    "load_module",
    "parse_module",
    "unparse_memory_location",
]
