"""
cppcheckdata_copyprop/copy_propagation.py
═════════════════════════════════════════

Source-level copy propagation.

Replaces references to a variable with the source text of the value the
variable holds, when the low-level representation proves that value is
available at the reference::

    int i = n;                      int i = n;
    int x = i;          ───►        int x = i;
    return x + 1;                   return i + 1;

Each function goes through two sub-passes:

  1. **scan**      — ``dbg.value`` records → candidate tables keyed by the
                     debug location of the consuming instructions
                     (:mod:`.scanner`, :mod:`.location_resolver`,
                     :mod:`.synthesizer`)
  2. **traverse**  — tables → textual edits of the function's syntax tree
                     (:mod:`.tree_rewriter`)

The low-level representation is never modified: :meth:`run_on_function`
always reports ``False``.

License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .candidates import CandidateTableBuilder
from .config import CopyPropagationConfig
from .dominators import DominatorTree
from .errors import (
    Diagnostic,
    DiagnosticSeverity,
    PreconditionUnavailable,
    SkipReason,
    SourceLocation,
)
from .ir import IRFunction, IRModule
from .scanner import DefinitionScanner
from .statistics import PassStatistics
from .synthesizer import ReplacementSynthesizer
from .transformation import TransformationContext, TransformationEngine
from .tree_rewriter import DefUseVisitor

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Outcome of running the pass on one module."""
    module: str
    ir_changed: bool = False
    skipped: bool = False
    statistics: PassStatistics = field(default_factory=PassStatistics)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def replacements(self) -> int:
        return self.statistics.replacements


class CopyPropagationPass:
    """Function pass replacing variable references with their definitions."""

    name = "source-copy-propagation"
    description = "Copy Propagation (source level)"

    def __init__(
        self,
        engine: TransformationEngine,
        config: Optional[CopyPropagationConfig] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.engine = engine
        self.config = config or CopyPropagationConfig()
        self._log = log or logger
        self.diagnostics: List[Diagnostic] = []
        for w in self.config.validate():
            self._log.warning("CopyPropagationConfig: %s", w)

    # ----- module -----------------------------------------------------------

    def run_on_module(self, module: IRModule) -> PassResult:
        result = PassResult(module=module.name)
        try:
            context = self.engine.require_context(module)
        except PreconditionUnavailable as exc:
            diag = Diagnostic(
                error_id="transformationContextUnavailable",
                message=f"can not transform sources: {exc}",
                severity=DiagnosticSeverity.ERROR,
                location=SourceLocation(file=module.source_file or module.name),
                reason=SkipReason.PRECONDITION_UNAVAILABLE,
            )
            self._log.error("%s", diag)
            self.diagnostics.append(diag)
            result.diagnostics.append(diag)
            result.skipped = True
            result.statistics.skip(SkipReason.PRECONDITION_UNAVAILABLE)
            return result
        for function in module:
            if self.run_on_function(function, context, result.statistics):
                result.ir_changed = True
        self._log.info(
            "%s: %d replacement(s) from %d candidate(s) in %d function(s)",
            module.name, result.statistics.replacements,
            result.statistics.candidates, result.statistics.functions_processed)
        return result

    # ----- function ---------------------------------------------------------

    def collect_candidates(
        self,
        function: IRFunction,
        context: TransformationContext,
        stats: Optional[PassStatistics] = None,
    ) -> CandidateTableBuilder:
        """Run the scan sub-pass only."""
        synthesizer = ReplacementSynthesizer(
            function.language, context.decl_name, log=self._log)
        scanner = DefinitionScanner(
            function, DominatorTree(function), synthesizer,
            config=self.config, stats=stats, log=self._log)
        return scanner.scan()

    def run_on_function(
        self,
        function: IRFunction,
        context: TransformationContext,
        stats: Optional[PassStatistics] = None,
    ) -> bool:
        """Propagate copies in *function*; returns whether the IR changed."""
        stats = stats if stats is not None else PassStatistics()
        decl = context.get_decl_for_mangled_name(function.name)
        if decl is None:
            self._log.debug("%s: no source declaration", function.name)
            stats.skip(SkipReason.NO_DECLARATION)
            return False
        if not self.config.is_supported_language(function.language):
            self._log.debug("%s: unsupported language %r",
                            function.name, function.language)
            stats.skip(SkipReason.UNSUPPORTED_LANGUAGE)
            return False
        if not context.is_user_source(decl):
            stats.skip(SkipReason.NOT_USER_SOURCE)
            return False
        token_range = context.function_token_range(decl)
        if token_range is None:
            self._log.debug("%s: declaration has no body", function.name)
            stats.skip(SkipReason.NO_DECLARATION)
            return False

        tables = self.collect_candidates(function, context, stats)
        visitor = DefUseVisitor(
            context.rewriter, tables, config=self.config, log=self._log)
        replaced = visitor.traverse_range(*token_range)
        stats.replacements += replaced
        stats.functions_processed += 1
        self._log.info("%s: %d candidate table(s), %d replacement(s)",
                       function.name, len(tables), replaced)
        return False
