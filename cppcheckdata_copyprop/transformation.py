"""
cppcheckdata_copyprop.transformation
====================================

Everything the pass needs to know about the *source* side of a module:
the Cppcheck configuration holding the syntax tree, the rewriter holding
the source text, declaration lookup by low-level name and the
user/system classification of declarations.

Public API
----------
    SourceOrigin             - USER or SYSTEM
    SourceOriginClassifier   - classify a declaration by its file
    TransformationContext    - source-side view of one module
    TransformationEngine     - IR module -> context registry
    demangle_name            - minimal Itanium name demangling
    load_dump                - parse a Cppcheck ``.dump`` file

Typical usage::

    from cppcheckdata_copyprop.transformation import (
        TransformationContext, TransformationEngine, load_dump)

    data = load_dump("foo.c.dump")
    ctx = TransformationContext(data.configurations[0])
    engine = TransformationEngine()
    engine.register(ir_module, ctx)
"""

from __future__ import annotations

import enum
import logging
import os
import re
from typing import Any, Dict, Iterator, Optional, Tuple

from .ast_helper import iter_tokens_in_range, tok_file
from .config import CopyPropagationConfig
from .errors import PreconditionUnavailable
from .ir import IRModule
from .source_rewriter import SourceRewriter

logger = logging.getLogger(__name__)

_MANGLED_LEN = re.compile(r"(\d+)")


# ---------------------------------------------------------------------------
# Name demangling
# ---------------------------------------------------------------------------

def demangle_name(name: str) -> str:
    """Return the unqualified source name of an Itanium-mangled symbol.

    Only the name part is decoded (``_Z3fooi`` -> ``foo``,
    ``_ZN2ns3barEv`` -> ``bar``); parameter types are ignored.  Names that
    are not mangled are returned unchanged.
    """
    if not name.startswith("_Z"):
        return name
    pos = 2
    nested = name.startswith("_ZN")
    if nested:
        pos = 3
        # cv-qualifiers of member functions
        while pos < len(name) and name[pos] in "rVK":
            pos += 1
    last = None
    while pos < len(name):
        m = _MANGLED_LEN.match(name, pos)
        if m is None:
            break
        length = int(m.group(1))
        start = m.end()
        ident = name[start:start + length]
        if len(ident) != length:
            return name
        last = ident
        pos = start + length
        if not nested:
            break
        if pos < len(name) and name[pos] == "E":
            break
    return last if last is not None else name


# ---------------------------------------------------------------------------
# Source origin
# ---------------------------------------------------------------------------

class SourceOrigin(enum.Enum):
    USER = "user"
    SYSTEM = "system"


class SourceOriginClassifier:
    """Decide whether a declaration lives in user-authored sources."""

    def __init__(self, config: Optional[CopyPropagationConfig] = None) -> None:
        self.config = config or CopyPropagationConfig()

    @staticmethod
    def _under(path: str, root: str) -> bool:
        root = os.path.normpath(root)
        return path == root or path.startswith(root.rstrip(os.sep) + os.sep)

    def classify_file(self, file: Optional[str]) -> SourceOrigin:
        if not file or file == "<unknown>":
            return SourceOrigin.SYSTEM
        path = os.path.normpath(file)
        for prefix in self.config.system_prefixes:
            if self._under(path, prefix):
                return SourceOrigin.SYSTEM
        if self.config.user_roots:
            abspath = os.path.abspath(path)
            if not any(self._under(abspath, r) for r in self.config.user_roots):
                return SourceOrigin.SYSTEM
        return SourceOrigin.USER

    def classify(self, decl: Any) -> SourceOrigin:
        tok = getattr(decl, "token", None) or getattr(decl, "tokenDef", None)
        return self.classify_file(tok_file(tok) if tok is not None else None)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

class TransformationContext:
    """Source-side view of one translation unit.

    Attributes
    ----------
    configuration : cppcheckdata.Configuration or None
        Tokens, scopes, functions and variables of the translation unit.
    rewriter : SourceRewriter
        Buffer receiving the textual edits.
    classifier : SourceOriginClassifier
    """

    def __init__(
        self,
        configuration: Any,
        rewriter: Optional[SourceRewriter] = None,
        config: Optional[CopyPropagationConfig] = None,
    ) -> None:
        self.configuration = configuration
        self.rewriter = rewriter if rewriter is not None else SourceRewriter()
        self.config = config or CopyPropagationConfig()
        self.classifier = SourceOriginClassifier(self.config)
        self._decls: Dict[str, Any] = {}
        if configuration is not None:
            for func in getattr(configuration, "functions", None) or []:
                name = getattr(func, "name", None)
                if name and name not in self._decls:
                    self._decls[name] = func

    def has_instance(self) -> bool:
        return self.configuration is not None

    def get_decl_for_mangled_name(self, name: str) -> Optional[Any]:
        """Source declaration of a function given its low-level name."""
        decl = self._decls.get(name)
        if decl is None:
            decl = self._decls.get(demangle_name(name))
        return decl

    def decl_name(self, name: str) -> Optional[str]:
        decl = self.get_decl_for_mangled_name(name)
        if decl is None:
            return None
        return getattr(decl, "name", None) or None

    def is_user_source(self, decl: Any) -> bool:
        return self.classifier.classify(decl) is SourceOrigin.USER

    def function_scope(self, decl: Any) -> Optional[Any]:
        """The ``Function`` scope implementing *decl*, if it has a body."""
        for scope in getattr(self.configuration, "scopes", None) or []:
            if getattr(scope, "type", None) != "Function":
                continue
            if getattr(scope, "function", None) is decl:
                return scope
        # Fallback: match through the className
        decl_id = getattr(decl, "Id", None)
        for scope in getattr(self.configuration, "scopes", None) or []:
            if getattr(scope, "type", None) != "Function":
                continue
            if getattr(scope, "className", None) != getattr(decl, "name", None):
                continue
            if decl_id is not None and getattr(scope, "functionId", None) == decl_id:
                return scope
        return None

    def function_token_range(self, decl: Any) -> Optional[Tuple[Any, Any]]:
        """First and last token of a function definition (name to ``}``)."""
        scope = self.function_scope(decl)
        if scope is None:
            return None
        body_start = getattr(scope, "bodyStart", None)
        body_end = getattr(scope, "bodyEnd", None)
        if body_start is None or body_end is None:
            return None
        start = getattr(decl, "token", None) or body_start
        return start, body_end

    def function_tokens(self, decl: Any) -> Iterator[Any]:
        rng = self.function_token_range(decl)
        if rng is None:
            return iter(())
        return iter_tokens_in_range(*rng)


class TransformationEngine:
    """Registry of transformation contexts, one per IR module."""

    def __init__(self) -> None:
        self._contexts: Dict[int, TransformationContext] = {}

    def register(self, module: IRModule, context: TransformationContext) -> None:
        self._contexts[id(module)] = context

    def get_context(self, module: IRModule) -> Optional[TransformationContext]:
        return self._contexts.get(id(module))

    def require_context(self, module: IRModule) -> TransformationContext:
        """Context of *module*; raises PreconditionUnavailable when there is
        none or it carries no syntax tree."""
        context = self.get_context(module)
        if context is None or not context.has_instance():
            raise PreconditionUnavailable(
                "transformation context is not available")
        return context


# ---------------------------------------------------------------------------
# Dump loading
# ---------------------------------------------------------------------------

def _import_cppcheckdata():
    """Import ``cppcheckdata`` with a friendly error on failure."""
    try:
        import cppcheckdata  # type: ignore[import-untyped]
        return cppcheckdata
    except ImportError as exc:
        raise ImportError(
            "cppcheckdata is not installed.  "
            "Install cppcheck or add its Python path."
        ) from exc


def load_dump(path: str) -> Any:
    """Parse a Cppcheck ``.dump`` file with ``cppcheckdata.parsedump``."""
    cppcheckdata = _import_cppcheckdata()
    logger.info("Parsing dump file: %s", path)
    return cppcheckdata.parsedump(str(path))
