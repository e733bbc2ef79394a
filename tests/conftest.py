# tests/conftest.py
"""
Shared fixtures and mock objects for the copy propagation tests.

The mocks mirror the attribute names of ``cppcheckdata`` (``str``,
``linenr``, ``astOperand1``, ``variable.nameToken`` ...) so the package
code cannot tell them from the real thing.  :class:`CSnippet` tokenizes a
short C fragment with real 1-based line/column positions; tests then wire
up the AST links and variables by hand.
"""

from __future__ import annotations

import re
import textwrap
from typing import List, Optional, Sequence

import pytest

from cppcheckdata_copyprop.config import CopyPropagationConfig
from cppcheckdata_copyprop.copy_propagation import CopyPropagationPass, PassResult
from cppcheckdata_copyprop.ir_parser import parse_module
from cppcheckdata_copyprop.source_rewriter import SourceRewriter
from cppcheckdata_copyprop.transformation import (
    TransformationContext,
    TransformationEngine,
)


# ── Mock cppcheckdata objects ────────────────────────────────────

class MockToken:
    _next_id = 1

    def __init__(self, **kwargs):
        self.Id = f"tok{MockToken._next_id}"
        MockToken._next_id += 1
        self.str = ""
        self.file = "test.c"
        self.linenr = 0
        self.column = 0
        self.isName = False
        self.isNumber = False
        self.isOp = False
        self.isExpandedMacro = False
        self.variable = None
        self.variableId = None
        self.astOperand1 = None
        self.astOperand2 = None
        self.astParent = None
        self.next = None
        self.previous = None
        self.link = None
        for k, v in kwargs.items():
            setattr(self, k, v)

    def __repr__(self):
        return f"MockToken({self.str!r} @{self.linenr}:{self.column})"


class MockVariable:
    _next_id = 1

    def __init__(self, **kwargs):
        self.Id = f"var{MockVariable._next_id}"
        MockVariable._next_id += 1
        self.nameToken = None
        self.isArgument = False
        self.isLocal = True
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockFunction:
    def __init__(self, **kwargs):
        self.Id = None
        self.name = ""
        self.token = None
        self.tokenDef = None
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockScope:
    def __init__(self, **kwargs):
        self.Id = None
        self.type = "Function"
        self.className = ""
        self.function = None
        self.functionId = None
        self.bodyStart = None
        self.bodyEnd = None
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockConfiguration:
    def __init__(self, **kwargs):
        self.tokenlist = []
        self.functions = []
        self.scopes = []
        self.variables = []
        for k, v in kwargs.items():
            setattr(self, k, v)


# ── C snippet tokenizer ──────────────────────────────────────────

_TOKEN_RE = re.compile(r"""
    (?P<ws>[ \t\r]+)
  | (?P<nl>\n)
  | (?P<name>[A-Za-z_]\w*)
  | (?P<num>\d+(?:\.\d*)?(?:[eE][+-]?\d+)?[fFuUlL]*)
  | (?P<op><<=|>>=|\+\+|--|->|<<|>>|<=|>=|==|!=|&&|\|\|
           |[-+*/%&|^]=|[-+*/%&|^~!<>=?:;,.(){}\[\]])
""", re.VERBOSE)

_OPEN = {"(": ")", "{": "}", "[": "]"}


class CSnippet:
    """A tokenized C fragment with helpers for building the AST."""

    def __init__(self, text: str, file: str = "test.c") -> None:
        self.text = textwrap.dedent(text).lstrip("\n")
        self.file = file
        self.tokens: List[MockToken] = []
        self.variables: List[MockVariable] = []
        self._functions: List[MockFunction] = []
        self._scopes: List[MockScope] = []
        self._tokenize()

    def _tokenize(self) -> None:
        line, line_start, pos = 1, 0, 0
        stack: List[MockToken] = []
        while pos < len(self.text):
            m = _TOKEN_RE.match(self.text, pos)
            if m is None:
                raise ValueError(f"cannot tokenize at {self.text[pos:pos + 10]!r}")
            kind = m.lastgroup
            if kind == "nl":
                line += 1
                line_start = m.end()
            elif kind != "ws":
                tok = MockToken(
                    str=m.group(),
                    file=self.file,
                    linenr=line,
                    column=m.start() - line_start + 1,
                    isName=kind == "name",
                    isNumber=kind == "num",
                    isOp=kind == "op",
                )
                if self.tokens:
                    tok.previous = self.tokens[-1]
                    self.tokens[-1].next = tok
                self.tokens.append(tok)
                if tok.str in _OPEN:
                    stack.append(tok)
                elif stack and tok.str == _OPEN[stack[-1].str]:
                    opener = stack.pop()
                    opener.link, tok.link = tok, opener
            pos = m.end()

    # ----- lookup -----

    def tok(self, s: str, nth: int = 0) -> MockToken:
        """The *nth* (0-based) token spelled *s*."""
        hits = [t for t in self.tokens if t.str == s]
        return hits[nth]

    def at(self, line: int, column: int) -> MockToken:
        for t in self.tokens:
            if t.linenr == line and t.column == column:
                return t
        raise KeyError((line, column))

    # ----- AST -----

    def ast(self, parent: MockToken, op1: Optional[MockToken] = None,
            op2: Optional[MockToken] = None) -> MockToken:
        parent.astOperand1 = op1
        parent.astOperand2 = op2
        for child in (op1, op2):
            if child is not None:
                child.astParent = parent
        return parent

    def declare(self, name: str, nth: int = 0,
                refs: Optional[Sequence[int]] = None) -> MockVariable:
        """Declare *name* at its *nth* occurrence.

        The declaration token and the occurrences listed in *refs* (all
        later ones by default) are bound to the new variable.
        """
        hits = [t for t in self.tokens if t.str == name]
        decl = hits[nth]
        var = MockVariable(nameToken=decl)
        self.variables.append(var)
        decl.variable = var
        decl.variableId = var.Id
        chosen = [hits[i] for i in refs] if refs is not None else hits[nth + 1:]
        for t in chosen:
            t.variable = var
            t.variableId = var.Id
        return var

    def function(self, name: str, nth: int = 0) -> MockFunction:
        """Declare a function whose body follows its *nth* name token."""
        name_tok = self.tok(name, nth)
        body_start = name_tok
        while body_start is not None and body_start.str != "{":
            body_start = body_start.next
        func = MockFunction(name=name, token=name_tok, tokenDef=name_tok,
                            Id=f"fn{len(self._functions) + 1}")
        scope = MockScope(
            type="Function", className=name, function=func,
            functionId=func.Id, bodyStart=body_start,
            bodyEnd=body_start.link if body_start is not None else None)
        self._functions.append(func)
        self._scopes.append(scope)
        return func

    def configuration(self) -> MockConfiguration:
        return MockConfiguration(
            tokenlist=list(self.tokens),
            functions=list(self._functions),
            scopes=list(self._scopes),
            variables=list(self.variables),
        )


# ── Pass driver ──────────────────────────────────────────────────

def propagate(snippet: CSnippet, ir_text: str,
              config: Optional[CopyPropagationConfig] = None):
    """Run the pass over *snippet* with the IR module in *ir_text*.

    Returns ``(result, rewritten_text, module)``.
    """
    module = parse_module(ir_text)
    rewriter = SourceRewriter()
    rewriter.add_source(snippet.file, snippet.text)
    context = TransformationContext(snippet.configuration(), rewriter, config)
    engine = TransformationEngine()
    engine.register(module, context)
    result: PassResult = CopyPropagationPass(engine, config).run_on_module(module)
    return result, rewriter.rewritten_text(snippet.file), module


IR_PRELUDE = """
  (source "test.c")
  (type int (basic "int" 32 signed))
  (type uint (basic "unsigned int" 32 unsigned))
  (type float (basic "float" 32 float))
"""


def ir_module(body: str, name: str = "test") -> str:
    """Wrap function definitions into a module with the common types."""
    return f'(module "{name}" {IR_PRELUDE} {body})'


@pytest.fixture
def rewriter() -> SourceRewriter:
    return SourceRewriter()


@pytest.fixture
def config() -> CopyPropagationConfig:
    return CopyPropagationConfig()

