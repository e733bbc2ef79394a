"""cppcheckdata_copyprop/ir_parser.py – S-expression → IR reader.

Converts the output of ``sexpdata.loads`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints, floats) into the IR model of
:mod:`cppcheckdata_copyprop.ir`.

Design principles
-----------------
* **Head-symbol dispatch** – every list ``(tag ...)`` inside a function
  is dispatched on ``tag`` to a dedicated ``_parse_<tag>`` helper.
* **Two passes per function** – blocks and value-producing instructions
  are created first, operands are resolved afterwards, so a ``phi`` may
  name a value defined further down.
* **Fail-fast** – anything malformed raises :class:`IRParseError`
  carrying the offending form; nothing is silently ignored.

Public API
----------
``parse_module(text: str) -> IRModule``
    Parse a complete module.

``load_module(path) -> IRModule``
    Read and parse a file.

Surface syntax
--------------
::

    (module <name>
      (source "<file>")
      (type <type-name> <type-form>)
      (function <linkage-name> <function-item> ...))

    ;; type forms
    (basic "<name>" <bits> <encoding>)      ;; signed | unsigned | float ...
    (typedef "<name>" <type-name>)
    (pointer <type-name>)
    (composite "<name>")

    ;; function items
    (language c | c++)
    (subprogram "<source-name>")
    (param <name> <type-name> <loc>? template?)     ;; defines %<name>
    (var   <key>  <type-name> <loc>? (name "<n>")? template?)
    (block <label> <instruction> ...)

    ;; instructions, each optionally followed by a <loc>
    (dbg-value <operand> <var-key> (path <elem> ...)?)
    (set %<name> (<opcode> <operand> ...))
    (br <label>)
    (condbr <operand> <label> <label>)
    (ret <operand>?)
    (<opcode> <operand> ...)

    ;; operands
    %<name> | undef | (int <bits> <value>) | (float <bits> <value>)
    (fn <linkage-name>) | (incoming <operand> <label>)

    ;; locations and access paths
    (loc "<file>" <line> <column>)  |  (loc <line> <column>)
    (subscript "<index>") | deref | (offset <n>) | (member "<name>")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import IRParseError
from .ir import (
    BasicBlock,
    DbgValue,
    DebugLoc,
    DIBasicType,
    DICompositeType,
    DIDerivedType,
    DIType,
    DIVariable,
    DwarfEncoding,
    Instruction,
    IRFunction,
    IRModule,
    Value,
)
from .memory_location import Deref, Member, Offset, PathElement, Subscript

# ---------------------------------------------------------------------------
# sexpdata import
# ---------------------------------------------------------------------------
try:
    import sexpdata
    from sexpdata import Symbol
except ImportError:  # pragma: no cover – allow static analysis w/o dep
    raise ImportError(
        "The 'sexpdata' package is required for reading IR modules. "
        "Install it with:  pip install sexpdata"
    )

logger = logging.getLogger(__name__)

# Type aliases for raw sexpdata output
Sexp = Any  # Union[list, Symbol, str, int, float]


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return s.value()
    raise IRParseError(f"Expected symbol, got {type(s).__name__}", s)


def _is_sym(s: Sexp, name: Optional[str] = None) -> bool:
    if not isinstance(s, Symbol):
        return False
    return name is None or s.value() == name


def _expect_list(s: Sexp, *, min_len: int = 0, tag: Optional[str] = None) -> list:
    """Assert that *s* is a list, optionally with a minimum length and head tag."""
    if not isinstance(s, list):
        raise IRParseError(
            f"Expected list{f' ({tag} ...)' if tag else ''}, "
            f"got {type(s).__name__}", s)
    if len(s) < min_len:
        raise IRParseError(
            f"List too short: expected at least {min_len} elements", s)
    if tag is not None and (not s or not _is_sym(s[0], tag)):
        raise IRParseError(f"Expected ({tag} ...)", s)
    return s


def _head(s: Sexp) -> Optional[str]:
    """Head symbol name of a list form, or None for anything else."""
    if isinstance(s, list) and s and isinstance(s[0], Symbol):
        return s[0].value()
    return None


def _as_str(s: Sexp) -> str:
    """Coerce *s* to a Python ``str`` – accepts Symbol or string literal."""
    if isinstance(s, Symbol):
        return s.value()
    if isinstance(s, str):
        return s
    raise IRParseError(f"Expected string or symbol, got {type(s).__name__}", s)


def _as_int(s: Sexp) -> int:
    if isinstance(s, int) and not isinstance(s, bool):
        return s
    raise IRParseError(f"Expected integer, got {type(s).__name__}", s)


def _as_number(s: Sexp) -> Union[int, float]:
    if isinstance(s, (int, float)) and not isinstance(s, bool):
        return s
    if isinstance(s, (str, Symbol)):
        text = _as_str(s)
        try:
            return float(text)
        except ValueError:
            pass
    raise IRParseError(f"Expected number, got {type(s).__name__}", s)


def _split_attrs(items: list, *tags: str) -> Tuple[list, Dict[str, list]]:
    """Separate trailing ``(tag ...)`` attribute forms from positional items."""
    positional: list = []
    attrs: Dict[str, list] = {}
    for item in items:
        head = _head(item)
        if head in tags:
            if head in attrs:
                raise IRParseError(f"Duplicate ({head} ...)", item)
            attrs[head] = item
        else:
            positional.append(item)
    return positional, attrs


# ═══════════════════════════════════════════════════════════════════════
#  Parser
# ═══════════════════════════════════════════════════════════════════════

_ENCODINGS = {e.value: e for e in DwarfEncoding}


class _ModuleParser:
    def __init__(self) -> None:
        self.module = IRModule()
        self.types: Dict[str, DIType] = {}

    # ----- module level -----------------------------------------------------

    def parse(self, form: Sexp) -> IRModule:
        form = _expect_list(form, min_len=1, tag="module")
        items = form[1:]
        if items and not isinstance(items[0], list):
            self.module.name = _as_str(items[0])
            items = items[1:]
        for item in items:
            head = _head(item)
            handler = self._MODULE_DISPATCH.get(head or "")
            if handler is None:
                raise IRParseError("Unknown module item", item)
            handler(self, item)
        return self.module

    def _parse_source(self, form: list) -> None:
        _expect_list(form, min_len=2)
        self.module.source_file = _as_str(form[1])

    def _parse_type(self, form: list) -> None:
        _expect_list(form, min_len=3)
        name = _as_str(form[1])
        if name in self.types:
            raise IRParseError(f"Duplicate type {name!r}", form)
        self.types[name] = self._type_form(form[2])

    def _type_ref(self, s: Sexp) -> DIType:
        name = _as_str(s)
        ty = self.types.get(name)
        if ty is None:
            raise IRParseError(f"Unknown type {name!r}", s)
        return ty

    def _type_form(self, form: Sexp) -> DIType:
        head = _head(form)
        if head == "basic":
            _expect_list(form, min_len=4)
            enc_name = _as_str(form[3])
            encoding = _ENCODINGS.get(enc_name)
            if encoding is None:
                raise IRParseError(f"Unknown encoding {enc_name!r}", form)
            return DIBasicType(_as_str(form[1]), _as_int(form[2]), encoding)
        if head == "typedef":
            _expect_list(form, min_len=3)
            return DIDerivedType(_as_str(form[1]), "typedef", self._type_ref(form[2]))
        if head == "pointer":
            _expect_list(form, min_len=2)
            base = self._type_ref(form[1])
            return DIDerivedType(f"{base.name} *", "pointer", base)
        if head == "composite":
            _expect_list(form, min_len=2)
            return DICompositeType(_as_str(form[1]))
        raise IRParseError("Unknown type form", form)

    def _parse_function(self, form: list) -> None:
        _expect_list(form, min_len=2)
        _FunctionParser(self, _as_str(form[1])).parse(form[2:])

    _MODULE_DISPATCH: Dict[str, Callable[["_ModuleParser", list], None]] = {
        "source": _parse_source,
        "type": _parse_type,
        "function": _parse_function,
    }

    # ----- shared -----------------------------------------------------------

    def loc(self, form: list) -> DebugLoc:
        args = form[1:]
        if len(args) == 3:
            return DebugLoc(_as_str(args[0]), _as_int(args[1]), _as_int(args[2]))
        if len(args) == 2 and self.module.source_file:
            return DebugLoc(self.module.source_file, _as_int(args[0]), _as_int(args[1]))
        raise IRParseError("Expected (loc \"file\" line column)", form)


class _FunctionParser:
    def __init__(self, owner: _ModuleParser, name: str) -> None:
        self.owner = owner
        self.module = owner.module
        self.function = IRFunction(name)
        self.variables: Dict[str, DIVariable] = {}
        self.values: Dict[str, Value] = {}
        self._pending: List[Tuple[Instruction, list]] = []

    def parse(self, items: list) -> IRFunction:
        blocks: List[Tuple[BasicBlock, list]] = []
        for item in items:
            head = _head(item)
            if head == "language":
                self.function.language = _as_str(_expect_list(item, min_len=2)[1]).lower()
            elif head == "subprogram":
                self.function.source_name = _as_str(_expect_list(item, min_len=2)[1])
            elif head in ("param", "var"):
                self._parse_variable(item, head == "param")
            elif head == "block":
                _expect_list(item, min_len=2)
                label = _as_str(item[1])
                try:
                    bb = self.function.add_block(label)
                except ValueError as exc:
                    raise IRParseError(str(exc), item) from exc
                blocks.append((bb, item[2:]))
            else:
                raise IRParseError("Unknown function item", item)
        # pass 1: create instructions so that every %name is known
        for bb, insts in blocks:
            for inst_form in insts:
                bb.append(self._create(inst_form))
        # pass 2: resolve operands and branch targets
        for inst, form in self._pending:
            self._resolve(inst, form)
        self.module.add_function(self.function)
        return self.function

    # ----- declarations -----------------------------------------------------

    def _parse_variable(self, form: list, is_param: bool) -> None:
        _expect_list(form, min_len=3)
        key = _as_str(form[1])
        if key in self.variables:
            raise IRParseError(f"Duplicate variable {key!r}", form)
        rest, attrs = _split_attrs(form[3:], "loc", "name")
        template = False
        for item in rest:
            if _is_sym(item, "template"):
                template = True
            else:
                raise IRParseError("Unexpected variable attribute", item)
        name = _as_str(attrs["name"][1]) if "name" in attrs else key
        var = DIVariable(
            name=name,
            type=self.owner._type_ref(form[2]),
            loc=self.owner.loc(attrs["loc"]) if "loc" in attrs else None,
            is_parameter=is_param,
            is_template=template,
        )
        self.variables[key] = var
        self.function.variables.append(var)
        if is_param:
            self._define(f"%{key}", self.function.add_argument(key), form)

    def _define(self, name: str, value: Value, form: Sexp) -> None:
        if name in self.values:
            raise IRParseError(f"Redefinition of {name}", form)
        self.values[name] = value

    def _variable(self, s: Sexp) -> DIVariable:
        key = _as_str(s)
        var = self.variables.get(key)
        if var is None:
            raise IRParseError(f"Unknown variable {key!r}", s)
        return var

    def _block(self, s: Sexp) -> BasicBlock:
        bb = self.function.block(_as_str(s))
        if bb is None:
            raise IRParseError("Unknown block label", s)
        return bb

    # ----- instructions -----------------------------------------------------

    def _create(self, form: Sexp) -> Instruction:
        form = _expect_list(form, min_len=1)
        body, attrs = _split_attrs(form, "loc", "path")
        loc = self.owner.loc(attrs["loc"]) if "loc" in attrs else None
        head = _head(body)
        if head is None:
            raise IRParseError("Expected instruction", form)
        if head == "dbg-value":
            _expect_list(body, min_len=3)
            path = tuple(self._path_elem(e) for e in attrs["path"][1:]) \
                if "path" in attrs else ()
            inst: Instruction = DbgValue(None, self._variable(body[2]), path, loc)
            self._pending.append((inst, body))
            return inst
        if "path" in attrs:
            raise IRParseError("(path ...) is only allowed on dbg-value", form)
        if head == "set":
            _expect_list(body, min_len=3)
            name = _sym_name(body[1])
            if not name.startswith("%"):
                raise IRParseError("Result names start with '%'", body[1])
            op = _expect_list(body[2], min_len=1)
            inst = Instruction(_sym_name(op[0]), name=name[1:], debug_loc=loc)
            self._define(name, inst, form)
            self._pending.append((inst, op))
            return inst
        inst = Instruction(head, debug_loc=loc)
        self._pending.append((inst, body))
        return inst

    def _resolve(self, inst: Instruction, form: list) -> None:
        args = form[1:]
        if isinstance(inst, DbgValue):
            inst.value = self._operand(args[0])
            return
        if inst.opcode == "br":
            if len(args) != 1:
                raise IRParseError("Expected (br label)", form)
            inst.targets.append(self._block(args[0]))
        elif inst.opcode == "condbr":
            if len(args) != 3:
                raise IRParseError("Expected (condbr cond then else)", form)
            inst.add_operand(self._operand(args[0]))
            inst.targets.extend([self._block(args[1]), self._block(args[2])])
        elif inst.opcode == "switch":
            if len(args) < 2:
                raise IRParseError("Expected (switch cond label ...)", form)
            inst.add_operand(self._operand(args[0]))
            inst.targets.extend(self._block(a) for a in args[1:])
        else:
            for arg in args:
                inst.add_operand(self._operand(arg))

    def _operand(self, s: Sexp) -> Value:
        if isinstance(s, Symbol):
            name = s.value()
            if name == "undef":
                return self.module.undef
            value = self.values.get(name)
            if value is None:
                raise IRParseError(f"Unknown value {name}", s)
            return value
        head = _head(s)
        if head == "int":
            _expect_list(s, min_len=3)
            return self.module.get_int(_as_int(s[1]), _as_int(s[2]))
        if head == "float":
            _expect_list(s, min_len=3)
            return self.module.get_float(_as_int(s[1]), float(_as_number(s[2])))
        if head == "fn":
            _expect_list(s, min_len=2)
            return self.module.get_function_ref(_as_str(s[1]))
        if head == "incoming":
            _expect_list(s, min_len=3)
            self._block(s[2])
            return self._operand(s[1])
        raise IRParseError("Unknown operand", s)

    def _path_elem(self, s: Sexp) -> PathElement:
        if _is_sym(s, "deref") or _head(s) == "deref":
            return Deref()
        head = _head(s)
        if head == "subscript":
            _expect_list(s, min_len=2)
            return Subscript(str(s[1]) if isinstance(s[1], int) else _as_str(s[1]))
        if head == "offset":
            _expect_list(s, min_len=2)
            return Offset(_as_int(s[1]))
        if head == "member":
            _expect_list(s, min_len=2)
            return Member(_as_str(s[1]))
        raise IRParseError("Unknown path element", s)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def parse_module(text: str) -> IRModule:
    """Parse the textual form of an IR module."""
    try:
        form = sexpdata.loads(text, nil=None, true=None, false=None)
    except IRParseError:
        raise
    except Exception as exc:
        raise IRParseError(f"Malformed S-expression: {exc}") from exc
    module = _ModuleParser().parse(form)
    logger.debug("parsed %r", module)
    return module


def load_module(path: Union[str, Path]) -> IRModule:
    """Read and parse an IR module from *path*."""
    text = Path(path).read_text(encoding="utf-8")
    module = parse_module(text)
    if not module.name:
        module.name = Path(path).stem
    return module
