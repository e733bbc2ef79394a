"""
cppcheckdata_copyprop.ir
========================

Low-level instruction representation consumed by the copy propagation
pass.

The model is deliberately small: SSA values, basic blocks whose edges are
derived from their terminators, and debug metadata (``dbg.value``
records, DWARF-like variable and type descriptions) that tie SSA values
back to source variables.

Public API
----------
    DebugLoc         - (file, line, column) of an instruction
    DwarfEncoding    - encoding of a basic type
    DIBasicType, DIDerivedType, DICompositeType
    DIVariable       - a source variable described by debug info
    ConstantInt, ConstantFP, FunctionRef, UndefValue
    Argument, Instruction, DbgValue
    BasicBlock       - a straight-line sequence of instructions
    IRFunction       - one function (entry block first)
    IRModule         - functions plus uniqued constants

Implementation notes
--------------------
* Every operand records its users (``Value.users``).  A ``DbgValue``
  refers to its value through metadata only, so it never appears among
  the users of the value it binds.
* Constants are uniqued per module, so a constant's users may belong to
  several functions.  Callers filter on ``Instruction.function``.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

TERMINATORS = frozenset({"br", "condbr", "ret", "switch", "unreachable"})


# ---------------------------------------------------------------------------
# Debug metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DebugLoc:
    """Source position attached to an instruction."""

    file: str
    line: int
    column: int = 0

    def key(self) -> Tuple[str, int, int]:
        """Join key used to match instructions with syntax-tree nodes."""
        return (os.path.normpath(self.file), self.line, self.column)

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class DwarfEncoding(enum.Enum):
    """Encoding of a basic type (subset of DW_ATE_*)."""

    ADDRESS = "address"
    BOOLEAN = "boolean"
    FLOAT = "float"
    SIGNED = "signed"
    SIGNED_CHAR = "signed_char"
    UNSIGNED = "unsigned"
    UNSIGNED_CHAR = "unsigned_char"


@dataclass(frozen=True)
class DIType:
    name: str


@dataclass(frozen=True)
class DIBasicType(DIType):
    size_bits: int = 0
    encoding: Optional[DwarfEncoding] = None


@dataclass(frozen=True)
class DIDerivedType(DIType):
    """typedef, pointer, const/volatile qualifier, ..."""

    tag: str = "typedef"
    base: Optional[DIType] = None


@dataclass(frozen=True)
class DICompositeType(DIType):
    tag: str = "struct"


@dataclass(frozen=True, eq=False)
class DIVariable:
    """A source-level variable.

    Identity matters: two variables named ``i`` in different lexical
    scopes are different variables, so equality is object identity.
    """

    name: str
    type: Optional[DIType] = None
    loc: Optional[DebugLoc] = None
    is_parameter: bool = False
    is_template: bool = False

    def __repr__(self) -> str:
        return f"DIVariable({self.name!r})"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

class Value:
    """Base class of every operand."""

    is_constant = False

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.users: List["Instruction"] = []

    def add_user(self, user: "Instruction") -> None:
        if user not in self.users:
            self.users.append(user)

    def users_in(self, function: "IRFunction") -> List["Instruction"]:
        return [u for u in self.users if u.function is function]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Constant(Value):
    is_constant = True


class ConstantInt(Constant):
    """An integer constant of a fixed width, stored as its bit pattern."""

    def __init__(self, bits: int, value: int) -> None:
        if bits <= 0:
            raise ValueError(f"invalid integer width: {bits}")
        super().__init__(f"i{bits} {value}")
        self.bits = bits
        self.value = value & ((1 << bits) - 1)

    @property
    def unsigned_value(self) -> int:
        return self.value

    @property
    def signed_value(self) -> int:
        if self.value >> (self.bits - 1):
            return self.value - (1 << self.bits)
        return self.value


class ConstantFP(Constant):
    def __init__(self, bits: int, value: float) -> None:
        super().__init__(f"f{bits} {value!r}")
        self.bits = bits
        self.value = float(value)


class FunctionRef(Constant):
    """Reference to a function by its low-level (possibly mangled) name."""

    def __init__(self, function_name: str) -> None:
        super().__init__(function_name)
        self.function_name = function_name


class UndefValue(Constant):
    def __init__(self) -> None:
        super().__init__("undef")


class Argument(Value):
    def __init__(self, name: str, index: int, function: "IRFunction") -> None:
        super().__init__(name)
        self.index = index
        self.function = function


class Instruction(Value):
    """A single instruction.

    Attributes
    ----------
    opcode : str
    operands : list[Value]
    targets : list[BasicBlock]
        Successor blocks named by a terminator.
    debug_loc : DebugLoc or None
    block : BasicBlock or None
        Set when the instruction is appended to a block.
    """

    def __init__(
        self,
        opcode: str,
        operands: Optional[List[Value]] = None,
        name: str = "",
        debug_loc: Optional[DebugLoc] = None,
        targets: Optional[List["BasicBlock"]] = None,
    ) -> None:
        super().__init__(name)
        self.opcode = opcode
        self.operands: List[Value] = []
        self.targets: List["BasicBlock"] = list(targets or [])
        self.debug_loc = debug_loc
        self.block: Optional["BasicBlock"] = None
        for op in operands or []:
            self.add_operand(op)

    def add_operand(self, value: Value) -> None:
        self.operands.append(value)
        value.add_user(self)

    @property
    def function(self) -> Optional["IRFunction"]:
        return self.block.function if self.block is not None else None

    @property
    def is_terminator(self) -> bool:
        return self.opcode in TERMINATORS

    def __repr__(self) -> str:
        ops = ", ".join(op.name or type(op).__name__ for op in self.operands)
        res = f"%{self.name} = " if self.name else ""
        return f"<{res}{self.opcode} {ops}>"


class DbgValue(Instruction):
    """``dbg.value``: binds *value* to *variable* at this program point.

    *path* is a tuple of access-path elements (see
    :mod:`cppcheckdata_copyprop.memory_location`) describing which part of
    the variable is bound; an empty path binds the whole variable.
    """

    def __init__(
        self,
        value: Optional[Value],
        variable: DIVariable,
        path: Tuple = (),
        debug_loc: Optional[DebugLoc] = None,
    ) -> None:
        super().__init__("dbg.value", debug_loc=debug_loc)
        self.value = value
        self.variable = variable
        self.path = tuple(path)

    def __repr__(self) -> str:
        vname = self.value.name if self.value is not None else "<none>"
        return f"<dbg.value {vname} -> {self.variable.name}>"


# ---------------------------------------------------------------------------
# Blocks, functions, modules
# ---------------------------------------------------------------------------

class BasicBlock:
    """A labelled sequence of instructions ending in a terminator."""

    def __init__(self, label: str, function: Optional["IRFunction"] = None) -> None:
        self.label = label
        self.function = function
        self.instructions: List[Instruction] = []

    def append(self, inst: Instruction) -> Instruction:
        inst.block = self
        self.instructions.append(inst)
        return inst

    @property
    def terminator(self) -> Optional[Instruction]:
        if self.instructions and self.instructions[-1].is_terminator:
            return self.instructions[-1]
        return None

    @property
    def successors(self) -> List["BasicBlock"]:
        term = self.terminator
        if term is None:
            return []
        seen: List[BasicBlock] = []
        for t in term.targets:
            if t not in seen:
                seen.append(t)
        return seen

    @property
    def predecessors(self) -> List["BasicBlock"]:
        if self.function is None:
            return []
        return [b for b in self.function.blocks if self in b.successors]

    def __repr__(self) -> str:
        return f"BasicBlock({self.label!r}, ninstr={len(self.instructions)})"


class IRFunction:
    """One function of an :class:`IRModule`.

    Attributes
    ----------
    name : str
        Low-level (linkage) name, possibly mangled.
    source_name : str
        Name of the function in the source (debug info subprogram name).
    language : str or None
        Source language of the compile unit ("c", "c++", ...).
    """

    def __init__(
        self,
        name: str,
        source_name: Optional[str] = None,
        language: Optional[str] = None,
        module: Optional["IRModule"] = None,
    ) -> None:
        self.name = name
        self.source_name = source_name or name
        self.language = language
        self.module = module
        self.arguments: List[Argument] = []
        self.variables: List[DIVariable] = []
        self.blocks: List[BasicBlock] = []

    def add_argument(self, name: str) -> Argument:
        arg = Argument(name, len(self.arguments), self)
        self.arguments.append(arg)
        return arg

    def add_block(self, label: str) -> BasicBlock:
        if any(b.label == label for b in self.blocks):
            raise ValueError(f"duplicate block label {label!r} in {self.name}")
        bb = BasicBlock(label, self)
        self.blocks.append(bb)
        return bb

    def block(self, label: str) -> Optional[BasicBlock]:
        for b in self.blocks:
            if b.label == label:
                return b
        return None

    @property
    def entry(self) -> Optional[BasicBlock]:
        return self.blocks[0] if self.blocks else None

    def instructions(self) -> Iterator[Instruction]:
        """All instructions, block by block, in program order."""
        for bb in self.blocks:
            yield from bb.instructions

    def debug_values(self) -> Iterator[DbgValue]:
        for inst in self.instructions():
            if isinstance(inst, DbgValue):
                yield inst

    def __repr__(self) -> str:
        return f"IRFunction({self.name!r}, nblocks={len(self.blocks)})"


class IRModule:
    """Functions of one translation unit plus its uniqued constants."""

    def __init__(self, name: str = "", source_file: Optional[str] = None) -> None:
        self.name = name
        self.source_file = source_file
        self.functions: Dict[str, IRFunction] = {}
        self._ints: Dict[Tuple[int, int], ConstantInt] = {}
        self._floats: Dict[Tuple[int, str], ConstantFP] = {}
        self._function_refs: Dict[str, FunctionRef] = {}
        self.undef = UndefValue()

    def add_function(self, function: IRFunction) -> IRFunction:
        if function.name in self.functions:
            raise ValueError(f"duplicate function {function.name!r}")
        function.module = self
        self.functions[function.name] = function
        return function

    def get_int(self, bits: int, value: int) -> ConstantInt:
        key = (bits, value & ((1 << bits) - 1))
        c = self._ints.get(key)
        if c is None:
            c = self._ints[key] = ConstantInt(bits, value)
        return c

    def get_float(self, bits: int, value: float) -> ConstantFP:
        # keyed on repr so that 0.0 and -0.0 stay distinct
        key = (bits, repr(float(value)))
        c = self._floats.get(key)
        if c is None:
            c = self._floats[key] = ConstantFP(bits, value)
        return c

    def get_function_ref(self, name: str) -> FunctionRef:
        c = self._function_refs.get(name)
        if c is None:
            c = self._function_refs[name] = FunctionRef(name)
        return c

    def __iter__(self) -> Iterator[IRFunction]:
        return iter(self.functions.values())

    def __repr__(self) -> str:
        return f"IRModule({self.name!r}, nfunctions={len(self.functions)})"
