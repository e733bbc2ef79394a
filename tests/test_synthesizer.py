# tests/test_synthesizer.py
"""
Tests for replacement text synthesis:
  constant rendering, definition rendering and the no-op gate.
"""

import math

import pytest

from cppcheckdata_copyprop.errors import SkipReason
from cppcheckdata_copyprop.ir import (
    Argument,
    DebugLoc,
    DIBasicType,
    DICompositeType,
    DIDerivedType,
    DIVariable,
    DwarfEncoding,
    IRFunction,
    IRModule,
)
from cppcheckdata_copyprop.memory_location import (
    Deref,
    DIMemoryLocation,
    Member,
    Offset,
    Subscript,
    unparse_memory_location,
)
from cppcheckdata_copyprop.synthesizer import (
    ReplacementSynthesizer,
    format_float,
    format_int,
    parenthesize,
)

INT = DIBasicType("int", 32, DwarfEncoding.SIGNED)
UINT = DIBasicType("unsigned int", 32, DwarfEncoding.UNSIGNED)
BOOL = DIBasicType("_Bool", 8, DwarfEncoding.BOOLEAN)
LOC = DebugLoc("test.c", 1, 1)


def _loc(name, ty=INT, **kwargs):
    kwargs.setdefault("loc", LOC)
    return DIMemoryLocation(DIVariable(name, ty, LOC), **kwargs)


@pytest.fixture
def module():
    return IRModule("m", "test.c")


@pytest.fixture
def synth():
    decls = {"_Z3bazv": "baz", "bar": "bar"}
    return ReplacementSynthesizer("c", decls.get)


class TestFormatFloat:

    @pytest.mark.parametrize("value,bits,expected", [
        (1.5, 32, "1.5"),
        (1.5, 64, "1.5"),
        (2.0, 32, "2.0"),
        (2.0, 64, "2.0"),
        (0.1, 32, "0.1"),
        (0.1, 64, "0.1"),
        (-0.25, 64, "-0.25"),
        (1e20, 64, "1e+20"),
    ])
    def test_canonical_text(self, value, bits, expected):
        assert format_float(value, bits) == expected

    def test_reads_back_exactly(self):
        text = format_float(1.0 / 3.0, 64)
        assert float(text) == 1.0 / 3.0

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_rejected(self, value):
        assert format_float(value) is None


class TestFormatInt:

    def test_signed_and_unsigned(self, module):
        c = module.get_int(32, -1)
        assert format_int(c, DwarfEncoding.SIGNED) == "-1"
        assert format_int(c, DwarfEncoding.UNSIGNED) == "4294967295"

    def test_other_encodings_refused(self, module):
        c = module.get_int(8, 1)
        assert format_int(c, DwarfEncoding.BOOLEAN) is None
        assert format_int(c, None) is None


class TestUnparse:

    @pytest.mark.parametrize("path,expected", [
        ((), "A"),
        ((Subscript("5"),), "A[5]"),
        ((Deref(),), "*A"),
        ((Deref(), Subscript("5")), "(*A)[5]"),
        ((Subscript("X"), Subscript("2")), "A[X][2]"),
        ((Deref(), Deref()), "**A"),
    ])
    def test_grammar_forms(self, path, expected):
        assert unparse_memory_location(_loc("A", path=path), "c") == expected

    @pytest.mark.parametrize("path", [
        (Offset(4),),
        (Member("m"),),
        (Subscript(""),),
    ])
    def test_no_grammar_form(self, path):
        assert unparse_memory_location(_loc("A", path=path), "c") is None

    def test_language_gate(self):
        assert unparse_memory_location(_loc("A"), "c++") == "A"
        assert unparse_memory_location(_loc("A"), "fortran") is None
        assert unparse_memory_location(_loc("A"), None) is None


class TestParenthesize:

    @pytest.mark.parametrize("text,expected", [
        ("x", "x"),
        ("5", "5"),
        ("1.5", "1.5"),
        ("1e-05", "1e-05"),
        ("A[5]", "A[5]"),
        ("(*A)[5]", "(*A)[5]"),
        ("-5", "(-5)"),
        ("-1.5", "(-1.5)"),
        ("*p", "(*p)"),
        ("**p", "(**p)"),
        ("", ""),
    ])
    def test_unary_expressions_wrapped(self, text, expected):
        assert parenthesize(text) == expected


class TestConstants:

    def test_negative_int_is_parenthesized(self, synth, module):
        r = synth.synthesize(module.get_int(32, -5), None, _loc("x"))
        assert (r.use_text, r.def_text) == ("x", "(-5)")

    def test_negative_float_is_parenthesized(self, synth, module):
        r = synth.synthesize(module.get_float(64, -1.5), None, _loc("d"))
        assert r.def_text == "(-1.5)"

    def test_signed_int(self, synth, module):
        r = synth.synthesize(module.get_int(32, 5), None, _loc("x"))
        assert r.ok
        assert (r.use_text, r.def_text) == ("x", "5")

    def test_unsigned_int(self, synth, module):
        r = synth.synthesize(module.get_int(32, -1), None, _loc("v", UINT))
        assert r.def_text == "4294967295"

    @pytest.mark.parametrize("ty", [
        DIDerivedType("uint_t", "typedef", UINT),
        DICompositeType("struct S"),
        BOOL,
        None,
    ])
    def test_int_type_ambiguous(self, synth, module, ty):
        r = synth.synthesize(module.get_int(32, 7), None, _loc("v", ty))
        assert not r.ok
        assert r.reason is SkipReason.TYPE_AMBIGUOUS
        assert r.use_text == "v"

    def test_float(self, synth, module):
        r = synth.synthesize(module.get_float(32, 1.5), None, _loc("f"))
        assert r.def_text == "1.5"

    def test_float_infinity_unsupported(self, synth, module):
        r = synth.synthesize(module.get_float(64, math.inf), None, _loc("f"))
        assert r.reason is SkipReason.UNSUPPORTED_CONSTANT

    def test_function_reference(self, synth, module):
        r = synth.synthesize(module.get_function_ref("_Z3bazv"), None, _loc("fp"))
        assert (r.use_text, r.def_text) == ("fp", "baz")

    def test_function_without_declaration(self, synth, module):
        r = synth.synthesize(module.get_function_ref("unknown"), None, _loc("fp"))
        assert r.reason is SkipReason.NO_DECLARATION

    def test_undef_unsupported(self, synth, module):
        r = synth.synthesize(module.undef, None, _loc("x"))
        assert r.reason is SkipReason.UNSUPPORTED_CONSTANT

    def test_constant_no_op(self, module):
        synth = ReplacementSynthesizer("c", {"bar": "bar"}.get)
        r = synth.synthesize(module.get_function_ref("bar"), None, _loc("bar"))
        assert r.reason is SkipReason.NO_OP_REJECTED


class TestNonConstants:

    @pytest.fixture
    def arg(self):
        return Argument("n", 0, IRFunction("f"))

    def test_copy(self, synth, arg):
        r = synth.synthesize(arg, _loc("n"), _loc("x"))
        assert (r.use_text, r.def_text) == ("x", "n")

    def test_path_on_both_sides(self, synth, arg):
        r = synth.synthesize(
            arg, _loc("p", path=(Deref(),)), _loc("a", path=(Subscript("i"),)))
        assert (r.use_text, r.def_text) == ("a[i]", "(*p)")

    def test_missing_definition(self, synth, arg):
        r = synth.synthesize(arg, None, _loc("x"))
        assert r.reason is SkipReason.UNRESOLVABLE_LOCATION

    def test_definition_without_location(self, synth, arg):
        r = synth.synthesize(arg, _loc("n", loc=None), _loc("x"))
        assert r.reason is SkipReason.UNRESOLVABLE_LOCATION

    def test_template_definition(self, synth, arg):
        r = synth.synthesize(arg, _loc("n", template=True), _loc("x"))
        assert r.reason is SkipReason.TEMPLATE_INSTANTIATION

    def test_invalid_definition(self, synth, arg):
        r = synth.synthesize(arg, _loc("n", valid=False), _loc("x"))
        assert r.reason is SkipReason.INVALID_LOCATION

    def test_member_definition_has_no_text(self, synth, arg):
        r = synth.synthesize(arg, _loc("s", path=(Member("m"),)), _loc("x"))
        assert r.reason is SkipReason.UNRESOLVABLE_LOCATION

    def test_no_op(self, synth, arg):
        r = synth.synthesize(arg, _loc("n"), _loc("n"))
        assert r.reason is SkipReason.NO_OP_REJECTED

    def test_unparsable_use(self, synth, arg):
        r = synth.synthesize(arg, _loc("n"), _loc("s", path=(Offset(8),)))
        assert r.reason is SkipReason.UNRESOLVABLE_LOCATION
        assert r.use_text == ""

    def test_unsupported_language(self, arg):
        synth = ReplacementSynthesizer("rust", lambda name: None)
        r = synth.synthesize(arg, _loc("n"), _loc("x"))
        assert r.reason is SkipReason.UNRESOLVABLE_LOCATION
