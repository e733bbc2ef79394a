# tests/test_tree_rewriter.py
"""
Tests for the guided syntax-tree traversal:
  scope stack, mutation exclusion, protected operands, text edits.
"""

import pytest

from cppcheckdata_copyprop.candidates import CandidateTableBuilder
from cppcheckdata_copyprop.config import CopyPropagationConfig
from cppcheckdata_copyprop.ir import DebugLoc
from cppcheckdata_copyprop.source_rewriter import SourceRewriter
from cppcheckdata_copyprop.tree_rewriter import DefUseVisitor
from tests.conftest import CSnippet


def _tables(file, entries):
    builder = CandidateTableBuilder()
    for (line, column), pairs in entries.items():
        table = builder.get_or_create(DebugLoc(file, line, column))
        for use, definition in pairs.items():
            table.insert(use, definition)
    return builder


def _run(src, entries, config=None, text=None):
    rw = SourceRewriter()
    rw.add_source(src.file, text if text is not None else src.text)
    visitor = DefUseVisitor(rw, _tables(src.file, entries), config=config)
    count = visitor.traverse_range(src.tokens[0], src.tokens[-1])
    assert visitor.active_table is None
    return count, rw.rewritten_text(src.file)


@pytest.fixture
def sum_src():
    src = CSnippet("""
        int f(int x, int y) {
          return x + y;
        }
    """)
    src.declare("x")
    src.declare("y")
    src.ast(src.tok("return"), src.tok("+"))
    src.ast(src.tok("+"), src.tok("x", 1), src.tok("y", 1))
    return src


class TestScopes:

    def test_outer_table_applies_to_whole_subtree(self, sum_src):
        count, text = _run(sum_src, {(2, 3): {"x": "5", "y": "6"}})
        assert count == 2
        assert "return 5 + 6;" in text

    def test_nested_table_overrides_enclosing(self, sum_src):
        count, text = _run(sum_src, {
            (2, 3): {"x": "5", "y": "6"},
            (2, 12): {"y": "7"},
        })
        assert count == 1
        assert "return x + 7;" in text

    def test_no_table_no_edit(self, sum_src):
        count, text = _run(sum_src, {(9, 9): {"x": "5"}})
        assert count == 0
        assert text == sum_src.text

    def test_unknown_identifier_left_alone(self, sum_src):
        count, text = _run(sum_src, {(2, 3): {"z": "5"}})
        assert count == 0
        assert text == sum_src.text

    def test_declarations_are_not_references(self, sum_src):
        # the parameter declarations sit on line 1 outside every table
        count, text = _run(sum_src, {(1, 11): {"x": "5"}})
        assert count == 0
        assert text.startswith("int f(int x, int y)")


class TestMutationExclusion:

    @pytest.fixture
    def src(self):
        src = CSnippet("""
            int f(int x) {
              ++x;
              x++;
              --x;
              return x;
            }
        """)
        src.declare("x")
        src.ast(src.tok("++"), src.tok("x", 1))
        src.ast(src.tok("++", 1), src.tok("x", 2))
        src.ast(src.tok("--"), src.tok("x", 3))
        src.ast(src.tok("return"), src.tok("x", 4))
        return src

    def test_increment_operands_never_rewritten(self, src):
        count, text = _run(src, {
            (2, 3): {"x": "1"},
            (3, 3): {"x": "1"},
            (3, 4): {"x": "1"},
            (4, 3): {"x": "1"},
            (5, 3): {"x": "1"},
        })
        assert count == 1
        assert "  ++x;\n  x++;\n  --x;\n  return 1;" in text


class TestProtectedOperands:

    @pytest.fixture
    def src(self):
        src = CSnippet("""
            int f(int n) {
              int x;
              x = n;
              int *p = &x;
              return x;
            }
        """)
        src.declare("n")
        src.declare("x")
        src.declare("p")
        src.ast(src.tok("="), src.tok("x", 1), src.tok("n", 1))
        src.ast(src.tok("=", 1), src.tok("p"), src.tok("&"))
        src.ast(src.tok("&"), src.tok("x", 2))
        src.ast(src.tok("return"), src.tok("x", 3))
        return src

    TABLES = {
        (3, 5): {"x": "y", "n": "m"},
        (4, 10): {"x": "y"},
    }

    def test_assignment_target_and_address_of_protected(self, src):
        count, text = _run(src, self.TABLES)
        assert count == 1
        assert "  x = m;\n  int *p = &x;\n" in text

    def test_address_of_protection_can_be_disabled(self, src):
        config = CopyPropagationConfig(protect_address_of=False)
        count, text = _run(src, self.TABLES, config=config)
        assert count == 2
        assert "  x = m;\n  int *p = &y;\n" in text

    @pytest.mark.parametrize("protect_address_of", [True, False])
    def test_compound_assignment_target_never_rewritten(self, protect_address_of):
        src = CSnippet("""
            int f(int n) {
              int x = n;
              x += 1;
              x <<= n;
              return x;
            }
        """)
        src.declare("n")
        src.declare("x")
        src.ast(src.tok("+="), src.tok("x", 1), src.tok("1"))
        src.ast(src.tok("<<="), src.tok("x", 2), src.tok("n", 2))
        src.ast(src.tok("return"), src.tok("x", 3))
        config = CopyPropagationConfig(protect_address_of=protect_address_of)
        count, text = _run(src, {
            (3, 5): {"x": "n"},
            (4, 5): {"x": "n", "n": "m"},
        }, config=config)
        assert count == 1
        assert "  x += 1;\n  x <<= m;\n  return x;\n" in text


class TestEditGuards:

    def test_macro_expansion_skipped(self, sum_src):
        sum_src.tok("x", 1).isExpandedMacro = True
        count, text = _run(sum_src, {(2, 3): {"x": "5", "y": "6"}})
        assert count == 1
        assert "return x + 6;" in text

    def test_macro_guard_can_be_disabled(self, sum_src):
        sum_src.tok("x", 1).isExpandedMacro = True
        config = CopyPropagationConfig(skip_macro_expansions=False)
        count, _ = _run(sum_src, {(2, 3): {"x": "5"}}, config=config)
        assert count == 1

    def test_source_text_mismatch_skipped(self, sum_src):
        text = sum_src.text.replace("return x", "return z")
        count, out = _run(sum_src, {(2, 3): {"x": "5"}}, text=text)
        assert count == 0
        assert out == text

    def test_position_outside_source_skipped(self, sum_src):
        sum_src.tok("x", 1).column = 99
        count, text = _run(sum_src, {(2, 3): {"x": "5", "y": "6"}})
        assert count == 1
        assert "return x + 6;" in text
