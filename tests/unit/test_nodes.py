"""Tests for the canonical node type and s-expression rendering."""

from __future__ import annotations

import pytest

from rubyast.nodes import Node, NodeType, SourceRange, Symbol, s, to_sexp

RANGE = SourceRange(start_line=1, start_col=0, end_line=1, end_col=1, begin_pos=0, end_pos=1)


class TestNodeEquality:
    def test_location_is_not_compared(self):
        located = Node(NodeType.INT, [1], {"expression": RANGE})
        assert located == s("int", 1)
        assert hash(located) == hash(s("int", 1))

    def test_type_accepts_enum_or_string(self):
        assert Node(NodeType.OP_ASGN).type == "op_asgn"
        assert Node("op_asgn") == Node(NodeType.OP_ASGN)

    def test_symbol_equals_plain_string(self):
        assert s("sym", Symbol("a")) == s("sym", "a")

    def test_nodes_are_immutable(self):
        node = s("int", 1)
        with pytest.raises(AttributeError):
            node.type = "float"
        with pytest.raises(TypeError):
            node.location["expression"] = RANGE


class TestUnwrap:
    def test_empty_program(self):
        assert Node(NodeType.PROGRAM).unwrap() is None

    def test_single_statement(self):
        assert Node(NodeType.PROGRAM, [s("int", 1)]).unwrap() == s("int", 1)

    def test_many_statements_fold_into_begin(self):
        program = Node(NodeType.PROGRAM, [s("int", 1), s("int", 2)])
        assert program.unwrap() == s("begin", s("int", 1), s("int", 2))

    def test_non_program_unwraps_to_itself(self):
        node = s("int", 1)
        assert node.unwrap() is node

    def test_with_comments_keeps_identity_fields(self):
        node = Node(NodeType.INT, [1], {"expression": RANGE}).with_comments(["c"])
        assert node.comments == ("c",)
        assert node.expression == RANGE


class TestToSexp:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "nil"),
            (s("nil"), "(nil)"),
            (s("lvasgn", Symbol("a"), s("int", 1)), "(lvasgn :a (int 1))"),
            (s("str", 'say "hi"'), '(str "say \\"hi\\"")'),
            (s("block_pass", None), "(block-pass nil)"),
            (s("float", 1.5), "(float 1.5)"),
        ],
    )
    def test_rendering(self, value, expected):
        assert to_sexp(value) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("a", ":a"),
            ("a=", ":a="),
            ("empty?", ":empty?"),
            ("@a", ":@a"),
            ("@@a", ":@@a"),
            ("$a", ":$a"),
            ("[]=", ":[]="),
            ("+", ":+"),
            ("<=>", ":<=>"),
            ("a b", ":\"a b\""),
            ("", ":\"\""),
            ("1a", ":\"1a\""),
        ],
    )
    def test_symbol_rendering(self, name, expected):
        assert to_sexp(Symbol(name)) == expected

    def test_quoted_symbol_in_tree(self):
        assert to_sexp(s("sym", Symbol("a b"))) == '(sym :"a b")'

    def test_repr_is_sexp(self):
        assert repr(s("send", None, Symbol("a"))) == "(send nil :a)"

    def test_source_range_str(self):
        assert str(RANGE) == "1:0-1:1"
