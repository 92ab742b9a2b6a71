"""Tests for RubyConstructMapper — Ruby sources to reference-grammar trees."""

from __future__ import annotations

import pytest

from rubyast import UnsupportedConstructFault, parse_source, s, to_sexp
from rubyast.nodes import Symbol


def _ast(source: str):
    return parse_source(source).unwrap()


def sym(name: str) -> Symbol:
    return Symbol(name)


CORE_CASES = [
    ("", None),
    ("1", s("int", 1)),
    ("a", s("send", None, sym("a"))),
    ("a = 1", s("lvasgn", sym("a"), s("int", 1))),
    ("A", s("const", None, sym("A"))),
    ("A = 1", s("casgn", None, sym("A"), s("int", 1))),
    ("1; 2", s("begin", s("int", 1), s("int", 2))),
    ("# comment", None),
    ("1 + 2", s("send", s("int", 1), sym("+"), s("int", 2))),
    ("(1 + 2)", s("begin", s("send", s("int", 1), sym("+"), s("int", 2)))),
    ("()", s("begin")),
    ("has_many :oranges", s("send", None, sym("has_many"), s("sym", sym("oranges")))),
    ("x * 2", s("send", s("send", None, sym("x")), sym("*"), s("int", 2))),
    ("@a", s("ivar", sym("@a"))),
    ("yield", s("yield")),
    ("yield 1", s("yield", s("int", 1))),
    ("module Sales; end", s("module", s("const", None, sym("Sales")), None)),
    (
        "module Sales; class Order; end; end",
        s(
            "module",
            s("const", None, sym("Sales")),
            s("class", s("const", None, sym("Order")), None, None),
        ),
    ),
    (
        "module Sales::Order::Something; end",
        s(
            "module",
            s(
                "const",
                s("const", s("const", None, sym("Sales")), sym("Order")),
                sym("Something"),
            ),
            None,
        ),
    ),
    (
        "Sales::HELLO = 1",
        s("casgn", s("const", None, sym("Sales")), sym("HELLO"), s("int", 1)),
    ),
    (
        "class Order < ActiveRecord::Base; end",
        s(
            "class",
            s("const", None, sym("Order")),
            s("const", s("const", None, sym("ActiveRecord")), sym("Base")),
            None,
        ),
    ),
    (
        "::Sales::HELLO",
        s("const", s("const", s("cbase"), sym("Sales")), sym("HELLO")),
    ),
    ("a.b", s("send", s("send", None, sym("a")), sym("b"))),
    (
        "a do |b|; c; end",
        s(
            "block",
            s("send", None, sym("a")),
            s("args", s("arg", sym("b"))),
            s("send", None, sym("c")),
        ),
    ),
    (
        "a(1) { |b| c }",
        s(
            "block",
            s("send", None, sym("a"), s("int", 1)),
            s("args", s("arg", sym("b"))),
            s("send", None, sym("c")),
        ),
    ),
    (
        "a do b end",
        s("block", s("send", None, sym("a")), s("args"), s("send", None, sym("b"))),
    ),
    (
        "setup do self.a; b end",
        s(
            "block",
            s("send", None, sym("setup")),
            s("args"),
            s("begin", s("send", s("self"), sym("a")), s("send", None, sym("b"))),
        ),
    ),
    ("begin 1 end", s("kwbegin", s("int", 1))),
    (
        "setup do self.class::HEADERS end",
        s(
            "block",
            s("send", None, sym("setup")),
            s("args"),
            s("const", s("send", s("self"), sym("class")), sym("HEADERS")),
        ),
    ),
    (
        "-> x { x }",
        s(
            "block",
            s("send", None, sym("lambda")),
            s("args", s("arg", sym("x"))),
            s("lvar", sym("x")),
        ),
    ),
    ("a\n.b", s("send", s("send", None, sym("a")), sym("b"))),
    ("a\nb", s("begin", s("send", None, sym("a")), s("send", None, sym("b")))),
    ("def hello; 1; end", s("def", sym("hello"), s("args"), s("int", 1))),
    (
        "def hello(world)\n'Hello ' + world\nend",
        s(
            "def",
            sym("hello"),
            s("args", s("arg", sym("world"))),
            s("send", s("str", "Hello "), sym("+"), s("lvar", sym("world"))),
        ),
    ),
    (
        "{ apples: 13, oranges: 27 }",
        s(
            "hash",
            s("pair", s("sym", sym("apples")), s("int", 13)),
            s("pair", s("sym", sym("oranges")), s("int", 27)),
        ),
    ),
    (
        "a b: 1",
        s("send", None, sym("a"), s("hash", s("pair", s("sym", sym("b")), s("int", 1)))),
    ),
    ("'Hello'", s("str", "Hello")),
    ('"#{1}"', s("dstr", s("begin", s("int", 1)))),
    ('"#{1; 2}"', s("dstr", s("begin", s("int", 1), s("int", 2)))),
    (
        '"Hello #{1} World"',
        s("dstr", s("str", "Hello "), s("begin", s("int", 1)), s("str", " World")),
    ),
    (
        "a do |b, c|; d; end",
        s(
            "block",
            s("send", None, sym("a")),
            s("args", s("arg", sym("b")), s("arg", sym("c"))),
            s("send", None, sym("d")),
        ),
    ),
    ("-> { 1 }", s("block", s("send", None, sym("lambda")), s("args"), s("int", 1))),
    ("module Sales; 1; end", s("module", s("const", None, sym("Sales")), s("int", 1))),
    ("a(1)", s("send", None, sym("a"), s("int", 1))),
    (
        "a = 1 + 1",
        s("lvasgn", sym("a"), s("send", s("int", 1), sym("+"), s("int", 1))),
    ),
]


LITERAL_CASES = [
    ("1.5", s("float", 1.5)),
    ("1_000", s("int", 1000)),
    ("0x1f", s("int", 31)),
    ("-1", s("int", -1)),
    ("nil; true; false", s("begin", s("nil"), s("true"), s("false"))),
    ("x = nil", s("lvasgn", sym("x"), s("nil"))),
    ("foo(nil, true)", s("send", None, sym("foo"), s("nil"), s("true"))),
    ("return false", s("return", s("false"))),
    (":sym", s("sym", sym("sym"))),
    (':"a#{1}"', s("dsym", s("str", "a"), s("begin", s("int", 1)))),
    ("[1, 2]", s("array", s("int", 1), s("int", 2))),
    ("%w[a b]", s("array", s("str", "a"), s("str", "b"))),
    ('"a\\tb"', s("str", "a\tb")),
    ("'a\\tb'", s("str", "a\\tb")),
    ('"a\nb"', s("dstr", s("str", "a\n"), s("str", "b"))),
    ('"#@a"', s("dstr", s("ivar", sym("@a")))),
    ('"x#$b"', s("dstr", s("str", "x"), s("gvar", sym("$b")))),
    ("'it\\'s'", s("str", "it's")),
    ("'a\\\\b'", s("str", "a\\b")),
    ("%q(a\\)b)", s("str", "a)b")),
    ("%w[a\\ b c]", s("array", s("str", "a b"), s("str", "c"))),
    ('"\\C-a"', s("str", "\x01")),
    ('"\\ca"', s("str", "\x01")),
    ('"\\c?"', s("str", "\x7f")),
    ('"\\M-a"', s("str", "\xe1")),
    ('"\\M-\\C-a"', s("str", "\x81")),
    ('{ "a" => 1 }', s("hash", s("pair", s("str", "a"), s("int", 1)))),
]


VARIABLE_CASES = [
    ("$a = @@b", s("gvasgn", sym("$a"), s("cvar", sym("@@b")))),
    ("@a = 1", s("ivasgn", sym("@a"), s("int", 1))),
    (
        "a = 1; a",
        s("begin", s("lvasgn", sym("a"), s("int", 1)), s("lvar", sym("a"))),
    ),
    (
        "def m; a = 1; end; a",
        s(
            "begin",
            s("def", sym("m"), s("args"), s("lvasgn", sym("a"), s("int", 1))),
            s("send", None, sym("a")),
        ),
    ),
    (
        "a = 1; b { a }",
        s(
            "begin",
            s("lvasgn", sym("a"), s("int", 1)),
            s("block", s("send", None, sym("b")), s("args"), s("lvar", sym("a"))),
        ),
    ),
    (
        "a { |x| x }; x",
        s(
            "begin",
            s("block", s("send", None, sym("a")), s("args", s("arg", sym("x"))), s("lvar", sym("x"))),
            s("send", None, sym("x")),
        ),
    ),
    (
        "x = 1\nclass F < x; end",
        s(
            "begin",
            s("lvasgn", sym("x"), s("int", 1)),
            s("class", s("const", None, sym("F")), s("lvar", sym("x")), None),
        ),
    ),
    (
        "x = 1\nclass F; x; end",
        s(
            "begin",
            s("lvasgn", sym("x"), s("int", 1)),
            s("class", s("const", None, sym("F")), None, s("send", None, sym("x"))),
        ),
    ),
    (
        "o = 1\ndef o.a; o; end",
        s(
            "begin",
            s("lvasgn", sym("o"), s("int", 1)),
            s("defs", s("lvar", sym("o")), sym("a"), s("args"), s("send", None, sym("o"))),
        ),
    ),
    ("x ||= 1", s("or_asgn", s("lvasgn", sym("x")), s("int", 1))),
    ("x += 1", s("op_asgn", s("lvasgn", sym("x")), sym("+"), s("int", 1))),
]


CALL_CASES = [
    ("a&.b", s("csend", s("send", None, sym("a")), sym("b"))),
    ("a.b = 1", s("send", s("send", None, sym("a")), sym("b="), s("int", 1))),
    ("a[1]", s("send", s("send", None, sym("a")), sym("[]"), s("int", 1))),
    (
        "a[1] = 2",
        s("send", s("send", None, sym("a")), sym("[]="), s("int", 1), s("int", 2)),
    ),
    (
        "a(*b, **c, &d)",
        s(
            "send",
            None,
            sym("a"),
            s("splat", s("send", None, sym("b"))),
            s("hash", s("kwsplat", s("send", None, sym("c")))),
            s("block_pass", s("send", None, sym("d"))),
        ),
    ),
    ("!a", s("send", s("send", None, sym("a")), sym("!"))),
    ("defined? a", s("defined?", s("send", None, sym("a")))),
    ("a && b", s("and", s("send", None, sym("a")), s("send", None, sym("b")))),
    ("a or b", s("or", s("send", None, sym("a")), s("send", None, sym("b")))),
    ("return 1", s("return", s("int", 1))),
]


CONTROL_FLOW_CASES = [
    (
        "if a then 1 else 2 end",
        s("if", s("send", None, sym("a")), s("int", 1), s("int", 2)),
    ),
    ("unless a; 1; end", s("if", s("send", None, sym("a")), None, s("int", 1))),
    ("1 if a", s("if", s("send", None, sym("a")), s("int", 1), None)),
    ("a ? 1 : 2", s("if", s("send", None, sym("a")), s("int", 1), s("int", 2))),
    ("while a; b; end", s("while", s("send", None, sym("a")), s("send", None, sym("b")))),
    (
        "begin; a; end while b",
        s("while_post", s("send", None, sym("b")), s("kwbegin", s("send", None, sym("a")))),
    ),
]


DEFINITION_CASES = [
    ("def self.a; end", s("defs", s("self"), sym("a"), s("args"), None)),
    ("class << self; end", s("sclass", s("self"), None)),
    ("def a=(v); end", s("def", sym("a="), s("args", s("arg", sym("v"))), None)),
    (
        "def a(b, c = 1, *d, e:, f: 2, **g, &h); end",
        s(
            "def",
            sym("a"),
            s(
                "args",
                s("arg", sym("b")),
                s("optarg", sym("c"), s("int", 1)),
                s("restarg", sym("d")),
                s("kwarg", sym("e")),
                s("kwoptarg", sym("f"), s("int", 2)),
                s("kwrestarg", sym("g")),
                s("blockarg", sym("h")),
            ),
            None,
        ),
    ),
]


class TestCoreConstructs:
    @pytest.mark.parametrize("source,expected", CORE_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestLiterals:
    @pytest.mark.parametrize("source,expected", LITERAL_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestVariablesAndScopes:
    @pytest.mark.parametrize("source,expected", VARIABLE_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestCalls:
    @pytest.mark.parametrize("source,expected", CALL_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestControlFlow:
    @pytest.mark.parametrize("source,expected", CONTROL_FLOW_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestDefinitions:
    @pytest.mark.parametrize("source,expected", DEFINITION_CASES)
    def test_tree_matches_reference(self, source, expected):
        assert _ast(source) == expected


class TestUnsupportedConstructs:
    @pytest.mark.parametrize(
        "source,construct",
        [
            ("for x in y; end", "for"),
            ("case a\nwhen 1 then 2\nend", "case"),
            ("1..2", "range"),
            ("/re/", "regex"),
        ],
    )
    def test_raises_with_construct_name(self, source, construct):
        with pytest.raises(UnsupportedConstructFault) as excinfo:
            parse_source(source)
        assert excinfo.value.construct == construct
        assert f"Unsupported construct: {construct}" in str(excinfo.value)

    def test_nested_unsupported_construct_surfaces(self):
        with pytest.raises(UnsupportedConstructFault):
            parse_source("def a\n  begin\n    1\n  rescue\n    2\n  end\nend")


class TestSexpRendering:
    def test_underscored_types_render_with_dashes(self):
        assert to_sexp(_ast("x ||= 1")) == "(or-asgn (lvasgn :x) (int 1))"

    def test_strings_are_quoted(self):
        assert to_sexp(_ast("'Hello'")) == '(str "Hello")'
