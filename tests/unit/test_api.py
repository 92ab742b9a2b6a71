"""Tests for the composable API functions in rubyast.api."""

from __future__ import annotations

from pathlib import Path

import pytest

from rubyast import (
    EncodingFault,
    ParserConfig,
    RubyAstBuilder,
    dump_sexp,
    parse_file,
    parse_source,
)
from rubyast.__main__ import main

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestParseSource:
    def test_returns_program_root(self):
        root = parse_source("a = 1\nb")
        assert root.type == "program"
        assert len(root.children) == 2

    def test_accepts_bytes(self):
        assert parse_source(b"1").unwrap().children == (1,)

    def test_is_deterministic(self):
        source = (FIXTURES / "valid.rb").read_text()
        first = parse_source(source)
        second = parse_source(source)
        assert first == second
        assert repr(first) == repr(second)


class TestDumpSexp:
    def test_single_statement(self):
        assert dump_sexp("a = 1") == "(lvasgn :a (int 1))"

    def test_empty_source(self):
        assert dump_sexp("") == "nil"

    def test_many_statements(self):
        assert dump_sexp("a\nb") == "(begin (send nil :a) (send nil :b))"


class TestParseFile:
    def test_valid_fixture(self):
        tree = parse_file(str(FIXTURES / "valid.rb")).unwrap()
        assert tree.type == "module"
        order = tree.children[1]
        assert order.type == "class"
        assert [child.type for child in order.children[2].children] == [
            "send",
            "send",
            "def",
            "defs",
            "def",
        ]

    def test_local_variables_in_fixture(self):
        tree = parse_file(str(FIXTURES / "valid.rb")).unwrap()
        total = tree.children[1].children[2].children[2]
        assert total.children[0] == "total"
        last_statement = total.children[2].children[-1]
        assert last_statement.children[0].type == "lvar"
        assert last_statement.children[2].type == "lvar"

    def test_invalid_bytes_in_string_are_tolerated(self):
        tree = parse_file(str(FIXTURES / "invalid_utf8_string.rb")).unwrap()
        assert tree.type == "lvasgn"

    def test_invalid_bytes_in_code_raise(self):
        path = str(FIXTURES / "invalid_utf8_code.rb")
        with pytest.raises(EncodingFault) as excinfo:
            parse_file(path)
        assert excinfo.value.file_path == path
        assert excinfo.value.position.line == 2


class TestBuilder:
    def test_builder_is_reusable(self):
        builder = RubyAstBuilder(ParserConfig())
        with open(FIXTURES / "valid.rb", "rb") as handle:
            first = builder.call(handle, file_path="valid.rb")
        with open(FIXTURES / "valid.rb", "rb") as handle:
            second = builder.call(handle, file_path="valid.rb")
        assert first == second


class TestCli:
    def test_prints_sexp(self, capsys):
        assert main([str(FIXTURES / "invalid_utf8_string.rb")]) == 0
        assert "(lvasgn :a (str" in capsys.readouterr().out

    def test_reports_faults_and_continues(self, capsys):
        code = main(
            [str(FIXTURES / "invalid_utf8_code.rb"), str(FIXTURES / "valid.rb")]
        )
        captured = capsys.readouterr()
        assert code == 1
        assert "EncodingFault" in captured.err
        assert "(module (const nil :Sales)" in captured.out
