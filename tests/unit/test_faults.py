"""Tests for fault classification: syntax, encoding and unsupported constructs."""

from __future__ import annotations

from pathlib import Path

import pytest

from rubyast import (
    EncodingFault,
    ParseError,
    ParserConfig,
    RubyAstBuilder,
    SyntaxFault,
    UnsupportedConstructFault,
    parse_source,
)
from rubyast.faults import FaultClassifier
from rubyast.nodes import Position

FIXTURES = Path(__file__).parent.parent / "fixtures"


class _UndecodableIO:
    def read(self):
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")


class TestSyntaxFaults:
    @pytest.mark.parametrize("source", ["1 +", "class Foo", "def a(", "a = ]"])
    def test_malformed_source_raises_syntax_fault(self, source):
        with pytest.raises(SyntaxFault) as excinfo:
            parse_source(source)
        assert "Syntax error" in str(excinfo.value)

    def test_syntax_fault_is_parse_error(self):
        with pytest.raises(ParseError):
            parse_source("1 +")

    def test_syntax_fault_carries_position(self):
        with pytest.raises(SyntaxFault) as excinfo:
            parse_source("a = 1\nb = ]")
        assert excinfo.value.position is not None
        assert excinfo.value.position.line == 2


class TestEncodingFaults:
    def test_unknown_encoding(self):
        with pytest.raises(EncodingFault) as excinfo:
            parse_source(b"a = 1", config=ParserConfig(encoding="no-such-codec"))
        assert "no-such-codec" in str(excinfo.value)

    def test_invalid_bytes_outside_strings(self):
        with pytest.raises(EncodingFault):
            parse_source(b"a = 1\n\xff\xfe = 2\n")

    def test_invalid_bytes_inside_string_are_tolerated(self):
        node = parse_source(b"a = 'caf\xe9'").unwrap()
        assert node.type == "lvasgn"
        assert node.children[1].type == "str"

    def test_declared_encoding_transcodes(self):
        node = parse_source(
            b"a = 'caf\xe9'", config=ParserConfig(encoding="latin-1")
        ).unwrap()
        assert node.children[1].children == ("café",)

    def test_read_decode_error_becomes_encoding_fault(self):
        with pytest.raises(EncodingFault):
            RubyAstBuilder().call(_UndecodableIO(), file_path="broken.rb")

    def test_text_mode_handle_with_invalid_string_bytes(self):
        with open(FIXTURES / "invalid_utf8_string.rb", "r") as handle:
            node = RubyAstBuilder().call(handle, file_path="invalid_utf8_string.rb").unwrap()
        assert node.type == "lvasgn"

    def test_text_mode_handle_with_invalid_code_bytes(self):
        with pytest.raises(EncodingFault) as excinfo:
            with open(FIXTURES / "invalid_utf8_code.rb", "r") as handle:
                RubyAstBuilder().call(handle, file_path="invalid_utf8_code.rb")
        assert excinfo.value.position.line == 2


class TestUnsupportedConstructFaults:
    def test_message_names_construct(self):
        with pytest.raises(UnsupportedConstructFault) as excinfo:
            parse_source("for x in y; end")
        assert excinfo.value.message == "Unsupported construct: for"

    def test_file_path_and_position_in_message(self):
        with pytest.raises(UnsupportedConstructFault) as excinfo:
            parse_source("for x in y; end", file_path="app/models/order.rb")
        assert str(excinfo.value).startswith("app/models/order.rb:1:0:")


class TestFaultClassifier:
    def test_first_fault_wins(self):
        classifier = FaultClassifier("a.rb")
        first = classifier.syntax("unexpected 'x'")
        second = classifier.unsupported("case")
        assert second is first
        assert classifier.fault is first

    def test_decoding_errors_classify_as_encoding(self):
        classifier = FaultClassifier()
        exc = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        assert isinstance(classifier.classify(exc), EncodingFault)

    def test_existing_fault_gains_file_path(self):
        classifier = FaultClassifier("lib/a.rb")
        fault = classifier.classify(SyntaxFault("Syntax error: x", position=Position(line=1, column=0)))
        assert fault.file_path == "lib/a.rb"
        assert str(fault) == "lib/a.rb:1:0: Syntax error: x"

    @pytest.mark.parametrize("exc", [KeyError("x"), IndexError("x"), LookupError("x")])
    def test_non_source_errors_are_not_disguised(self, exc):
        with pytest.raises(TypeError):
            FaultClassifier().classify(exc)
