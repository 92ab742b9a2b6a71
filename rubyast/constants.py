"""Grammar names, encodings and limits shared by the scanner and the rules."""

from __future__ import annotations

TREE_SITTER_LANGUAGE = "ruby"

DEFAULT_ENCODING = "utf-8"
UTF8_BOM = b"\xef\xbb\xbf"

UNKNOWN_FILE = "<unknown>"

# Leaf types whose contents may hold bytes invalid for the source encoding.
TOLERATED_INVALID_BYTE_TYPES: frozenset[str] = frozenset(
    {"string_content", "comment"}
)

COMMENT_TYPE = "comment"

MAGIC_COMMENT_KEYS: frozenset[str] = frozenset(
    {
        "frozen_string_literal",
        "typed",
        "encoding",
        "coding",
        "warn_indent",
        "warn_past_scope",
        "shareable_constant_value",
    }
)

MAGIC_COMMENT_PATTERN = r"^#\s*(?:-\*-\s*)?([\w-]+)\s*:\s*([^\s;]+)"

SYNTAX_ERROR_SNIPPET_LENGTH = 40
