"""Canonical AST — node vocabulary, source ranges and s-expression helpers."""

from __future__ import annotations

import json
import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict


class NodeType(str, Enum):
    # Program root
    PROGRAM = "program"
    # Sequencing
    BEGIN = "begin"
    KWBEGIN = "kwbegin"
    # Literals
    INT = "int"
    FLOAT = "float"
    STR = "str"
    DSTR = "dstr"
    SYM = "sym"
    DSYM = "dsym"
    NIL = "nil"
    TRUE = "true"
    FALSE = "false"
    SELF = "self"
    ARRAY = "array"
    HASH = "hash"
    PAIR = "pair"
    SPLAT = "splat"
    KWSPLAT = "kwsplat"
    BLOCK_PASS = "block_pass"
    # Variables and constants
    LVAR = "lvar"
    IVAR = "ivar"
    GVAR = "gvar"
    CVAR = "cvar"
    CONST = "const"
    CBASE = "cbase"
    # Assignment
    LVASGN = "lvasgn"
    IVASGN = "ivasgn"
    GVASGN = "gvasgn"
    CVASGN = "cvasgn"
    CASGN = "casgn"
    OP_ASGN = "op_asgn"
    OR_ASGN = "or_asgn"
    AND_ASGN = "and_asgn"
    # Calls
    SEND = "send"
    CSEND = "csend"
    BLOCK = "block"
    YIELD = "yield"
    DEFINED = "defined?"
    # Parameters
    ARGS = "args"
    ARG = "arg"
    OPTARG = "optarg"
    RESTARG = "restarg"
    KWARG = "kwarg"
    KWOPTARG = "kwoptarg"
    KWRESTARG = "kwrestarg"
    BLOCKARG = "blockarg"
    SHADOWARG = "shadowarg"
    # Definitions
    DEF = "def"
    DEFS = "defs"
    MODULE = "module"
    CLASS = "class"
    SCLASS = "sclass"
    # Control flow
    AND = "and"
    OR = "or"
    IF = "if"
    WHILE = "while"
    UNTIL = "until"
    WHILE_POST = "while_post"
    UNTIL_POST = "until_post"
    RETURN = "return"
    BREAK = "break"
    NEXT = "next"


# Symbols that print without quotes: names, variables and operator methods.
_PLAIN_SYMBOL_RE = re.compile(
    r"(?:[^\W\d]\w*[?!=]?"
    r"|@@?[^\W\d]\w*"
    r"|\$(?:[^\W\d]\w*|[~*$?!@/\\;,.=:<>\"&`'+0-9]|-\w)"
    r"|\[\]=?|\*\*|[+\-]@?|[*/%~!^&|]|!=|!~|=~|===?|<=>|<[<=]?|>[>=]?)\Z"
)


class Symbol(str):
    """A symbol-valued child (``:name``); compares equal to the plain string."""

    __slots__ = ()

    def __repr__(self) -> str:
        text = str.__str__(self)
        if _PLAIN_SYMBOL_RE.match(text):
            return f":{text}"
        return f":{json.dumps(text, ensure_ascii=False)}"


class Position(BaseModel):
    """A (line, column) pair: 1-indexed line, 0-indexed character column."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class SourceRange(BaseModel):
    """Structured source span with character columns and offsets."""

    model_config = ConfigDict(frozen=True)

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    begin_pos: int
    end_pos: int

    @property
    def line(self) -> int:
        return self.start_line

    @property
    def column(self) -> int:
        return self.start_col

    @property
    def last_line(self) -> int:
        return self.end_line

    @property
    def last_column(self) -> int:
        return self.end_col

    @property
    def start(self) -> Position:
        return Position(line=self.start_line, column=self.start_col)

    @property
    def end(self) -> Position:
        return Position(line=self.end_line, column=self.end_col)

    def join(self, other: SourceRange) -> SourceRange:
        """Return the minimal range covering both *self* and *other*."""
        first = self if self.begin_pos <= other.begin_pos else other
        last = self if self.end_pos >= other.end_pos else other
        return SourceRange(
            start_line=first.start_line,
            start_col=first.start_col,
            end_line=last.end_line,
            end_col=last.end_col,
            begin_pos=first.begin_pos,
            end_pos=last.end_pos,
        )

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


class Node:
    """Immutable canonical tree element.

    Equality and hashing consider ``type`` and ``children`` only; the location
    map and retained comments are metadata, as in the reference grammar.
    """

    __slots__ = ("type", "children", "location", "comments")

    def __init__(
        self,
        type: str,
        children: Iterable[Any] = (),
        location: Mapping[str, SourceRange] | None = None,
        comments: Iterable[Any] = (),
    ):
        object.__setattr__(
            self, "type", type.value if isinstance(type, Enum) else str(type)
        )
        object.__setattr__(self, "children", tuple(children))
        object.__setattr__(self, "location", MappingProxyType(dict(location or {})))
        object.__setattr__(self, "comments", tuple(comments))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.type == other.type and self.children == other.children

    def __hash__(self) -> int:
        return hash((self.type, self.children))

    def __repr__(self) -> str:
        return to_sexp(self)

    @property
    def expression(self) -> SourceRange | None:
        return self.location.get("expression")

    def with_comments(self, comments: Iterable[Any]) -> Node:
        """Return a copy of this node carrying *comments*."""
        return Node(self.type, self.children, self.location, comments)

    def unwrap(self) -> Node | None:
        """For a program root, the tree the reference grammar returns.

        ``None`` for empty or comment-only sources, the statement itself for a
        single statement, otherwise a ``begin`` node over all statements.
        """
        if self.type != NodeType.PROGRAM:
            return self
        if not self.children:
            return None
        if len(self.children) == 1:
            return self.children[0]
        span = self.children[0].expression
        last = self.children[-1].expression
        location = {"expression": span.join(last)} if span and last else {}
        return Node(NodeType.BEGIN, self.children, location)


def s(type: str, *children: Any) -> Node:
    """Build a node without location metadata (``AST::Sexp#s``)."""
    return Node(type, children)


def to_sexp(value: Any) -> str:
    """Render *value* as a gem-style s-expression on a single line."""
    if isinstance(value, Node):
        parts = [value.type.replace("_", "-")]
        parts.extend(to_sexp(child) for child in value.children)
        return f"({' '.join(parts)})"
    if value is None:
        return "nil"
    if isinstance(value, Symbol):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
