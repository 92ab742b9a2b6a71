"""RubyConstructMapper — tree-sitter Ruby constructs -> reference AST shapes."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from ._base import BaseConstructMapper
from ..faults import FaultClassifier
from ..frames import Fragment, Frame, Token
from ..locations import LocationResolver
from ..nodes import Node, NodeType, SourceRange, Symbol

logger = logging.getLogger(__name__)

ARGUMENTS = "arguments"
PARAMETERS = "parameters"
BLOCK = "block"
SUPERCLASS = "superclass"
INTERPOLATION = "interpolation"

_PARAMETER_LISTS = frozenset(
    {"method_parameters", "block_parameters", "lambda_parameters"}
)

# (parent construct, field) pairs where a name introduces a local variable or
# is the target of an assignment.
_DECLARING_CONTEXTS = frozenset(
    {
        ("assignment", "left"),
        ("operator_assignment", "left"),
        ("optional_parameter", "name"),
        ("keyword_parameter", "name"),
        ("splat_parameter", "name"),
        ("hash_splat_parameter", "name"),
        ("block_parameter", "name"),
    }
)

# (parent construct, field) pairs where a name is relayed to the parent rule.
_NAME_CONTEXTS = frozenset(
    {
        ("call", "method"),
        ("method", "name"),
        ("singleton_method", "name"),
        ("scope_resolution", "name"),
    }
)
_NAME_PARENTS = frozenset({"setter"})

_VARIABLE_READS = {
    "instance_variable": NodeType.IVAR,
    "class_variable": NodeType.CVAR,
    "global_variable": NodeType.GVAR,
}
_VARIABLE_ASSIGNMENTS = {
    "identifier": NodeType.LVASGN,
    "instance_variable": NodeType.IVASGN,
    "class_variable": NodeType.CVASGN,
    "global_variable": NodeType.GVASGN,
}
_KEYWORD_LITERALS = {
    "nil": NodeType.NIL,
    "true": NodeType.TRUE,
    "false": NodeType.FALSE,
    "self": NodeType.SELF,
}
_KEYWORD_CALLS = {
    "yield": NodeType.YIELD,
    "return": NodeType.RETURN,
    "break": NodeType.BREAK,
    "next": NodeType.NEXT,
}
_BOOLEAN_OPERATORS = {
    "&&": NodeType.AND,
    "and": NodeType.AND,
    "||": NodeType.OR,
    "or": NodeType.OR,
}
_UNARY_SELECTORS = {"!": "!", "not": "!", "-": "-@", "+": "+@", "~": "~"}
_ASSIGNMENT_OPERATORS = (
    "+=", "-=", "*=", "/=", "%=", "**=", "||=", "&&=",
    "|=", "&=", "^=", "<<=", ">>=",
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "s": " ",
    "r": "\r",
    "e": "\x1b",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

# One escape sequence of an interpolating literal, including meta/control
# chains such as \M-\C-a.
_ESCAPE_RE = re.compile(
    r"\\(?:u\{[0-9a-fA-F ]*\}|u[0-9a-fA-F]{1,4}|x[0-9a-fA-F]{1,2}|[0-7]{1,3}"
    r"|(?:M-|C-|c)(?:\\(?:M-|C-|c))*(?:\\.|.)|\r?\n|.)",
    re.S,
)
_QUOTED_PAIR_RE = re.compile(r"\\(.)", re.S)

_CLOSING_DELIMITERS = {"(": ")", "[": "]", "{": "}", "<": ">"}
# Characters a backslash escapes inside a %w / %i word.
_WORD_ESCAPES = "\\ \t\n()[]{}<>"


def _integer_value(text: str) -> int:
    digits = text.replace("_", "").lower()
    sign = -1 if digits.startswith("-") else 1
    digits = digits.lstrip("+-")
    if digits.startswith("0d"):
        return sign * int(digits[2:])
    if len(digits) > 1 and digits[0] == "0" and digits[1].isdigit():
        return sign * int(digits, 8)
    return sign * int(digits, 0)


def _control_character(body: str) -> str:
    """Value of a meta/control escape body such as ``M-\\C-a`` or ``cx``."""
    if len(body) <= 1:
        return body
    if body.startswith("\\"):
        return _unescape(body)
    if body.startswith("M-"):
        value = _control_character(body[2:])
        return chr(ord(value[0]) | 0x80) if value else body
    if body.startswith(("C-", "c")):
        value = _control_character(body[2:] if body.startswith("C-") else body[1:])
        if not value:
            return body
        return "\x7f" if value == "?" else chr(ord(value[0]) & 0x9F)
    return body


def _unescape(text: str) -> str:
    """Value of one escape sequence inside an interpolating literal."""
    if not text.startswith("\\"):
        return text
    body = text[1:]
    if body[:2] in ("M-", "C-") or (body.startswith("c") and len(body) > 1):
        return _control_character(body)
    if body.startswith("u{"):
        return "".join(chr(int(point, 16)) for point in body[2:-1].split())
    if body.startswith("u") and len(body) > 1:
        return chr(int(body[1:5], 16))
    if body.startswith("x") and len(body) > 1:
        return chr(int(body[1:], 16))
    if body and body[0] in "01234567":
        return chr(int(body[:3], 8))
    if body in ("\n", "\r\n"):
        return ""
    return _ESCAPES.get(body, body)


def _unescape_interpolating(raw: str) -> str:
    return _ESCAPE_RE.sub(lambda match: _unescape(match.group(0)), raw)


def _unescape_quoted(raw: str, escapes: str) -> str:
    """Drop the backslash before each character in *escapes*; keep the rest."""
    return _QUOTED_PAIR_RE.sub(
        lambda match: match.group(1) if match.group(1) in escapes else match.group(0),
        raw,
    )


def _literal_escapes(construct: str, opener: Token | None) -> str | None:
    """Characters a backslash escapes in a non-interpolating literal.

    ``None`` when the literal interprets escape sequences.
    """
    if construct in ("bare_string", "bare_symbol"):
        return _WORD_ESCAPES
    if opener is None:
        return None
    if opener.text in ("'", ":'"):
        return "\\'"
    if opener.text.startswith(("%q", "%w", "%s", "%i")):
        delimiter = opener.text[-1]
        return "\\" + delimiter + _CLOSING_DELIMITERS.get(delimiter, "")
    return None


class RubyConstructMapper(BaseConstructMapper):
    """Folds tree-sitter Ruby constructs into the reference grammar's nodes.

    Shapes follow the reference library's default builder: lambdas are blocks
    on ``(send nil :lambda)``, block parameters are plain ``arg`` nodes, index
    access is ``(send recv :[] ...)`` and trailing keyword arguments are a
    ``hash``.
    """

    SCOPE_GATES = frozenset(
        {"method", "singleton_method", "class", "module", "singleton_class"}
    )
    NESTED_SCOPES = frozenset({"block", "do_block", "lambda"})
    # class name / superclass, `def obj.` receiver, `class << obj` target
    OUTER_FIELDS = frozenset({"name", "superclass", "object", "value"})

    def __init__(self, resolver: LocationResolver, classifier: FaultClassifier):
        super().__init__(resolver, classifier)
        self._LEAF_DISPATCH: dict[str, Callable[[Token, Frame], Any]] = {
            "identifier": self._reduce_identifier,
            "constant": self._reduce_constant,
            "instance_variable": self._reduce_variable,
            "class_variable": self._reduce_variable,
            "global_variable": self._reduce_variable,
            "integer": self._reduce_integer,
            "float": self._reduce_float,
            "nil": self._reduce_keyword_literal,
            "true": self._reduce_keyword_literal,
            "false": self._reduce_keyword_literal,
            "self": self._reduce_keyword_literal,
            "simple_symbol": self._reduce_simple_symbol,
            "hash_key_symbol": self._reduce_hash_key_symbol,
            "character": self._reduce_character,
            "string_content": self._relay,
            "escape_sequence": self._relay,
            "operator": self._relay,
            "empty_statement": self._discard,
        }
        self._NODE_DISPATCH: dict[str, Callable[[Frame], Any]] = {
            "body_statement": self._reduce_statements,
            "block_body": self._reduce_statements,
            "then": self._reduce_statements,
            "else": self._reduce_statements,
            "do": self._reduce_statements,
            "parenthesized_statements": self._reduce_parenthesized,
            "begin": self._reduce_kwbegin,
            "assignment": self._reduce_assignment,
            "operator_assignment": self._reduce_operator_assignment,
            "binary": self._reduce_binary,
            "unary": self._reduce_unary,
            "scope_resolution": self._reduce_scope_resolution,
            "call": self._reduce_call,
            "argument_list": self._reduce_argument_list,
            "element_reference": self._reduce_element_reference,
            "splat_argument": self._reduce_splat,
            "hash_splat_argument": self._reduce_splat,
            "block_argument": self._reduce_block_argument,
            "block": self._reduce_block,
            "do_block": self._reduce_block,
            "lambda": self._reduce_lambda,
            "method_parameters": self._reduce_parameters,
            "block_parameters": self._reduce_parameters,
            "lambda_parameters": self._reduce_parameters,
            "optional_parameter": self._reduce_optional_parameter,
            "keyword_parameter": self._reduce_keyword_parameter,
            "splat_parameter": self._reduce_rest_parameter,
            "hash_splat_parameter": self._reduce_rest_parameter,
            "block_parameter": self._reduce_rest_parameter,
            "method": self._reduce_method,
            "singleton_method": self._reduce_singleton_method,
            "setter": self._reduce_setter,
            "module": self._reduce_module,
            "class": self._reduce_class,
            "superclass": self._reduce_superclass,
            "singleton_class": self._reduce_singleton_class,
            "string": self._reduce_string,
            "bare_string": self._reduce_string,
            "delimited_symbol": self._reduce_symbol,
            "bare_symbol": self._reduce_symbol,
            "interpolation": self._reduce_interpolation,
            "array": self._reduce_array,
            "string_array": self._reduce_array,
            "symbol_array": self._reduce_array,
            "hash": self._reduce_hash,
            "pair": self._reduce_pair,
            "yield": self._reduce_keyword_call,
            "return": self._reduce_keyword_call,
            "break": self._reduce_keyword_call,
            "next": self._reduce_keyword_call,
            "if": self._reduce_if,
            "unless": self._reduce_if,
            "elsif": self._reduce_if,
            "if_modifier": self._reduce_if_modifier,
            "unless_modifier": self._reduce_if_modifier,
            "conditional": self._reduce_conditional,
            "while": self._reduce_loop,
            "until": self._reduce_loop,
            "while_modifier": self._reduce_loop_modifier,
            "until_modifier": self._reduce_loop_modifier,
        }

    # ── helpers ──────────────────────────────────────────────────

    @staticmethod
    def _token_range(frame: Frame, *texts: str) -> SourceRange | None:
        token = frame.token(*texts)
        return token.range if token else None

    @staticmethod
    def _last_token_range(frame: Frame, *texts: str) -> SourceRange | None:
        matches = [t for t in frame.tokens() if not t.named and t.text in texts]
        return matches[-1].range if matches else None

    def _name(self, value: Any, frame: Frame) -> Token:
        if isinstance(value, Token):
            return value
        rng = getattr(value, "expression", None) or frame.range
        raise self._classifier.unsupported(
            f"computed name in {frame.type}", rng.start if rng else None
        )

    def _operator(self, frame: Frame) -> Token | None:
        operator = frame.get("operator")
        if isinstance(operator, Token):
            return operator
        return next((t for t in frame.tokens() if not t.named), None)

    def _operand(self, frame: Frame, field_name: str, index: int) -> Node:
        value = frame.get(field_name)
        if value is None:
            nodes = frame.nodes()
            value = nodes[index] if len(nodes) > index else None
        return self._expr(value, frame)

    def _args_node(self, value: Any) -> Node:
        if isinstance(value, Fragment) and value.kind == PARAMETERS:
            return value.nodes[0]
        return self._node(NodeType.ARGS)

    def _branch(self, value: Any) -> Node | None:
        if isinstance(value, Fragment):
            return self._body([node for node in value.nodes if node is not None])
        return value

    # ── leaves ───────────────────────────────────────────────────

    def _relay(self, token: Token, parent: Frame) -> Token:
        return token

    def _discard(self, token: Token, parent: Frame) -> None:
        return None

    def _reduce_identifier(self, token: Token, parent: Frame) -> Any:
        name = token.text
        context = (parent.type, token.field)
        if parent.type in _PARAMETER_LISTS:
            self._declare(name)
            node_type = NodeType.SHADOWARG if token.field == "locals" else NodeType.ARG
            return self._node(
                node_type, Symbol(name), name=token.range, expression=token.range
            )
        if context in _DECLARING_CONTEXTS:
            self._declare(name)
            return token
        if context in _NAME_CONTEXTS or parent.type in _NAME_PARENTS:
            return token
        if self._is_local(name):
            return self._node(NodeType.LVAR, Symbol(name), expression=token.range)
        return self._node(
            NodeType.SEND,
            None,
            Symbol(name),
            selector=token.range,
            expression=token.range,
        )

    def _reduce_constant(self, token: Token, parent: Frame) -> Any:
        context = (parent.type, token.field)
        if (
            context in _NAME_CONTEXTS
            or context in _DECLARING_CONTEXTS
            or parent.type in _NAME_PARENTS
        ):
            return token
        return self._node(
            NodeType.CONST,
            None,
            Symbol(token.text),
            name=token.range,
            expression=token.range,
        )

    def _reduce_variable(self, token: Token, parent: Frame) -> Any:
        if (parent.type, token.field) in _DECLARING_CONTEXTS:
            return token
        return self._node(
            _VARIABLE_READS[token.type], Symbol(token.text), expression=token.range
        )

    def _reduce_integer(self, token: Token, parent: Frame) -> Node:
        return self._node(
            NodeType.INT, _integer_value(token.text), expression=token.range
        )

    def _reduce_float(self, token: Token, parent: Frame) -> Node:
        return self._node(
            NodeType.FLOAT, float(token.text.replace("_", "")), expression=token.range
        )

    def _reduce_keyword_literal(self, token: Token, parent: Frame) -> Node:
        return self._node(_KEYWORD_LITERALS[token.type], expression=token.range)

    def _reduce_simple_symbol(self, token: Token, parent: Frame) -> Node:
        return self._node(
            NodeType.SYM, Symbol(token.text[1:]), expression=token.range
        )

    def _reduce_hash_key_symbol(self, token: Token, parent: Frame) -> Node:
        text = token.text[:-1] if token.text.endswith(":") else token.text
        return self._node(NodeType.SYM, Symbol(text), expression=token.range)

    def _reduce_character(self, token: Token, parent: Frame) -> Node:
        value = token.text[1:]
        if value.startswith("\\"):
            value = _unescape(value)
        return self._node(NodeType.STR, value, expression=token.range)

    # ── statements ───────────────────────────────────────────────

    def _reduce_statements(self, frame: Frame) -> Fragment:
        opener = next((t for t in frame.tokens() if not t.named), None)
        return Fragment(
            kind=self.STATEMENT_FRAGMENT,
            nodes=tuple(self._statements(frame)),
            range=frame.range,
            begin=opener.range if opener else None,
        )

    def _reduce_parenthesized(self, frame: Frame) -> Node:
        return self._node(
            NodeType.BEGIN,
            *self._statements(frame),
            begin=self._token_range(frame, "("),
            end=self._token_range(frame, ")"),
            expression=frame.range,
        )

    def _reduce_kwbegin(self, frame: Frame) -> Node:
        return self._node(
            NodeType.KWBEGIN,
            *self._statements(frame),
            begin=self._token_range(frame, "begin"),
            end=self._token_range(frame, "end"),
            expression=frame.range,
        )

    # ── assignment ───────────────────────────────────────────────

    def _assignment_target(self, left: Any, frame: Frame) -> Node:
        """Target of an operator assignment: an assignment node without value."""
        if isinstance(left, Token):
            if left.type == "constant":
                return self._node(
                    NodeType.CASGN,
                    None,
                    Symbol(left.text),
                    name=left.range,
                    expression=left.range,
                )
            node_type = _VARIABLE_ASSIGNMENTS.get(left.type)
            if node_type is not None:
                return self._node(
                    node_type, Symbol(left.text), name=left.range, expression=left.range
                )
        elif isinstance(left, Node):
            if left.type == NodeType.CONST:
                scope, name = left.children
                return self._node(
                    NodeType.CASGN,
                    scope,
                    name,
                    double_colon=left.location.get("double_colon"),
                    name=left.location.get("name"),
                    expression=left.expression,
                )
            if left.type in (NodeType.SEND, NodeType.CSEND):
                return left
        construct = getattr(left, "type", None) or "empty target"
        raise self._classifier.unsupported(
            f"assignment to {construct}", frame.range.start if frame.range else None
        )

    def _reduce_assignment(self, frame: Frame) -> Node:
        target = self._assignment_target(frame.get("left"), frame)
        value = self._expr(frame.get("right"), frame)
        if value.type == NodeType.SPLAT:
            value = self._node(NodeType.ARRAY, value, expression=value.expression)
        operator = self._token_range(frame, "=")

        if target.type in (NodeType.SEND, NodeType.CSEND):
            receiver, method, *arguments = target.children
            selector = "[]=" if method == "[]" else f"{method}="
            return self._node(
                target.type,
                receiver,
                Symbol(selector),
                *arguments,
                value,
                dot=target.location.get("dot"),
                selector=target.location.get("selector"),
                begin=target.location.get("begin"),
                end=target.location.get("end"),
                operator=operator,
                expression=frame.range,
            )
        return Node(
            target.type,
            (*target.children, value),
            {**target.location, "operator": operator, "expression": frame.range}
            if operator
            else {**target.location, "expression": frame.range},
        )

    def _reduce_operator_assignment(self, frame: Frame) -> Node:
        target = self._assignment_target(frame.get("left"), frame)
        value = self._expr(frame.get("right"), frame)
        operator = frame.get("operator")
        if not isinstance(operator, Token):
            operator = frame.token(*_ASSIGNMENT_OPERATORS)
        if operator is None:
            raise self._classifier.unsupported(
                "operator assignment without operator",
                frame.range.start if frame.range else None,
            )
        if operator.text == "||=":
            return self._node(
                NodeType.OR_ASGN, target, value,
                operator=operator.range, expression=frame.range,
            )
        if operator.text == "&&=":
            return self._node(
                NodeType.AND_ASGN, target, value,
                operator=operator.range, expression=frame.range,
            )
        return self._node(
            NodeType.OP_ASGN,
            target,
            Symbol(operator.text[:-1]),
            value,
            operator=operator.range,
            expression=frame.range,
        )

    # ── operators ────────────────────────────────────────────────

    def _reduce_binary(self, frame: Frame) -> Node:
        left = self._operand(frame, "left", 0)
        right = self._operand(frame, "right", 1)
        operator = self._operator(frame)
        if operator is None:
            raise self._classifier.unsupported(
                "binary without operator", frame.range.start if frame.range else None
            )
        boolean = _BOOLEAN_OPERATORS.get(operator.text)
        if boolean is not None:
            return self._node(
                boolean, left, right, operator=operator.range, expression=frame.range
            )
        return self._node(
            NodeType.SEND,
            left,
            Symbol(operator.text),
            right,
            selector=operator.range,
            expression=frame.range,
        )

    def _reduce_unary(self, frame: Frame) -> Node:
        operator = self._operator(frame)
        operand = self._operand(frame, "operand", 0)
        text = operator.text if operator else ""
        if text == "defined?":
            return self._node(
                NodeType.DEFINED, operand, keyword=operator.range, expression=frame.range
            )
        if (
            text in ("-", "+")
            and operand.type in (NodeType.INT, NodeType.FLOAT)
            and operand.expression is not None
            and operator.range.end_pos == operand.expression.begin_pos
        ):
            value = operand.children[0]
            return self._node(
                operand.type, -value if text == "-" else value, expression=frame.range
            )
        selector = _UNARY_SELECTORS.get(text)
        if selector is None:
            raise self._classifier.unsupported(
                f"unary operator {text!r}", frame.range.start if frame.range else None
            )
        return self._node(
            NodeType.SEND,
            operand,
            Symbol(selector),
            selector=operator.range,
            expression=frame.range,
        )

    # ── constants ────────────────────────────────────────────────

    def _reduce_scope_resolution(self, frame: Frame) -> Node:
        scope = frame.get("scope")
        name = self._name(frame.get("name"), frame)
        double_colon = self._token_range(frame, "::")
        if scope is None:
            scope_node = self._node(NodeType.CBASE, expression=double_colon)
        else:
            scope_node = self._expr(scope, frame)

        if name.type == "constant":
            return self._node(
                NodeType.CONST,
                scope_node,
                Symbol(name.text),
                double_colon=double_colon,
                name=name.range,
                expression=frame.range,
            )
        return self._node(
            NodeType.SEND,
            scope_node,
            Symbol(name.text),
            dot=double_colon,
            selector=name.range,
            expression=frame.range,
        )

    # ── calls ────────────────────────────────────────────────────

    def _reduce_call(self, frame: Frame) -> Node:
        receiver = frame.get("receiver")
        if receiver is not None:
            receiver = self._expr(receiver, frame)
        method = frame.get("method")
        method = self._name(method, frame) if method is not None else None
        arguments = frame.get("arguments")
        block = frame.get("block")
        dot = frame.token(".", "&.", "::")

        node_type = NodeType.CSEND if dot is not None and dot.text == "&." else NodeType.SEND
        send = self._node(
            node_type,
            receiver,
            Symbol(method.text if method else "call"),
            *(arguments.nodes if isinstance(arguments, Fragment) else ()),
            dot=dot.range if dot else None,
            selector=method.range if method else None,
            begin=arguments.begin if isinstance(arguments, Fragment) else None,
            end=arguments.end if isinstance(arguments, Fragment) else None,
            expression=self._span([receiver, dot, method, arguments]),
        )
        if not isinstance(block, Fragment):
            return send
        block_args, body = block.nodes
        return self._node(
            NodeType.BLOCK,
            send,
            block_args,
            body,
            begin=block.begin,
            end=block.end,
            expression=frame.range,
        )

    def _reduce_argument_list(self, frame: Frame) -> Fragment:
        arguments: list[Node] = []
        pairs: list[Node] = []
        for node in frame.nodes():
            if node.type in (NodeType.PAIR, NodeType.KWSPLAT):
                pairs.append(node)
                continue
            if pairs:
                arguments.append(self._implicit_hash(pairs))
                pairs = []
            arguments.append(node)
        if pairs:
            arguments.append(self._implicit_hash(pairs))
        return Fragment(
            kind=ARGUMENTS,
            nodes=tuple(arguments),
            range=frame.range,
            begin=self._token_range(frame, "("),
            end=self._token_range(frame, ")"),
        )

    def _implicit_hash(self, pairs: list[Node]) -> Node:
        return self._node(NodeType.HASH, *pairs, expression=self._span(pairs))

    def _reduce_element_reference(self, frame: Frame) -> Node:
        named = [(name, value) for name, value in frame.children if isinstance(value, Node)]
        receiver = next((value for name, value in named if name == "object"), None)
        if receiver is None:
            if not named:
                raise self._classifier.unsupported(
                    "index without receiver", frame.range.start if frame.range else None
                )
            receiver = named[0][1]
            named = named[1:]
        indexes = [value for name, value in named if value is not receiver]
        begin = self._token_range(frame, "[")
        end = self._last_token_range(frame, "]")
        return self._node(
            NodeType.SEND,
            receiver,
            Symbol("[]"),
            *indexes,
            selector=LocationResolver.span([begin, end]),
            begin=begin,
            end=end,
            expression=frame.range,
        )

    def _reduce_splat(self, frame: Frame) -> Node:
        node_type = NodeType.KWSPLAT if frame.type == "hash_splat_argument" else NodeType.SPLAT
        return self._node(
            node_type,
            *frame.nodes(),
            operator=self._token_range(frame, "*", "**"),
            expression=frame.range,
        )

    def _reduce_block_argument(self, frame: Frame) -> Node:
        nodes = frame.nodes()
        return self._node(
            NodeType.BLOCK_PASS,
            nodes[0] if nodes else None,
            operator=self._token_range(frame, "&"),
            expression=frame.range,
        )

    def _reduce_keyword_call(self, frame: Frame) -> Node:
        arguments = [
            node for fragment in frame.fragments(ARGUMENTS) for node in fragment.nodes
        ]
        arguments.extend(frame.nodes())
        return self._node(
            _KEYWORD_CALLS[frame.type],
            *arguments,
            keyword=self._token_range(frame, frame.type),
            expression=frame.range,
        )

    # ── blocks and lambdas ───────────────────────────────────────

    def _reduce_block(self, frame: Frame) -> Fragment:
        args = self._args_node(frame.get("parameters"))
        body = self._body(self._statements(frame, skip=("parameters",)))
        return Fragment(
            kind=BLOCK,
            nodes=(args, body),
            range=frame.range,
            begin=self._token_range(frame, "do", "{"),
            end=self._last_token_range(frame, "end", "}"),
        )

    def _reduce_lambda(self, frame: Frame) -> Node:
        arrow = self._token_range(frame, "->")
        block = next(iter(frame.fragments(BLOCK)), None)
        if block is None:
            raise self._classifier.unsupported(
                "lambda without body", frame.range.start if frame.range else None
            )
        block_args, body = block.nodes
        parameters = frame.get("parameters")
        args = self._args_node(parameters) if parameters is not None else block_args
        lambda_call = self._node(
            NodeType.SEND, None, Symbol("lambda"), selector=arrow, expression=arrow
        )
        return self._node(
            NodeType.BLOCK,
            lambda_call,
            args,
            body,
            begin=block.begin,
            end=block.end,
            expression=frame.range,
        )

    # ── parameters ───────────────────────────────────────────────

    def _reduce_parameters(self, frame: Frame) -> Fragment:
        args = self._node(
            NodeType.ARGS,
            *frame.nodes(),
            begin=self._token_range(frame, "(", "|"),
            end=self._last_token_range(frame, ")", "|"),
            expression=frame.range,
        )
        return Fragment(kind=PARAMETERS, nodes=(args,), range=frame.range)

    def _reduce_optional_parameter(self, frame: Frame) -> Node:
        name = self._name(frame.get("name"), frame)
        return self._node(
            NodeType.OPTARG,
            Symbol(name.text),
            self._expr(frame.get("value"), frame),
            name=name.range,
            operator=self._token_range(frame, "="),
            expression=frame.range,
        )

    def _reduce_keyword_parameter(self, frame: Frame) -> Node:
        name = self._name(frame.get("name"), frame)
        value = frame.get("value")
        if value is None:
            return self._node(
                NodeType.KWARG, Symbol(name.text), name=name.range, expression=frame.range
            )
        return self._node(
            NodeType.KWOPTARG,
            Symbol(name.text),
            self._expr(value, frame),
            name=name.range,
            expression=frame.range,
        )

    def _reduce_rest_parameter(self, frame: Frame) -> Node:
        node_type = {
            "splat_parameter": NodeType.RESTARG,
            "hash_splat_parameter": NodeType.KWRESTARG,
            "block_parameter": NodeType.BLOCKARG,
        }[frame.type]
        name = frame.get("name")
        if isinstance(name, Token):
            return self._node(
                node_type, Symbol(name.text), name=name.range, expression=frame.range
            )
        if node_type == NodeType.BLOCKARG:
            return self._node(node_type, None, expression=frame.range)
        return self._node(node_type, expression=frame.range)

    # ── definitions ──────────────────────────────────────────────

    def _reduce_setter(self, frame: Frame) -> Token:
        name = next((t for t in frame.tokens() if t.named), None)
        text = f"{name.text}=" if name else "="
        return Token(type="setter", text=text, named=True, field=frame.field, range=frame.range)

    def _reduce_method(self, frame: Frame) -> Node:
        name = self._name(frame.get("name"), frame)
        args = self._args_node(frame.get("parameters"))
        body = self._body(self._statements(frame, skip=("name", "parameters")))
        return self._node(
            NodeType.DEF,
            Symbol(name.text),
            args,
            body,
            keyword=self._token_range(frame, "def"),
            name=name.range,
            assignment=self._token_range(frame, "="),
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    def _reduce_singleton_method(self, frame: Frame) -> Node:
        target = self._expr(frame.get("object"), frame)
        name = self._name(frame.get("name"), frame)
        args = self._args_node(frame.get("parameters"))
        body = self._body(
            self._statements(frame, skip=("object", "name", "parameters"))
        )
        return self._node(
            NodeType.DEFS,
            target,
            Symbol(name.text),
            args,
            body,
            keyword=self._token_range(frame, "def"),
            operator=self._token_range(frame, ".", "::"),
            name=name.range,
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    def _reduce_module(self, frame: Frame) -> Node:
        name = self._expr(frame.get("name"), frame)
        body = self._body(self._statements(frame, skip=("name",)))
        return self._node(
            NodeType.MODULE,
            name,
            body,
            keyword=self._token_range(frame, "module"),
            name=name.expression,
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    def _reduce_superclass(self, frame: Frame) -> Fragment:
        return Fragment(
            kind=SUPERCLASS,
            nodes=(self._operand(frame, "superclass", 0),),
            range=frame.range,
            begin=self._token_range(frame, "<"),
        )

    def _reduce_class(self, frame: Frame) -> Node:
        name = self._expr(frame.get("name"), frame)
        superclass = next(iter(frame.fragments(SUPERCLASS)), None)
        body = self._body(self._statements(frame, skip=("name", "superclass")))
        return self._node(
            NodeType.CLASS,
            name,
            superclass.nodes[0] if superclass else None,
            body,
            keyword=self._token_range(frame, "class"),
            operator=superclass.begin if superclass else None,
            name=name.expression,
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    def _reduce_singleton_class(self, frame: Frame) -> Node:
        target = self._operand(frame, "value", 0)
        body = self._body(self._statements(frame, skip=("value",)))
        if body is target:
            body = None
        return self._node(
            NodeType.SCLASS,
            target,
            body,
            keyword=self._token_range(frame, "class"),
            operator=self._token_range(frame, "<<"),
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    # ── strings and symbols ──────────────────────────────────────

    def _segment_lines(self, token: Token) -> list[tuple[str, SourceRange]]:
        """Split string content after each physical newline."""
        pieces: list[tuple[str, SourceRange]] = []
        position = token.range.begin_pos
        for piece in token.text.splitlines(keepends=True):
            end = position + len(piece)
            pieces.append((piece, self._resolver.char_range(position, end)))
            position = end
        return pieces

    def _string_parts(self, frame: Frame, escapes: str | None) -> tuple[list[Node], bool]:
        """Literal segments and embedded expressions, in source order.

        Literal text is collected raw and unescaped per segment, so escapes
        split over several scanner tokens (``\\M-a``) still combine.
        """
        parts: list[Node] = []
        raw: list[str] = []
        ranges: list[SourceRange] = []
        interpolated = False

        def flush():
            if raw:
                text = "".join(raw)
                value = (
                    _unescape_interpolating(text)
                    if escapes is None
                    else _unescape_quoted(text, escapes)
                )
                parts.append(
                    self._node(NodeType.STR, value, expression=LocationResolver.span(ranges))
                )
            raw.clear()
            ranges.clear()

        for _, value in frame.children:
            if isinstance(value, Token) and value.type in ("string_content", "escape_sequence"):
                if value.lossy:
                    logger.debug("Lossy string literal at %s", value.range)
                for piece, rng in self._segment_lines(value):
                    raw.append(piece)
                    ranges.append(rng)
                    if piece.endswith("\n") and value.type == "string_content":
                        flush()
            elif isinstance(value, Fragment) and value.kind == INTERPOLATION:
                flush()
                parts.extend(value.nodes)
                interpolated = True
            elif isinstance(value, Node):
                flush()
                parts.append(value)
                interpolated = True
        flush()
        return parts, interpolated

    def _reduce_string(self, frame: Frame) -> Node:
        delimiters = [t for t in frame.tokens() if not t.named]
        opener = delimiters[0] if delimiters else None
        parts, interpolated = self._string_parts(
            frame, _literal_escapes(frame.type, opener)
        )
        begin = opener.range if opener else None
        end = delimiters[-1].range if len(delimiters) > 1 else None
        if not interpolated and len(parts) <= 1:
            value = parts[0].children[0] if parts else ""
            return self._node(
                NodeType.STR, value, begin=begin, end=end, expression=frame.range
            )
        return self._node(
            NodeType.DSTR, *parts, begin=begin, end=end, expression=frame.range
        )

    def _reduce_symbol(self, frame: Frame) -> Node:
        opener = next((t for t in frame.tokens() if not t.named), None)
        parts, interpolated = self._string_parts(
            frame, _literal_escapes(frame.type, opener)
        )
        if not interpolated and len(parts) <= 1:
            value = parts[0].children[0] if parts else ""
            return self._node(NodeType.SYM, Symbol(value), expression=frame.range)
        return self._node(NodeType.DSYM, *parts, expression=frame.range)

    def _reduce_interpolation(self, frame: Frame) -> Fragment:
        opener = frame.token("#{")
        if opener is None:
            # "#@ivar" / "#$gvar" shorthand: the variable itself is the part.
            return Fragment(kind=INTERPOLATION, nodes=tuple(frame.nodes()), range=frame.range)
        embedded = self._node(
            NodeType.BEGIN,
            *self._statements(frame),
            begin=opener.range,
            end=self._last_token_range(frame, "}"),
            expression=frame.range,
        )
        return Fragment(kind=INTERPOLATION, nodes=(embedded,), range=frame.range)

    # ── collections ──────────────────────────────────────────────

    def _reduce_array(self, frame: Frame) -> Node:
        return self._node(
            NodeType.ARRAY,
            *frame.nodes(),
            begin=next((t.range for t in frame.tokens() if not t.named), None),
            end=self._last_token_range(frame, "]", ")", "}", ">"),
            expression=frame.range,
        )

    def _reduce_hash(self, frame: Frame) -> Node:
        return self._node(
            NodeType.HASH,
            *frame.nodes(),
            begin=self._token_range(frame, "{"),
            end=self._last_token_range(frame, "}"),
            expression=frame.range,
        )

    def _reduce_pair(self, frame: Frame) -> Node:
        key = self._operand(frame, "key", 0)
        value = frame.get("value")
        if value is None:
            raise self._classifier.unsupported(
                "hash shorthand without value", frame.range.start if frame.range else None
            )
        value = self._expr(value, frame)
        arrow = frame.token("=>")
        if arrow is None and key.type == NodeType.STR:
            key = self._node(NodeType.SYM, Symbol(key.children[0]), **key.location)
        elif arrow is None and key.type == NodeType.DSTR:
            key = Node(NodeType.DSYM, key.children, key.location)
        operator = arrow or frame.token(":")
        return self._node(
            NodeType.PAIR,
            key,
            value,
            operator=operator.range if operator else None,
            expression=frame.range,
        )

    # ── control flow ─────────────────────────────────────────────

    def _reduce_if(self, frame: Frame) -> Node:
        condition = self._operand(frame, "condition", 0)
        consequence = self._branch(frame.get("consequence"))
        alternative = self._branch(frame.get("alternative"))
        if frame.type == "unless":
            consequence, alternative = alternative, consequence
        return self._node(
            NodeType.IF,
            condition,
            consequence,
            alternative,
            keyword=self._token_range(frame, frame.type),
            end=self._last_token_range(frame, "end"),
            expression=frame.range,
        )

    def _reduce_if_modifier(self, frame: Frame) -> Node:
        body = self._operand(frame, "body", 0)
        condition = self._operand(frame, "condition", 1)
        branches = (body, None) if frame.type == "if_modifier" else (None, body)
        return self._node(
            NodeType.IF,
            condition,
            *branches,
            keyword=self._token_range(frame, "if", "unless"),
            expression=frame.range,
        )

    def _reduce_conditional(self, frame: Frame) -> Node:
        return self._node(
            NodeType.IF,
            self._operand(frame, "condition", 0),
            self._operand(frame, "consequence", 1),
            self._operand(frame, "alternative", 2),
            question=self._token_range(frame, "?"),
            colon=self._token_range(frame, ":"),
            expression=frame.range,
        )

    def _reduce_loop(self, frame: Frame) -> Node:
        node_type = NodeType.WHILE if frame.type == "while" else NodeType.UNTIL
        return self._node(
            node_type,
            self._operand(frame, "condition", 0),
            self._branch(frame.get("body")),
            keyword=self._token_range(frame, frame.type),
            expression=frame.range,
        )

    def _reduce_loop_modifier(self, frame: Frame) -> Node:
        body = self._operand(frame, "body", 0)
        condition = self._operand(frame, "condition", 1)
        if frame.type == "while_modifier":
            node_type = NodeType.WHILE_POST if body.type == NodeType.KWBEGIN else NodeType.WHILE
        else:
            node_type = NodeType.UNTIL_POST if body.type == NodeType.KWBEGIN else NodeType.UNTIL
        return self._node(
            node_type,
            condition,
            body,
            keyword=self._token_range(frame, "while", "until"),
            expression=frame.range,
        )
