"""BaseConstructMapper — dispatch, scopes and folding shared by all rules."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ..faults import FaultClassifier
from ..frames import Comment, Fragment, Frame, Token
from ..locations import LocationResolver
from ..nodes import Node, NodeType, SourceRange
from ..tokenizer import Event

logger = logging.getLogger(__name__)


class BaseConstructMapper:
    """Base class for construct mappers.

    Subclasses populate ``_NODE_DISPATCH`` (constructs with children, folded
    on close) and ``_LEAF_DISPATCH`` (leaf constructs, reduced on sight).
    The tables are closed: a named construct missing from both raises an
    ``UnsupportedConstructFault`` instead of producing a guessed node.
    Anonymous tokens (keywords, operators, punctuation) are relayed to the
    enclosing rule as ``Token`` values.
    """

    # ── overridable constants ────────────────────────────────────

    # Constructs that start a fresh local-variable scope.
    SCOPE_GATES: frozenset[str] = frozenset()
    # Constructs whose new locals stay local but which see enclosing locals.
    NESTED_SCOPES: frozenset[str] = frozenset()
    # Fields of a scope gate evaluated in the enclosing scope
    # (e.g. a superclass expression).
    OUTER_FIELDS: frozenset[str] = frozenset()

    STATEMENT_FRAGMENT: str = "statements"

    # ── init ─────────────────────────────────────────────────────

    def __init__(self, resolver: LocationResolver, classifier: FaultClassifier):
        self._resolver = resolver
        self._classifier = classifier
        # [names, sees enclosing locals]
        self._scopes: list[list] = [[set(), False]]
        self._NODE_DISPATCH: dict[str, Callable[[Frame], Any]] = {}
        self._LEAF_DISPATCH: dict[str, Callable[[Token, Frame], Any]] = {}

    # ── dispatch ─────────────────────────────────────────────────

    def enter(self, event: Event, parent: Frame) -> None:
        """Accept an opening construct or raise for an unmodelled one.

        Leaf-rule constructs are accepted too: some grammar releases wrap a
        keyword literal such as ``nil`` around an anonymous keyword token.
        """
        if event.type not in self._NODE_DISPATCH and event.type not in self._LEAF_DISPATCH:
            raise self._classifier.unsupported(event.type, event.range.start)
        self._seal(parent, event.field)
        if event.type in self.SCOPE_GATES or event.type in self.NESTED_SCOPES:
            # A gate stays transparent until its own body starts.
            self._scopes.append([set(), True])

    def reduce(self, frame: Frame, parent: Frame | None = None) -> Any:
        handler = self._NODE_DISPATCH.get(frame.type)
        if handler is None and frame.type in self._LEAF_DISPATCH:
            return self._reduce_wrapped_leaf(frame, parent)
        if handler is None:
            raise self._classifier.unsupported(
                frame.type, frame.range.start if frame.range else None
            )
        try:
            return handler(frame)
        finally:
            if frame.type in self.SCOPE_GATES or frame.type in self.NESTED_SCOPES:
                self._scopes.pop()

    def _reduce_wrapped_leaf(self, frame: Frame, parent: Frame | None) -> Any:
        token = Token(
            type=frame.type,
            text="".join(t.text for t in frame.tokens()),
            named=True,
            field=frame.field,
            range=frame.range,
            lossy=any(t.lossy for t in frame.tokens()),
        )
        parent = parent or Frame(type=NodeType.PROGRAM.value, field=None, range=None)
        return self._LEAF_DISPATCH[frame.type](token, parent)

    def reduce_token(self, event: Event, parent: Frame) -> Any:
        token = Token(
            type=event.type,
            text=event.text,
            named=event.named,
            field=event.field,
            range=event.range,
            lossy=event.lossy,
        )
        if not event.named:
            return token
        self._seal(parent, event.field)
        handler = self._LEAF_DISPATCH.get(event.type)
        if handler is not None:
            return handler(token, parent)
        if event.type in self._NODE_DISPATCH:
            # A construct that happens to have no children this time.
            self.enter(event, parent)
            return self.reduce(
                Frame(type=event.type, field=event.field, range=event.range), parent
            )
        raise self._classifier.unsupported(event.type, event.range.start)

    def program(self, frame: Frame, comments: Iterable[Comment] = ()) -> Node:
        statements = [self._expr(value, frame) for _, value in self._values(frame)]
        return Node(NodeType.PROGRAM, statements, {}, comments)

    # ── scopes ───────────────────────────────────────────────────

    def _seal(self, parent: Frame, field_name: str | None) -> None:
        """Cut a gate's scope off from enclosing locals once its body starts."""
        if parent.type in self.SCOPE_GATES and field_name not in self.OUTER_FIELDS:
            self._scopes[-1][1] = False

    def _declare(self, name: str) -> None:
        self._scopes[-1][0].add(name)

    def _is_local(self, name: str) -> bool:
        for names, inherits in reversed(self._scopes):
            if name in names:
                return True
            if not inherits:
                return False
        return False

    # ── helpers ──────────────────────────────────────────────────

    def _node(self, node_type: NodeType, *children: Any, **location) -> Node:
        return Node(
            node_type,
            children,
            {role: rng for role, rng in location.items() if rng is not None},
        )

    def _values(self, frame: Frame) -> list[tuple[str | None, Any]]:
        """Children that are not relayed anonymous tokens."""
        return [
            (name, value)
            for name, value in frame.children
            if not (isinstance(value, Token) and not value.named)
        ]

    def _expr(self, value: Any, frame: Frame) -> Node:
        """Require *value* to be a finished node."""
        if isinstance(value, Node):
            return value
        construct = getattr(value, "type", None) or getattr(value, "kind", None)
        rng = getattr(value, "range", None) or frame.range
        raise self._classifier.unsupported(
            f"{construct or 'empty expression'} in {frame.type}",
            rng.start if rng else None,
        )

    def _statements(self, frame: Frame, skip: Iterable[str] = ()) -> list[Node]:
        """Statement nodes of *frame*, flattening statement fragments."""
        skipped = set(skip)
        statements: list[Node] = []
        for name, value in frame.children:
            if name in skipped:
                continue
            if isinstance(value, Node):
                statements.append(value)
            elif isinstance(value, Fragment) and value.kind == self.STATEMENT_FRAGMENT:
                statements.extend(node for node in value.nodes if node is not None)
        return statements

    def _body(self, statements: list[Node]) -> Node | None:
        """Fold a statement list the way the reference grammar does."""
        if not statements:
            return None
        if len(statements) == 1:
            return statements[0]
        return self._node(
            NodeType.BEGIN, *statements, expression=self._span(statements)
        )

    def _span(self, items: Iterable[Any]) -> SourceRange | None:
        ranges = []
        for item in items:
            if isinstance(item, Node):
                ranges.append(item.expression)
            elif isinstance(item, (Token, Fragment)):
                ranges.append(item.range)
            elif isinstance(item, SourceRange):
                ranges.append(item)
        return LocationResolver.span(ranges)
