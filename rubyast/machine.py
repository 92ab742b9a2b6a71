"""Node Stack Machine — single-pass reduction of scanner events into a tree."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from . import constants
from .faults import FaultClassifier
from .frames import Comment, Frame
from .nodes import Node, NodeType
from .tokenizer import Event, EventKind

logger = logging.getLogger(__name__)

_MAGIC_COMMENT_RE = re.compile(constants.MAGIC_COMMENT_PATTERN)


class NodeStackMachine:
    """Reduces an event sequence bottom-up with an explicit frame stack.

    OPEN pushes a frame, TOKEN appends the mapper's reduction of a leaf to the
    top frame, CLOSE pops the top frame, has the mapper fold it into a single
    value and appends that value to the new top frame. The bottom frame is the
    program root; it must be the only frame left when the events run out.
    """

    def __init__(
        self,
        mapper,
        classifier: FaultClassifier,
        *,
        retain_magic_comments: bool = True,
    ):
        self._mapper = mapper
        self._classifier = classifier
        self._retain_magic_comments = retain_magic_comments
        self._stack: list[Frame] = [Frame(type=NodeType.PROGRAM.value, field=None, range=None)]
        self._pending_comments: list[Comment] = []
        self._seen_statement = False
        self._event_count = 0

    @property
    def depth(self) -> int:
        return len(self._stack)

    def run(self, events: Iterable[Event]) -> Node:
        for event in events:
            self.feed(event)
        return self.finish()

    # ── transitions ──────────────────────────────────────────────

    def feed(self, event: Event) -> None:
        self._event_count += 1
        if not self._stack:
            raise self._classifier.syntax(
                f"unbalanced '{event.type}' after end of program", event.range.start
            )
        if event.kind == EventKind.OPEN:
            self._open(event)
        elif event.kind == EventKind.TOKEN:
            self._token(event)
        elif event.kind == EventKind.CLOSE:
            self._close(event)

    def _open(self, event: Event) -> None:
        self._mapper.enter(event, self._stack[-1])
        self._stack.append(Frame(type=event.type, field=event.field, range=event.range))

    def _token(self, event: Event) -> None:
        if event.type == constants.COMMENT_TYPE:
            self._comment(event)
            return
        value = self._mapper.reduce_token(event, self._stack[-1])
        self._append(event.field, value)

    def _close(self, event: Event) -> None:
        if len(self._stack) <= 1:
            raise self._classifier.syntax(
                f"unbalanced close of '{event.type}'", event.range.start
            )
        if self._stack[-1].type != event.type:
            raise self._classifier.syntax(
                f"unbalanced close of '{event.type}' inside '{self._stack[-1].type}'",
                event.range.start,
            )
        frame = self._stack.pop()
        value = self._mapper.reduce(frame, self._stack[-1])
        self._append(frame.field, value)

    def _append(self, field_name: str | None, value) -> None:
        if value is None:
            return
        top = self._stack[-1]
        if len(self._stack) == 1 and isinstance(value, Node):
            self._seen_statement = True
            if self._pending_comments:
                value = value.with_comments(self._pending_comments)
                self._pending_comments = []
        top.append(field_name, value)

    def _comment(self, event: Event) -> None:
        if not self._retain_magic_comments or self._seen_statement:
            return
        if len(self._stack) != 1:
            return
        match = _MAGIC_COMMENT_RE.match(event.text)
        if match is None or match.group(1).lower() not in constants.MAGIC_COMMENT_KEYS:
            return
        logger.debug("Retaining magic comment %r", event.text)
        self._pending_comments.append(
            Comment(
                text=event.text,
                range=event.range,
                key=match.group(1).lower(),
                value=match.group(2),
            )
        )

    # ── terminal state ───────────────────────────────────────────

    def finish(self) -> Node:
        if not self._stack:
            raise self._classifier.syntax("program already reduced")
        if len(self._stack) != 1:
            open_types = ", ".join(frame.type for frame in self._stack[1:])
            position = self._stack[-1].range.start if self._stack[-1].range else None
            raise self._classifier.syntax(
                f"unexpected end of input, unclosed {open_types}", position
            )
        root = self._stack.pop()
        logger.debug("Reduced %d events", self._event_count)
        comments, self._pending_comments = self._pending_comments, []
        return self._mapper.program(root, comments)
