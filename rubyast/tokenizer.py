"""Tokenizer Adapter — relays the tree-sitter scan as a flat event sequence."""

from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from . import constants
from .faults import FaultClassifier
from .locations import LocationResolver
from .nodes import SourceRange

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    OPEN = "open"
    TOKEN = "token"
    CLOSE = "close"


@dataclass(frozen=True)
class Event:
    """A transient scanner event, consumed exactly once by the reducer.

    ``text`` is only populated for TOKEN events. ``lossy`` marks a leaf whose
    bytes were not valid in the source encoding and were decoded with
    replacement characters.
    """

    kind: EventKind
    type: str
    named: bool
    field: str | None
    range: SourceRange
    text: str = ""
    lossy: bool = False


# Runs of well-formed UTF-8; whatever lies between two runs is invalid.
_VALID_UTF8_RE = re.compile(
    rb"(?:[\x00-\x7f]"
    rb"|[\xc2-\xdf][\x80-\xbf]"
    rb"|\xe0[\xa0-\xbf][\x80-\xbf]"
    rb"|[\xe1-\xec\xee\xef][\x80-\xbf]{2}"
    rb"|\xed[\x80-\x9f][\x80-\xbf]"
    rb"|\xf0[\x90-\xbf][\x80-\xbf]{2}"
    rb"|[\xf1-\xf3][\x80-\xbf]{3}"
    rb"|\xf4[\x80-\x8f][\x80-\xbf]{2})+"
)


def _invalid_ranges(buffer: bytes) -> list[tuple[int, int]]:
    """Byte ranges of every run of bytes that is not valid UTF-8.

    One linear scan; adjacent invalid bytes are reported as a single range.
    """
    if buffer.isascii():
        return []
    ranges: list[tuple[int, int]] = []
    offset = 0
    for match in _VALID_UTF8_RE.finditer(buffer):
        if match.start() > offset:
            ranges.append((offset, match.start()))
        offset = match.end()
    if offset < len(buffer):
        ranges.append((offset, len(buffer)))
    return ranges


class TokenStream:
    """Pull-based, single-use sequence of scanner events in source order.

    The whole source is read and scanned at construction. Encoding problems
    outside string contents surface immediately as an ``EncodingFault``;
    syntax errors surface as a ``SyntaxFault`` when the iteration reaches the
    offending region.
    """

    def __init__(
        self,
        source: str | bytes,
        parser,
        *,
        encoding: str = constants.DEFAULT_ENCODING,
        classifier: FaultClassifier,
    ):
        self._classifier = classifier
        self._encoding = encoding
        self._buffer = self._transcode(source, encoding)
        self.resolver = LocationResolver(self._buffer)
        self._tree = parser.parse(self._buffer)
        self._check_encoding()
        self._consumed = False

    @property
    def buffer(self) -> bytes:
        return self._buffer

    def __iter__(self) -> Iterator[Event]:
        if self._consumed:
            raise RuntimeError("TokenStream can only be iterated once")
        self._consumed = True
        return self._walk()

    # ── decoding ─────────────────────────────────────────────────

    def _transcode(self, source: str | bytes, encoding: str) -> bytes:
        try:
            codec = codecs.lookup(encoding)
        except LookupError as exc:
            raise self._classifier.encoding(f"Unknown encoding: {encoding}") from exc

        if isinstance(source, str):
            try:
                buffer = source.encode("utf-8", errors="surrogateescape")
            except UnicodeEncodeError as exc:
                raise self._classifier.classify(exc) from exc
        elif codec.name == "utf-8":
            buffer = bytes(source)
        else:
            text = bytes(source).decode(codec.name, errors="surrogateescape")
            buffer = text.encode("utf-8", errors="surrogateescape")

        if buffer.startswith(constants.UTF8_BOM):
            buffer = buffer[len(constants.UTF8_BOM) :]
        return buffer

    def _check_encoding(self) -> None:
        root = self._tree.root_node
        for start, end in _invalid_ranges(self._buffer):
            node = root.descendant_for_byte_range(start, end)
            if node is not None and node.type in constants.TOLERATED_INVALID_BYTE_TYPES:
                logger.debug("Tolerating invalid bytes %d-%d in %s", start, end, node.type)
                continue
            position = self.resolver.position(start)
            raise self._classifier.encoding(
                f"Invalid byte sequence in {self._encoding} at {position}",
                position,
            )

    def _text(self, start_byte: int, end_byte: int) -> tuple[str, bool]:
        raw = self._buffer[start_byte:end_byte]
        try:
            return raw.decode("utf-8"), False
        except UnicodeDecodeError:
            return raw.decode("utf-8", errors="replace"), True

    # ── traversal ────────────────────────────────────────────────

    def _check_syntax(self, node) -> None:
        if node.is_missing:
            raise self._classifier.syntax(
                f"missing '{node.type}'", self.resolver.position(node.start_byte)
            )
        if node.type == "ERROR":
            text, _ = self._text(node.start_byte, node.end_byte)
            snippet = text.strip().splitlines()[0] if text.strip() else text
            snippet = snippet[: constants.SYNTAX_ERROR_SNIPPET_LENGTH]
            raise self._classifier.syntax(
                f"unexpected '{snippet}'", self.resolver.position(node.start_byte)
            )

    def _event(self, kind: EventKind, node, field: str | None) -> Event:
        rng = self.resolver.range(node.start_byte, node.end_byte)
        if kind != EventKind.TOKEN:
            return Event(kind=kind, type=node.type, named=node.is_named, field=field, range=rng)
        text, lossy = self._text(node.start_byte, node.end_byte)
        return Event(
            kind=kind,
            type=node.type,
            named=node.is_named,
            field=field,
            range=rng,
            text=text,
            lossy=lossy,
        )

    def _walk(self) -> Iterator[Event]:
        """Balanced traversal via TreeCursor, excluding the root node itself.

        Nodes with children produce OPEN ... CLOSE; leaves produce one TOKEN.
        """
        root = self._tree.root_node
        self._check_syntax(root)
        cursor = root.walk()
        if not cursor.goto_first_child():
            return
        depth = 1

        while True:
            node = cursor.node
            self._check_syntax(node)

            if node.child_count > 0:
                yield self._event(EventKind.OPEN, node, cursor.field_name)
                cursor.goto_first_child()
                depth += 1
                continue

            yield self._event(EventKind.TOKEN, node, cursor.field_name)

            while not cursor.goto_next_sibling():
                cursor.goto_parent()
                depth -= 1
                if depth == 0:
                    return
                yield self._event(EventKind.CLOSE, cursor.node, cursor.field_name)
