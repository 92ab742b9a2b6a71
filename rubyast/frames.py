"""Reducer data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .nodes import Node, SourceRange


@dataclass(frozen=True)
class Token:
    """A relayed leaf: keyword, operator, punctuation or name-bearing token."""

    type: str
    text: str
    named: bool
    field: str | None
    range: SourceRange
    lossy: bool = False


@dataclass(frozen=True)
class Fragment:
    """Partial result of a construct that only its parent rule consumes.

    ``nodes`` may contain ``None`` where the reference shape has an empty slot
    (e.g. a block without a body).
    """

    kind: str
    nodes: tuple[Node | None, ...]
    range: SourceRange | None
    begin: SourceRange | None = None
    end: SourceRange | None = None


@dataclass(frozen=True)
class Comment:
    text: str
    range: SourceRange
    key: str | None = None
    value: str | None = None

    @property
    def is_magic(self) -> bool:
        return self.key is not None


@dataclass
class Frame:
    """An open construct and the ``(field, value)`` pairs reduced so far."""

    type: str
    field: str | None
    range: SourceRange | None
    children: list[tuple[str | None, Any]] = field(default_factory=list)

    def append(self, field_name: str | None, value: Any) -> None:
        self.children.append((field_name, value))

    def get(self, field_name: str) -> Any:
        """First value reduced under *field_name*, or ``None``."""
        return next(
            (value for name, value in self.children if name == field_name), None
        )

    def nodes(self) -> list[Node]:
        return [value for _, value in self.children if isinstance(value, Node)]

    def fragments(self, kind: str) -> list[Fragment]:
        return [
            value
            for _, value in self.children
            if isinstance(value, Fragment) and value.kind == kind
        ]

    def token(self, *texts: str) -> Token | None:
        """First anonymous token whose text is one of *texts*."""
        return next(
            (
                value
                for _, value in self.children
                if isinstance(value, Token) and not value.named and value.text in texts
            ),
            None,
        )

    def tokens(self) -> list[Token]:
        return [value for _, value in self.children if isinstance(value, Token)]
