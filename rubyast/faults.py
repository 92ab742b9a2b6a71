"""Fault taxonomy and the per-invocation Fault Classifier."""

from __future__ import annotations

import logging

from .nodes import Position

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Terminal outcome of a single parse invocation.

    Carries a human-readable message, the originating file (when known) and the
    best-known source position. Callers scanning many files are expected to
    skip the offending unit and carry on.
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        position: Position | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.file_path = file_path
        self.position = position

    def __str__(self) -> str:
        prefix = f"{self.file_path}:" if self.file_path else ""
        if self.position is not None:
            prefix = f"{prefix}{self.position}:"
        return f"{prefix} {self.message}" if prefix else self.message


class SyntaxFault(ParseError):
    """The source is malformed for the analyzed language."""


class EncodingFault(ParseError):
    """The source bytes cannot be decoded with the declared encoding."""


class UnsupportedConstructFault(ParseError):
    """A valid construct this builder deliberately does not model."""

    def __init__(
        self,
        construct: str,
        *,
        file_path: str | None = None,
        position: Position | None = None,
    ):
        super().__init__(
            f"Unsupported construct: {construct}",
            file_path=file_path,
            position=position,
        )
        self.construct = construct


class FaultClassifier:
    """Translates scanner, decoder and mapper failures into faults.

    One classifier is created per parse invocation; it remembers the first
    fault it produced so that a second one is never reported for the same
    source.
    """

    def __init__(self, file_path: str | None = None):
        self.file_path = file_path
        self.fault: ParseError | None = None

    def _record(self, fault: ParseError) -> ParseError:
        if self.fault is None:
            self.fault = fault
            logger.debug("Classified %s: %s", type(fault).__name__, fault)
        return self.fault

    def syntax(self, detail: str, position: Position | None = None) -> ParseError:
        return self._record(
            SyntaxFault(
                f"Syntax error: {detail}",
                file_path=self.file_path,
                position=position,
            )
        )

    def encoding(self, detail: str, position: Position | None = None) -> ParseError:
        return self._record(
            EncodingFault(detail, file_path=self.file_path, position=position)
        )

    def unsupported(
        self, construct: str, position: Position | None = None
    ) -> ParseError:
        return self._record(
            UnsupportedConstructFault(
                construct, file_path=self.file_path, position=position
            )
        )

    def classify(self, exc: BaseException) -> ParseError:
        """Map a low-level exception onto the fault taxonomy.

        Raises ``TypeError`` for exceptions that are not source faults, so
        that genuine defects are never disguised as bad input.
        """
        if isinstance(exc, ParseError):
            if exc.file_path is None:
                exc.file_path = self.file_path
            return self._record(exc)
        if isinstance(exc, UnicodeError):
            return self.encoding(str(exc))
        raise TypeError(f"Not a source fault: {exc!r}") from exc
