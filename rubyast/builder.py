"""RubyAstBuilder — wires scanner, reducer and rules for one parse."""

from __future__ import annotations

import logging

from . import constants
from .config import DEFAULT_CONFIG, ParserConfig
from .constructs.ruby import RubyConstructMapper
from .faults import FaultClassifier
from .machine import NodeStackMachine
from .nodes import Node
from .parser import ParserFactory, TreeSitterParserFactory
from .tokenizer import TokenStream

logger = logging.getLogger(__name__)


class RubyAstBuilder:
    """Builds the canonical tree for one Ruby source per ``call``.

    The builder itself holds configuration only; every invocation gets its own
    scanner, classifier, mapper and reducer, so one builder may serve many
    sources and many threads.
    """

    def __init__(
        self,
        config: ParserConfig = DEFAULT_CONFIG,
        parser_factory: ParserFactory | None = None,
    ):
        self.config = config
        self._parser_factory = parser_factory or TreeSitterParserFactory()

    def call(self, io, file_path: str | None = None) -> Node:
        """Read *io* to the end and return the program root node.

        Raises exactly one ``ParseError`` subclass when the source cannot be
        turned into a tree.
        """
        classifier = FaultClassifier(file_path)
        # Text-mode handles are read through their byte buffer; the scanner
        # does its own decoding.
        raw = getattr(io, "buffer", None)
        try:
            source = raw.read() if raw is not None else io.read()
        except UnicodeError as exc:
            raise classifier.classify(exc) from exc

        logger.debug(
            "Building AST for %s (%d %s)",
            file_path or constants.UNKNOWN_FILE,
            len(source),
            "chars" if isinstance(source, str) else "bytes",
        )
        stream = TokenStream(
            source,
            self._parser_factory.get_parser(self.config.language),
            encoding=self.config.encoding,
            classifier=classifier,
        )
        mapper = RubyConstructMapper(stream.resolver, classifier)
        machine = NodeStackMachine(
            mapper,
            classifier,
            retain_magic_comments=self.config.retain_magic_comments,
        )
        return machine.run(stream)
