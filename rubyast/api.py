"""Composable API functions for building Ruby ASTs.

Each function is a thin convenience over ``RubyAstBuilder`` for the common
cases: an in-memory source, a file on disk, or a printable s-expression.
"""

from __future__ import annotations

import io
import logging

from .builder import RubyAstBuilder
from .config import DEFAULT_CONFIG, ParserConfig
from .nodes import Node, to_sexp

logger = logging.getLogger(__name__)


def parse_source(
    source: str | bytes,
    file_path: str | None = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> Node:
    """Build the program root for an in-memory source.

    Args:
        source: Ruby source text, or raw bytes in ``config.encoding``.
        file_path: Name reported in fault messages.
        config: Parser configuration.

    Returns:
        The program root node.
    """
    logger.info("Parsing source (%s)", file_path or "<string>")
    stream = io.BytesIO(source) if isinstance(source, bytes) else io.StringIO(source)
    return RubyAstBuilder(config).call(stream, file_path=file_path)


def parse_file(path: str, config: ParserConfig = DEFAULT_CONFIG) -> Node:
    """Build the program root for a file, read in binary mode."""
    logger.info("Parsing file %s", path)
    with open(path, "rb") as handle:
        return RubyAstBuilder(config).call(handle, file_path=str(path))


def dump_sexp(
    source: str | bytes,
    file_path: str | None = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> str:
    """Parse *source* and render the reference-grammar result as a sexp.

    Returns ``"nil"`` for sources without statements.
    """
    return to_sexp(parse_source(source, file_path, config).unwrap())
