"""Ruby AST builder package."""

from .api import dump_sexp, parse_file, parse_source  # noqa: F401
from .builder import RubyAstBuilder  # noqa: F401
from .config import DEFAULT_CONFIG, ParserConfig  # noqa: F401
from .faults import (  # noqa: F401
    EncodingFault,
    ParseError,
    SyntaxFault,
    UnsupportedConstructFault,
)
from .nodes import Node, NodeType, Position, SourceRange, Symbol, s, to_sexp  # noqa: F401
