"""Parser configuration (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class ParserConfig:
    """Groups per-invocation parser configuration.

    Instances are read-only and may be shared by any number of workers.
    """

    encoding: str = constants.DEFAULT_ENCODING
    language: str = constants.TREE_SITTER_LANGUAGE
    retain_magic_comments: bool = True


DEFAULT_CONFIG = ParserConfig()
