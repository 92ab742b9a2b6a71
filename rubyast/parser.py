"""Grammar loading — hands each parse a fresh tree-sitter scanner."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from . import constants

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Supplies a scanner for a grammar name; one scanner per parse."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Builds scanners over grammars shipped by tree-sitter-language-pack.

    The compiled grammar is looked up once and reused; the scanner wrapped
    around it carries mutable state, so every call returns a new one.
    """

    SUPPORTED_LANGUAGES: frozenset[str] = frozenset({constants.TREE_SITTER_LANGUAGE})

    def __init__(self):
        self._languages: dict[str, object] = {}

    def get_parser(self, language: str):
        from tree_sitter import Parser

        return Parser(self._language(language))

    def _language(self, language: str):
        if language not in self.SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported grammar: {language}")
        if language not in self._languages:
            import tree_sitter_language_pack as tslp

            try:
                self._languages[language] = tslp.get_language(language)
            except LookupError as exc:
                raise ValueError(f"Grammar not installed: {language}") from exc
            logger.debug("Loaded %s grammar", language)
        return self._languages[language]
