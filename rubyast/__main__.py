"""Command-line entry point: print the AST of Ruby files as s-expressions."""

from __future__ import annotations

import argparse
import logging
import sys

from .api import parse_file
from .config import ParserConfig
from .faults import ParseError
from .nodes import to_sexp


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rubyast", description="Ruby AST builder")
    parser.add_argument("files", nargs="+",
                        help="Ruby source files to parse")
    parser.add_argument("--encoding", default="utf-8",
                        help="Source encoding (default: utf-8)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log per-parse details")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = ParserConfig(encoding=args.encoding)

    failures = 0
    for path in args.files:
        try:
            root = parse_file(path, config)
        except ParseError as exc:
            # One bad file does not stop the batch.
            failures += 1
            print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
            continue
        print(f"═══ {path} ═══")
        print(to_sexp(root.unwrap()))
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
