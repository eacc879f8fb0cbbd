"""Argument parsing helpers for the lexiweave CLI."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from lexiweave.config_manager.settings import (
    VALID_PROFICIENCY_LEVELS,
    VALID_SELECTION_STRATEGIES,
)


def _add_shared_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument(
        "--config",
        default=None,
        help=(
            "Path to a configuration override JSON file (defaults to conf/config.local.json "
            "if present)."
        ),
    )
    parser.add_argument("--source", help="Source language code of the content (e.g. en).")
    parser.add_argument("--target", help="Target language code to weave in (e.g. el).")
    parser.add_argument(
        "--proficiency",
        choices=VALID_PROFICIENCY_LEVELS,
        help="Highest proficiency tier of words that may be replaced.",
    )
    parser.add_argument(
        "--density",
        type=float,
        help="Target fraction of words to replace (0.0 - 1.0).",
    )
    parser.add_argument(
        "--strategy",
        choices=VALID_SELECTION_STRATEGIES,
        help="Selection strategy used to pick replacement candidates.",
    )
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON output.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging output.")
    return parser


def build_cli_parser() -> argparse.ArgumentParser:
    """Build the CLI parser with explicit sub-commands."""

    parser = argparse.ArgumentParser(
        description="lexiweave command line interface", allow_abbrev=False
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser(
        "process", help="Weave foreign words into a markup file", allow_abbrev=False
    )
    process_parser.add_argument(
        "input_file", help="Path to the markup file, or '-' to read standard input."
    )
    process_parser.add_argument(
        "--output",
        help="Write the rewritten markup to this file instead of standard output.",
    )
    _add_shared_arguments(process_parser)

    lookup_parser = subparsers.add_parser(
        "lookup", help="Translate a single word", allow_abbrev=False
    )
    lookup_parser.add_argument("word", help="Word to look up.")
    _add_shared_arguments(lookup_parser)

    precache_parser = subparsers.add_parser(
        "precache",
        help="Resolve the most frequent words of the language pair ahead of time",
        allow_abbrev=False,
    )
    precache_parser.add_argument(
        "--count", type=int, default=500, help="Number of frequent words to resolve."
    )
    _add_shared_arguments(precache_parser)

    practice_parser = subparsers.add_parser(
        "practice", help="Sample words of a proficiency tier for review", allow_abbrev=False
    )
    practice_parser.add_argument("level", choices=VALID_PROFICIENCY_LEVELS)
    practice_parser.add_argument(
        "--count", type=int, default=10, help="Number of words to return."
    )
    _add_shared_arguments(practice_parser)

    languages_parser = subparsers.add_parser(
        "languages", help="List languages and provider support", allow_abbrev=False
    )
    languages_parser.add_argument(
        "--provider", help="Ask this provider instead of the first enabled one."
    )
    _add_shared_arguments(languages_parser)

    return parser


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse ``argv`` using the CLI parser."""

    parser = build_cli_parser()
    namespace = parser.parse_args(argv)
    if namespace.density is not None and not 0.0 <= namespace.density <= 1.0:
        parser.error("--density must be between 0.0 and 1.0")
    return namespace


__all__ = ["build_cli_parser", "parse_cli_args"]
