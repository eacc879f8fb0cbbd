"""Console-script entry point for lexiweave."""

from __future__ import annotations

import argparse
import contextlib
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, TextIO

from lexiweave import logging_manager as log_mgr
from lexiweave.config_manager import LexiweaveSettings, load_configuration
from lexiweave.engine.engine import TranslationEngine, create_engine
from lexiweave.errors import LexiweaveError
from lexiweave.languages import LANGUAGE_NAMES
from lexiweave.translation_providers.registry import create_orchestrator_from_config

from .args import parse_cli_args

logger = log_mgr.get_logger().getChild("cli")

EngineFactory = Callable[[LexiweaveSettings], TranslationEngine]


def _settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.source:
        overrides["source_language"] = args.source
    if args.target:
        overrides["target_language"] = args.target
    if args.proficiency:
        overrides["proficiency_level"] = args.proficiency
    if args.density is not None:
        overrides["density"] = args.density
    if args.strategy:
        overrides["selection_strategy"] = args.strategy
    if args.debug:
        overrides["debug"] = True
    return overrides


def _configure_logging(settings: LexiweaveSettings) -> None:
    if settings.debug:
        log_mgr.configure_logging_level(debug_enabled=True)
    else:
        log_mgr.configure_logging_level(log_level=log_mgr.resolve_log_level(settings.log_level))


def _emit(stdout: TextIO, payload: Any, as_json: bool, text: str) -> None:
    if as_json:
        stdout.write(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        stdout.write(text)
    stdout.write("\n")


def _read_input(path: str, stdin: TextIO) -> str:
    if path == "-":
        return stdin.read()
    return Path(path).expanduser().read_text(encoding="utf-8")


def _command_process(
    engine: TranslationEngine, args: argparse.Namespace, stdin: TextIO, stdout: TextIO
) -> int:
    markup = _read_input(args.input_file, stdin)
    result = engine.process_content(markup)
    if args.output:
        Path(args.output).expanduser().write_text(result.content, encoding="utf-8")
        _emit(
            stdout,
            result.stats.to_dict(),
            args.json,
            f"Replaced {result.stats.replaced_words} of {result.stats.total_words} words "
            f"-> {args.output}",
        )
    else:
        _emit(stdout, result.to_dict(), args.json, result.content)
    return 0


def _command_lookup(
    engine: TranslationEngine, args: argparse.Namespace, stdout: TextIO
) -> int:
    entry = engine.translate_word(args.word)
    if entry is None:
        _emit(stdout, None, args.json, f"No translation found for {args.word!r}")
        return 1
    text = f"{entry.source_word} -> {entry.target_word} ({entry.proficiency_level.value})"
    if entry.pronunciation:
        text += f" [{entry.pronunciation}]"
    _emit(stdout, entry.to_dict(), args.json, text)
    return 0


def _command_precache(
    engine: TranslationEngine, args: argparse.Namespace, stdout: TextIO
) -> int:
    outcome = engine.pre_cache_words(args.count)
    _emit(
        stdout,
        outcome,
        args.json,
        f"Cached {outcome['cached']} words, {outcome['failed']} failed",
    )
    return 0


def _command_practice(
    engine: TranslationEngine, args: argparse.Namespace, stdout: TextIO
) -> int:
    entries = engine.get_words_for_practice(args.level, args.count)
    lines = [f"{entry.source_word}\t{entry.target_word}" for entry in entries]
    _emit(stdout, [entry.to_dict() for entry in entries], args.json, "\n".join(lines))
    return 0


def _command_languages(
    settings: LexiweaveSettings, args: argparse.Namespace, stdout: TextIO
) -> int:
    with contextlib.closing(create_orchestrator_from_config(settings)) as orchestrator:
        supported = set(orchestrator.get_supported_languages(args.provider))
    rows = [
        {"code": code, "name": name, "supported": code in supported}
        for code, name in LANGUAGE_NAMES.items()
    ]
    lines = []
    for row in rows:
        line = f"{row['code']}\t{row['name']}"
        if not row["supported"]:
            line += "\t(unsupported)"
        lines.append(line)
    text = "\n".join(lines)
    _emit(stdout, rows, args.json, text)
    return 0


def run_cli(
    argv: Optional[Sequence[str]] = None,
    *,
    engine_factory: EngineFactory = create_engine,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """Parse ``argv`` and execute the selected command."""

    args = parse_cli_args(argv)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    try:
        settings = load_configuration(args.config, overrides=_settings_overrides(args))
    except LexiweaveError as exc:
        logger.error("Configuration error: %s", exc, extra={"event": "cli.config.error"})
        return 2
    _configure_logging(settings)

    if args.command == "languages":
        try:
            return _command_languages(settings, args, stdout)
        except LexiweaveError as exc:
            logger.error("Command failed: %s", exc, extra={"event": "cli.command.error"})
            return 1

    try:
        with engine_factory(settings) as engine:
            if args.command == "process":
                return _command_process(engine, args, stdin, stdout)
            if args.command == "lookup":
                return _command_lookup(engine, args, stdout)
            if args.command == "precache":
                return _command_precache(engine, args, stdout)
            if args.command == "practice":
                return _command_practice(engine, args, stdout)
    except OSError as exc:
        logger.error("I/O error: %s", exc, extra={"event": "cli.io.error"})
        return 2
    except LexiweaveError as exc:
        logger.error("Command failed: %s", exc, extra={"event": "cli.command.error"})
        return 1

    logger.error("Unknown command: %s", args.command, extra={"event": "cli.command.unknown"})
    return 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the lexiweave CLI."""

    return run_cli(argv)


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
