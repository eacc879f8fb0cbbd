import io
import json
from unittest.mock import MagicMock, patch

import pytest

from lexiweave.cli.args import parse_cli_args
from lexiweave.cli.main import run_cli
from lexiweave.config_manager import reset_settings
from lexiweave.engine.models import (
    ProcessedContent,
    ProcessingStats,
    ProficiencyLevel,
    WordEntry,
)
from lexiweave.errors import StoreError

pytestmark = pytest.mark.cli

HOUSE = WordEntry(
    id="en_el_house",
    source_word="house",
    target_word="σπίτι",
    source_language="en",
    target_language="el",
    proficiency_level=ProficiencyLevel.BEGINNER,
    frequency_rank=190,
    pronunciation="spíti",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("LEXIWEAVE_CONFIG_FILE", "LEXIWEAVE_TARGET_LANGUAGE", "LEXIWEAVE_DENSITY"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"data_dir": str(tmp_path / "data")}), encoding="utf-8")
    return str(path)


@pytest.fixture
def engine():
    mock = MagicMock()
    mock.__enter__.return_value = mock
    mock.__exit__.return_value = False
    return mock


def _run(argv, engine, stdin_text=""):
    stdout = io.StringIO()
    captured = {}

    def factory(settings):
        captured["settings"] = settings
        return engine

    code = run_cli(argv, engine_factory=factory, stdin=io.StringIO(stdin_text), stdout=stdout)
    return code, stdout.getvalue(), captured.get("settings")


class TestArgumentParsing:
    def test_density_range_enforced(self):
        with pytest.raises(SystemExit):
            parse_cli_args(["lookup", "house", "--density", "1.5"])

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_cli_args([])

    def test_shared_options(self):
        args = parse_cli_args(["practice", "beginner", "--count", "3", "--target", "es", "--json"])
        assert args.command == "practice"
        assert args.count == 3
        assert args.target == "es"
        assert args.json is True


class TestCommands:
    def test_process_from_stdin(self, engine, config_path):
        engine.process_content.return_value = ProcessedContent(
            content="<p>rewritten</p>", foreign_words=[], stats=ProcessingStats(total_words=1)
        )
        code, output, settings = _run(
            ["process", "-", "--config", config_path, "--target", "es", "--density", "0.5"],
            engine,
            "<p>original</p>",
        )
        assert code == 0
        assert output == "<p>rewritten</p>\n"
        engine.process_content.assert_called_once_with("<p>original</p>")
        assert settings.target_language == "es"
        assert settings.density == 0.5

    def test_process_to_output_file_as_json(self, engine, config_path, tmp_path):
        source = tmp_path / "chapter.html"
        source.write_text("<p>text</p>", encoding="utf-8")
        target = tmp_path / "out.html"
        engine.process_content.return_value = ProcessedContent(
            content="<p>woven</p>",
            foreign_words=[],
            stats=ProcessingStats(total_words=1, replaced_words=1),
        )
        code, output, _ = _run(
            ["process", str(source), "--output", str(target), "--json", "--config", config_path],
            engine,
        )
        assert code == 0
        assert target.read_text(encoding="utf-8") == "<p>woven</p>"
        assert json.loads(output)["replacedWords"] == 1

    def test_missing_input_file(self, engine, config_path, tmp_path):
        code, _, _ = _run(["process", str(tmp_path / "absent.html"), "--config", config_path], engine)
        assert code == 2

    def test_lookup(self, engine, config_path):
        engine.translate_word.return_value = HOUSE
        code, output, _ = _run(["lookup", "house", "--config", config_path], engine)
        assert code == 0
        assert output == "house -> σπίτι (beginner) [spíti]\n"

    def test_lookup_miss(self, engine, config_path):
        engine.translate_word.return_value = None
        code, output, _ = _run(["lookup", "zzz", "--config", config_path], engine)
        assert code == 1
        assert "No translation found" in output

    def test_precache(self, engine, config_path):
        engine.pre_cache_words.return_value = {"cached": 8, "failed": 2}
        code, output, _ = _run(["precache", "--count", "10", "--config", config_path], engine)
        assert code == 0
        engine.pre_cache_words.assert_called_once_with(10)
        assert output == "Cached 8 words, 2 failed\n"

    def test_practice_json(self, engine, config_path):
        engine.get_words_for_practice.return_value = [HOUSE]
        code, output, _ = _run(["practice", "beginner", "--json", "--config", config_path], engine)
        assert code == 0
        assert json.loads(output)[0]["targetWord"] == "σπίτι"

    def test_engine_errors_exit_with_one(self, engine, config_path):
        engine.translate_word.side_effect = StoreError("database is locked")
        code, _, _ = _run(["lookup", "house", "--config", config_path], engine)
        assert code == 1
        engine.__exit__.assert_called_once()

    def test_configuration_error_exits_with_two(self, engine, tmp_path):
        code, _, _ = _run(["lookup", "house", "--config", str(tmp_path / "absent.json")], engine)
        assert code == 2
        engine.translate_word.assert_not_called()

    def test_languages(self, config_path):
        orchestrator = MagicMock()
        orchestrator.get_supported_languages.return_value = ["en", "el"]
        stdout = io.StringIO()
        with patch("lexiweave.cli.main.create_orchestrator_from_config", return_value=orchestrator):
            code = run_cli(["languages", "--json", "--config", config_path], stdout=stdout)
        assert code == 0
        rows = {row["code"]: row for row in json.loads(stdout.getvalue())}
        assert rows["el"]["supported"] is True
        assert rows["es"]["supported"] is False
        orchestrator.get_supported_languages.assert_called_once_with(None)
        orchestrator.close.assert_called_once_with()
