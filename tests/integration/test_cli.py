"""Integration tests for the CLI."""

import json

import pytest
import httpx
from click.testing import CliRunner
from unittest.mock import AsyncMock, patch

from postdraft.cli import cli
from postdraft.models.post import Post
from postdraft.services.exceptions import RateLimited
from postdraft.services.generation_client import GenerationClient
from postdraft.services.post_actions import ActionResult, HttpPostActions
from postdraft.tui.app import PostdraftApp


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep logs and the default config path inside the test directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in (
        "POSTDRAFT_GENERATION_ENDPOINT",
        "POSTDRAFT_GENERATION_API_KEY",
        "POSTDRAFT_PERSISTENCE_ENDPOINT",
        "POSTDRAFT_PERSISTENCE_API_KEY",
        "POSTDRAFT_PERSISTENCE_DEBOUNCE_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("""
generation:
  endpoint: https://gen.example.com/api/generate

persistence:
  endpoint: https://posts.example.com/api
""")
    return path


class TestGenerateCommand:
    """Tests for `postdraft generate`."""

    def test_streams_completion_to_stdout(self, config_file):
        async def fake_stream(self, prompt, **kwargs):
            yield "Hello"
            yield " world"

        with patch.object(GenerationClient, "stream_completion", fake_stream):
            result = CliRunner().invoke(cli, ["--config", str(config_file), "generate", "Say hi"])

        assert result.exit_code == 0
        assert "Hello world" in result.output

    def test_generation_error_exits_nonzero(self, config_file):
        async def failing_stream(self, prompt, **kwargs):
            raise RateLimited("You have reached your request limit for the day.")
            yield ""

        with patch.object(GenerationClient, "stream_completion", failing_stream):
            result = CliRunner().invoke(cli, ["--config", str(config_file), "generate", "Say hi"])

        assert result.exit_code == 1
        assert "Error (rate_limited)" in result.output


class TestEditCommand:
    """Tests for `postdraft edit`."""

    def test_edit_loads_post_and_runs_app(self, config_file):
        post = Post(id="42", title="My Trip", content="Hello ")

        with patch.object(HttpPostActions, "get_post", AsyncMock(return_value=post)) as get_post, \
                patch.object(PostdraftApp, "run") as run:
            result = CliRunner().invoke(cli, ["--config", str(config_file), "edit", "42"])

        assert result.exit_code == 0
        get_post.assert_awaited_once_with("42")
        run.assert_called_once()

    def test_edit_reports_unreachable_backend(self, config_file):
        error = httpx.ConnectError("Connection refused")

        with patch.object(HttpPostActions, "get_post", AsyncMock(side_effect=error)):
            result = CliRunner().invoke(cli, ["--config", str(config_file), "edit", "42"])

        assert result.exit_code == 1
        assert "Could not load post 42" in result.output


class TestConfigErrors:
    """Tests for configuration problems."""

    def test_missing_config_is_reported(self):
        result = CliRunner().invoke(cli, ["generate", "Say hi"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_invalid_config_is_reported(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("generation:\n  endpoint: not-a-url\npersistence:\n  endpoint: https://x.example.com\n")

        result = CliRunner().invoke(cli, ["--config", str(path), "generate", "Say hi"])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output

    def test_malformed_yaml_is_reported(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("generation: [unclosed\n")

        result = CliRunner().invoke(cli, ["--config", str(path), "generate", "Say hi"])

        assert result.exit_code == 1
        assert "Invalid configuration file" in result.output
        assert "not valid YAML" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_non_mapping_config_is_reported(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- generation\n- persistence\n")

        result = CliRunner().invoke(cli, ["--config", str(path), "generate", "Say hi"])

        assert result.exit_code == 1
        assert "expected a mapping of sections, got list" in result.output


class TestImportCommand:
    """Tests for `postdraft import`."""

    @pytest.fixture
    def export_file(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps({"slides": ["<b>One</b>", "Two"], "content": "Intro {name}"}))
        return path

    def test_import_escapes_and_saves(self, config_file, export_file):
        post = Post(id="42", title="My Trip", content="Hello ")
        update = AsyncMock(return_value=ActionResult())

        with patch.object(HttpPostActions, "get_post", AsyncMock(return_value=post)), \
                patch.object(HttpPostActions, "update_post", update):
            result = CliRunner().invoke(
                cli, ["--config", str(config_file), "import", "42", str(export_file)]
            )

        assert result.exit_code == 0
        assert "Imported 2 slides into post 42" in result.output
        post_id, snapshot = update.await_args.args
        assert post_id == "42"
        assert snapshot.content == "Intro \\{name}"
        assert json.loads(snapshot.slides_json) == ["\\<b>One\\</b>", "Two"]

    def test_rejected_save_exits_nonzero(self, config_file, export_file):
        post = Post(id="42", content="Hello ")

        with patch.object(HttpPostActions, "get_post", AsyncMock(return_value=post)), \
                patch.object(HttpPostActions, "update_post", AsyncMock(return_value=ActionResult(error="Forbidden"))):
            result = CliRunner().invoke(
                cli, ["--config", str(config_file), "import", "42", str(export_file)]
            )

        assert result.exit_code == 1
        assert "Could not save post 42" in result.output

    def test_malformed_export_is_reported(self, config_file, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text('{"slides": "not a list"}')

        with patch.object(HttpPostActions, "get_post", AsyncMock()) as get_post:
            result = CliRunner().invoke(
                cli, ["--config", str(config_file), "import", "42", str(path)]
            )

        assert result.exit_code == 1
        assert "deck.json is not a slides export" in result.output
        get_post.assert_not_awaited()


class TestLoggingOptions:
    """Tests for the logging options on the command group."""

    def test_log_file_and_level(self, config_file, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        post = Post(id="42", content="Hello ")

        with patch.object(HttpPostActions, "get_post", AsyncMock(return_value=post)), \
                patch.object(PostdraftApp, "run"):
            result = CliRunner().invoke(cli, [
                "--config", str(config_file),
                "--log-file", str(log_file),
                "--log-level", "debug",
                "edit", "42",
            ])

        assert result.exit_code == 0
        events = [json.loads(line) for line in log_file.read_text().splitlines()]
        started = next(e for e in events if e["event"] == "edit_command_started")
        assert started["post_id"] == "42"
        loaded = next(e for e in events if e["event"] == "config_loaded")
        assert loaded["post_id"] == "42"

    def test_warning_level_drops_info_events(self, config_file, tmp_path):
        log_file = tmp_path / "run.log"

        async def fake_stream(self, prompt, **kwargs):
            yield "Hi"

        with patch.object(GenerationClient, "stream_completion", fake_stream):
            CliRunner().invoke(cli, [
                "--config", str(config_file),
                "--log-file", str(log_file),
                "--log-level", "warning",
                "generate", "Say hi",
            ])

        events = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert all(e["level"] in ("warning", "error") for e in events)
