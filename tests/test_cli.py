"""CLI tests for Parley -- exercises both commands via Click's CliRunner.

Each test writes a transcript JSON file inside runner.isolated_filesystem().
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from parley.cli import cli
from parley.models.transcript import PromptEntry, ResponseEntry, TextSegment, Transcript
from tests.support import weather_call, weather_output, weather_transcript


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


_DUPLICATE_IDS = (
    '[{"entry_type": "prompt", "id": "p1", "input": "first"},'
    ' {"entry_type": "prompt", "id": "p1", "input": "second"}]'
)


def _write(path: str, transcript: Transcript) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(transcript.to_json(indent=2))


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

class TestShow:
    def test_show_entries(self, runner):
        with runner.isolated_filesystem():
            _write("turn.json", weather_transcript())
            result = runner.invoke(cli, ["show", "turn.json"])

        assert result.exit_code == 0, result.output
        assert "Transcript (4 entries)" in result.output
        assert "Weather in Paris?" in result.output
        assert "get_weather" in result.output
        assert "18°, cloudy in Paris." in result.output

    def test_show_empty(self, runner):
        with runner.isolated_filesystem():
            _write("empty.json", Transcript())
            result = runner.invoke(cli, ["show", "empty.json"])

        assert result.exit_code == 0
        assert "Empty transcript." in result.output

    def test_abbreviate(self, runner):
        transcript = Transcript([
            PromptEntry(id="p1", input="Write a lot."),
            ResponseEntry(id="r1", segments=[TextSegment(content="x" * 500)]),
        ])
        with runner.isolated_filesystem():
            _write("long.json", transcript)
            full = runner.invoke(cli, ["show", "long.json"])
            short = runner.invoke(cli, ["show", "-a", "long.json"])

        assert full.output.count("x") >= 500
        assert short.output.count("x") < 300
        assert "..." in short.output

    def test_missing_file(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["show", "nope.json"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_file(self, runner):
        with runner.isolated_filesystem():
            with open("bad.json", "w", encoding="utf-8") as fh:
                fh.write('[{"entry_type": "telegram"}]')
            result = runner.invoke(cli, ["show", "bad.json"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_non_utf8_file(self, runner):
        with runner.isolated_filesystem():
            with open("latin.json", "wb") as fh:
                fh.write(b"\xff\xfe[\x00]")
            result = runner.invoke(cli, ["show", "latin.json"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_duplicate_entry_ids_are_rejected(self, runner):
        with runner.isolated_filesystem():
            with open("dup.json", "w", encoding="utf-8") as fh:
                fh.write(_DUPLICATE_IDS)
            result = runner.invoke(cli, ["show", "dup.json"])

        assert result.exit_code == 1
        assert "duplicate entry id" in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

class TestCheck:
    def test_clean_transcript(self, runner):
        with runner.isolated_filesystem():
            _write("turn.json", weather_transcript())
            result = runner.invoke(cli, ["check", "turn.json"])

        assert result.exit_code == 0, result.output
        assert "OK: 4 entries, no problems found." in result.output

    def test_orphan_output(self, runner):
        with runner.isolated_filesystem():
            _write("orphan.json", Transcript([weather_output(call_id="ghost")]))
            result = runner.invoke(cli, ["check", "orphan.json"])

        assert result.exit_code == 1
        assert "1 problem(s)" in result.output
        assert "unknown call_id" in result.output

    def test_reused_call_id(self, runner):
        transcript = Transcript([
            weather_call(call_id="a"),
            weather_output(call_id="a"),
            weather_call(call_id="a").model_copy(update={"id": "tc_again"}),
        ])
        with runner.isolated_filesystem():
            _write("dup.json", transcript)
            result = runner.invoke(cli, ["check", "dup.json"])

        assert result.exit_code == 1
        assert "duplicate call_id" in result.output

    def test_duplicate_entry_ids(self, runner):
        with runner.isolated_filesystem():
            with open("dup.json", "w", encoding="utf-8") as fh:
                fh.write(_DUPLICATE_IDS)
            result = runner.invoke(cli, ["check", "dup.json"])

        assert result.exit_code == 1
        assert "1 problem(s)" in result.output
        assert "duplicate entry id" in result.output

    def test_log_level_option(self, runner):
        with runner.isolated_filesystem():
            _write("turn.json", weather_transcript())
            result = runner.invoke(cli, ["--log-level", "debug", "check", "turn.json"])

        assert result.exit_code == 0
