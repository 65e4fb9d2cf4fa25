"""Tests for response formatting."""

from __future__ import annotations

from datetime import datetime, timezone

from tmux_pilot.storage.models import Command, TmuxPane
from tmux_pilot.utils.formatting import (
    command_uri,
    format_command_result,
    format_execute_response,
    to_json,
    truncate,
)


def pending(**kwargs) -> Command:
    return Command(
        id="c1",
        pane_id="%3",
        command="make test",
        start_time=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
        **kwargs,
    )


class TestTruncate:
    def test_short(self):
        assert truncate("ls") == "ls"

    def test_exact(self):
        assert truncate("a" * 30) == "a" * 30

    def test_long(self):
        assert truncate("a" * 31) == "a" * 30 + "..."


class TestFormatCommandResult:
    def test_pending(self):
        text = format_command_result(pending())
        assert text == "Command still executing...\nStarted: 2026-01-01T12:00:00+00:00\nCommand: make test"

    def test_pending_with_message(self):
        text = format_command_result(pending(raw_mode=True, result="tracking disabled"))
        assert "Status: pending" in text
        assert "--- Message ---\ntracking disabled" in text

    def test_unresolved(self):
        text = format_command_result(pending(unresolved=True))
        assert "Status: pending (unresolvable)" in text
        assert "Lost track" in text

    def test_completed(self):
        command = pending()
        command.finish(0, "all good")
        assert format_command_result(command) == (
            "Status: completed\nExit code: 0\nCommand: make test\n\n--- Output ---\nall good"
        )

    def test_error(self):
        command = pending()
        command.finish(2, "")
        text = format_command_result(command)
        assert "Status: error" in text
        assert "Exit code: 2" in text


class TestExecuteResponse:
    def test_tracked(self):
        text = format_execute_response(pending())
        assert "Command ID: c1" in text
        assert command_uri("c1") in text

    def test_raw(self):
        text = format_execute_response(pending(raw_mode=True))
        assert "rawMode" in text
        assert "Status tracking is disabled." in text

    def test_no_enter(self):
        text = format_execute_response(pending(raw_mode=True), no_enter=True)
        assert text.startswith("Keys sent without Enter.")


class TestToJson:
    def test_dataclass_list(self):
        assert '"id": "%1"' in to_json([TmuxPane(id="%1")])

    def test_none(self):
        assert to_json(None) == "null"
