"""Tests for the in-memory command registry."""

from __future__ import annotations

import pytest

from tmux_pilot.errors import InvalidTransition
from tmux_pilot.storage.models import Command, CommandStatus
from tmux_pilot.storage.registry import CommandRegistry


def make_command(registry: CommandRegistry, command_id: str, pane_id: str = "%1", raw_mode: bool = False) -> Command:
    return registry.add(
        Command(id=command_id, pane_id=pane_id, command=f"cmd {command_id}", start_time=registry.now(), raw_mode=raw_mode)
    )


class TestCommandRegistry:
    def test_add_and_get(self, registry):
        command = make_command(registry, "a")
        assert registry.get("a") is command
        assert "a" in registry
        assert len(registry) == 1

    def test_get_missing(self, registry):
        assert registry.get("nope") is None

    def test_duplicate_id_rejected(self, registry):
        make_command(registry, "a")
        with pytest.raises(ValueError):
            make_command(registry, "a")

    def test_list_active_insertion_order(self, registry):
        for cid in ["z", "a", "m"]:
            make_command(registry, cid)
        assert registry.list_active() == ["z", "a", "m"]

    def test_remove(self, registry):
        make_command(registry, "a")
        assert registry.remove("a").id == "a"
        assert registry.remove("a") is None

    def test_sweep_removes_old_entries_regardless_of_status(self, registry, clock):
        old_pending = make_command(registry, "old-pending")
        old_done = make_command(registry, "old-done")
        old_done.finish(0, "ok")
        clock.advance(minutes=11)
        make_command(registry, "fresh")

        removed = registry.sweep(10)

        assert sorted(removed) == ["old-done", "old-pending"]
        assert registry.list_active() == ["fresh"]
        assert old_pending.status is CommandStatus.PENDING

    def test_sweep_keeps_entries_within_threshold(self, registry, clock):
        make_command(registry, "a")
        clock.advance(minutes=9)
        assert registry.sweep(10) == []
        assert registry.list_active() == ["a"]

    def test_pending_for_pane(self, registry):
        make_command(registry, "raw", pane_id="%1", raw_mode=True)
        tracked = make_command(registry, "tracked", pane_id="%1")
        make_command(registry, "other", pane_id="%2")
        assert registry.pending_for_pane("%1") is tracked

        tracked.finish(0, "")
        assert registry.pending_for_pane("%1") is None


class TestCommandTransitions:
    def test_finish_success(self):
        command = Command(id="a", pane_id="%1", command="true")
        command.finish(0, "out")
        assert command.status is CommandStatus.COMPLETED
        assert command.exit_code == 0
        assert command.result == "out"
        assert command.end_time is not None

    def test_finish_failure(self):
        command = Command(id="a", pane_id="%1", command="false")
        command.finish(1, "")
        assert command.status is CommandStatus.ERROR
        assert command.exit_code == 1

    def test_terminal_state_is_immutable(self):
        command = Command(id="a", pane_id="%1", command="true")
        command.finish(0, "first")
        with pytest.raises(InvalidTransition):
            command.finish(1, "second")
        assert command.status is CommandStatus.COMPLETED
        assert command.result == "first"

    def test_exit_code_absent_while_pending(self):
        command = Command(id="a", pane_id="%1", command="sleep 1")
        assert command.status is CommandStatus.PENDING
        assert command.exit_code is None
        assert command.trackable
