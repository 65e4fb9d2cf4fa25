"""Text rendering for tool and resource responses."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any

from tmux_pilot.storage.models import Command, CommandStatus

COMMAND_NAME_LENGTH = 30


def truncate(text: str, max_len: int = COMMAND_NAME_LENGTH) -> str:
    """Shorten text to ``max_len`` characters, marking the cut with '...'."""
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def to_json(value: Any) -> str:
    """Pretty JSON for dataclasses, lists of dataclasses and plain values."""

    def _convert(item: Any) -> Any:
        if is_dataclass(item) and not isinstance(item, type):
            return asdict(item)
        if isinstance(item, list):
            return [_convert(i) for i in item]
        return item

    return json.dumps(_convert(value), indent=2)


def format_command_result(command: Command) -> str:
    """Render a command record for a status inquiry."""
    if command.status is CommandStatus.PENDING:
        if command.unresolved:
            return (
                f"Status: {command.status.value} (unresolvable)\n"
                f"Command: {command.command}\n\n"
                "--- Message ---\n"
                f"Lost track of the command: pane {command.pane_id} no longer shows its markers. "
                "It may have finished after scrolling out of view. Capture the pane to check."
            )
        if command.result:
            return (
                f"Status: {command.status.value}\n"
                f"Command: {command.command}\n\n"
                f"--- Message ---\n{command.result}"
            )
        return (
            "Command still executing...\n"
            f"Started: {command.start_time.isoformat()}\n"
            f"Command: {command.command}"
        )
    return (
        f"Status: {command.status.value}\n"
        f"Exit code: {command.exit_code}\n"
        f"Command: {command.command}\n\n"
        f"--- Output ---\n{command.result}"
    )


def format_execute_response(command: Command, no_enter: bool = False) -> str:
    """Reply to an execution request: the command id and how to get the result."""
    if command.raw_mode:
        mode = "Keys sent without Enter" if no_enter else "Interactive command started (rawMode)"
        return (
            f"{mode}.\n\n"
            "Status tracking is disabled.\n"
            f"Use 'capture-pane' with paneId '{command.pane_id}' to verify the command outcome.\n\n"
            f"Command ID: {command.id}"
        )
    return (
        "Command execution started.\n\n"
        f"Command ID: {command.id}\n"
        f"To get results, call 'get-command-result' or read resource: {command_uri(command.id)}\n\n"
        "Status will change from 'pending' to 'completed' or 'error' when finished."
    )


def command_uri(command_id: str) -> str:
    return f"tmux://command/{command_id}/result"


def pane_uri(pane_id: str) -> str:
    return f"tmux://pane/{pane_id}"
