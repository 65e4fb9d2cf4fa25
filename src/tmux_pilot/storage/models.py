"""Data models for tmux-pilot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from tmux_pilot.errors import InvalidTransition


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommandStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Command:
    """A command dispatched to a pane.

    Status only moves forward: ``pending`` to ``completed`` or ``error``.
    ``exit_code`` is set exactly when the command leaves ``pending``.
    """

    id: str
    pane_id: str
    command: str
    start_time: datetime = field(default_factory=utcnow)
    status: CommandStatus = CommandStatus.PENDING
    exit_code: int | None = None
    result: str | None = None
    raw_mode: bool = False
    shell: str = "bash"
    unresolved: bool = False
    end_time: datetime | None = None

    @property
    def trackable(self) -> bool:
        return not self.raw_mode

    @property
    def is_terminal(self) -> bool:
        return self.status is not CommandStatus.PENDING

    def finish(self, exit_code: int, output: str, when: datetime | None = None) -> None:
        """Record completion. Exit code 0 means completed, anything else error."""
        if self.is_terminal:
            raise InvalidTransition(f"Command {self.id} already {self.status.value}")
        self.status = CommandStatus.COMPLETED if exit_code == 0 else CommandStatus.ERROR
        self.exit_code = exit_code
        self.result = output
        self.unresolved = False
        self.end_time = when or utcnow()


@dataclass
class TmuxSession:
    id: str
    name: str
    attached: bool = False
    windows: int = 0


@dataclass
class TmuxWindow:
    id: str
    name: str
    active: bool = False
    session_id: str = ""


@dataclass
class TmuxPane:
    id: str
    window_id: str = ""
    title: str = ""
    active: bool = False


@dataclass
class WorktreeInfo:
    """One entry of ``git worktree list --porcelain``."""

    path: str
    head: str | None = None
    branch: str | None = None
    bare: bool = False
    detached: bool = False
    locked: str | None = None
    prunable: str | None = None


@dataclass
class EnsureWorktreeResult:
    repo_path: str
    worktree_path: str
    branch: str
    created: bool
    existing_worktree: WorktreeInfo | None = None
