"""In-memory command registry."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterator

from tmux_pilot.storage.models import Command, utcnow

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Owns every dispatched Command, keyed by command id.

    Entries are only evicted by ``sweep``; there is no timer. A server that is
    never asked to list commands keeps every entry until it exits.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._commands: dict[str, Command] = {}
        self._clock = clock

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(list(self._commands.values()))

    def now(self) -> datetime:
        return self._clock()

    def add(self, command: Command) -> Command:
        if command.id in self._commands:
            raise ValueError(f"Duplicate command id: {command.id}")
        self._commands[command.id] = command
        return command

    def get(self, command_id: str) -> Command | None:
        return self._commands.get(command_id)

    def remove(self, command_id: str) -> Command | None:
        return self._commands.pop(command_id, None)

    def list_active(self) -> list[str]:
        """All held ids in insertion order."""
        return list(self._commands)

    def pending_for_pane(self, pane_id: str) -> Command | None:
        """The most recent tracked command on a pane that is still pending."""
        for command in reversed(list(self._commands.values())):
            if command.pane_id == pane_id and command.trackable and not command.is_terminal:
                return command
        return None

    def sweep(self, max_age_minutes: float) -> list[str]:
        """Remove entries started more than ``max_age_minutes`` ago, whatever their status."""
        cutoff = self._clock() - timedelta(minutes=max_age_minutes)
        expired = [cid for cid, cmd in self._commands.items() if cmd.start_time < cutoff]
        for cid in expired:
            del self._commands[cid]
        if expired:
            logger.info("Swept %d command(s) older than %s minutes", len(expired), max_age_minutes)
        return expired
