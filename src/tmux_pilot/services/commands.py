"""Command lifecycle engine: dispatch commands to panes and poll for completion."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Callable

from tmux_pilot.config import CommandsConfig
from tmux_pilot.errors import PaneBusy
from tmux_pilot.services import markers
from tmux_pilot.services.markers import ParseState
from tmux_pilot.services.shell import ShellSyntax, get_shell
from tmux_pilot.services.tmux import PanePort
from tmux_pilot.storage.models import Command
from tmux_pilot.storage.registry import CommandRegistry

logger = logging.getLogger(__name__)

RAW_MODE_MESSAGE = (
    "Command sent in raw mode; status tracking is disabled. "
    "Capture the pane to verify the outcome."
)
NO_ENTER_MESSAGE = (
    "Keys sent without Enter; status tracking is disabled. "
    "Capture the pane to verify the outcome."
)


def new_command_id() -> str:
    return str(uuid.uuid4())


class CommandEngine:
    """Execute commands in panes and track them through the registry.

    ``execute`` returns as soon as the text is typed into the pane. Completion is
    only discovered when ``check_status`` captures the pane and finds the end
    marker, so a command stays ``pending`` until somebody asks.
    """

    def __init__(
        self,
        port: PanePort,
        registry: CommandRegistry,
        shell: str | ShellSyntax = "bash",
        config: CommandsConfig | None = None,
        id_factory: Callable[[], str] = new_command_id,
    ) -> None:
        self.port = port
        self.registry = registry
        # Raises ConfigurationError for unknown shells, before any command is sent
        self.shell = shell if isinstance(shell, ShellSyntax) else get_shell(shell)
        self.config = config or CommandsConfig()
        self._new_id = id_factory
        self._pane_locks: dict[str, asyncio.Lock] = {}

    def _allocate_id(self) -> str:
        command_id = self._new_id()
        while command_id in self.registry:
            command_id = self._new_id()
        return command_id

    async def execute(
        self,
        pane_id: str,
        command: str,
        raw_mode: bool = False,
        no_enter: bool = False,
    ) -> Command:
        """Send a command to a pane and register it as pending."""
        raw_mode = raw_mode or no_enter

        if raw_mode:
            command_id = self._allocate_id()
            if no_enter:
                await self.port.send_raw_keys(pane_id, command)
                message = NO_ENTER_MESSAGE
            else:
                await self.port.send_text(pane_id, command)
                message = RAW_MODE_MESSAGE
            logger.info("Sent raw command %s to pane %s", command_id, pane_id)
            return self.registry.add(
                Command(
                    id=command_id,
                    pane_id=pane_id,
                    command=command,
                    start_time=self.registry.now(),
                    raw_mode=True,
                    result=message,
                    shell=self.shell.type.value,
                )
            )

        if not self.config.exclusive_panes:
            return await self._dispatch(pane_id, command)
        # Held until the command is registered, so a concurrent execute sees it
        async with self._pane_locks.setdefault(pane_id, asyncio.Lock()):
            await self._ensure_pane_idle(pane_id)
            return await self._dispatch(pane_id, command)

    async def _dispatch(self, pane_id: str, command: str) -> Command:
        command_id = self._allocate_id()
        wrapped = markers.build_wrapped(command_id, command, self.shell)
        await self.port.send_text(pane_id, wrapped)
        logger.info("Dispatched command %s to pane %s", command_id, pane_id)
        return self.registry.add(
            Command(
                id=command_id,
                pane_id=pane_id,
                command=command,
                start_time=self.registry.now(),
                shell=self.shell.type.value,
            )
        )

    async def _ensure_pane_idle(self, pane_id: str) -> None:
        busy = self.registry.pending_for_pane(pane_id)
        if busy is None:
            return
        busy = await self.check_status(busy.id)
        if busy is not None and not busy.is_terminal and not busy.unresolved:
            raise PaneBusy(pane_id, busy.id)

    async def check_status(self, command_id: str) -> Command | None:
        """Return the command, transitioning it if its end marker is now visible.

        Returns None when the id is unknown or already swept.
        """
        command = self.registry.get(command_id)
        if command is None:
            return None
        if command.is_terminal or not command.trackable:
            return command

        captured = await self.port.capture(command.pane_id, self.config.capture_lines)
        if command.is_terminal:
            # finished by an overlapping poll while we were capturing
            return command
        parsed = markers.parse(captured, command.id)

        if parsed.state is ParseState.FOUND:
            command.finish(parsed.exit_code, parsed.output or "", when=self.registry.now())
            if parsed.truncated:
                logger.warning("Command %s: start marker scrolled out, output is truncated", command.id)
            logger.info("Command %s finished: %s (exit %s)", command.id, command.status.value, command.exit_code)
        elif parsed.state is ParseState.MISSING:
            age = self.registry.now() - command.start_time
            if not command.unresolved and age > timedelta(seconds=self.config.unresolved_after_seconds):
                command.unresolved = True
                logger.warning(
                    "Command %s: no markers in the last %d lines of pane %s",
                    command.id,
                    self.config.capture_lines,
                    command.pane_id,
                )
        return command

    def sweep(self) -> list[str]:
        return self.registry.sweep(self.config.retention_minutes)
