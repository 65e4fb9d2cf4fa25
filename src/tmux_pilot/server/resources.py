"""MCP resources: tmux sessions, pane contents and command results."""

from __future__ import annotations

import logging
import re

from mcp import types

from tmux_pilot.config import AppConfig
from tmux_pilot.errors import ResourceNotFound, TmuxPilotError
from tmux_pilot.services.commands import CommandEngine
from tmux_pilot.services.tmux import TmuxClient
from tmux_pilot.utils.formatting import command_uri, format_command_result, pane_uri, to_json, truncate

logger = logging.getLogger(__name__)

SESSIONS_URI = "tmux://sessions"
PANE_URI_RE = re.compile(r"^tmux://pane/(?P<pane_id>[^/]+)$")
COMMAND_URI_RE = re.compile(r"^tmux://command/(?P<command_id>[^/]+)/result$")

RESOURCE_TEMPLATES = [
    types.ResourceTemplate(
        uriTemplate="tmux://pane/{paneId}",
        name="Tmux Pane Content",
        description="Last lines of a tmux pane, without color codes",
        mimeType="text/plain",
    ),
    types.ResourceTemplate(
        uriTemplate="tmux://command/{commandId}/result",
        name="Command Execution Result",
        description="Status, exit code and output of a command started with execute-command",
        mimeType="text/plain",
    ),
]


class ResourceAdapter:
    """Map the command registry and tmux panes onto MCP resources."""

    def __init__(self, engine: CommandEngine, tmux: TmuxClient, config: AppConfig) -> None:
        self.engine = engine
        self.tmux = tmux
        self.config = config

    async def list_resources(self) -> list[types.Resource]:
        resources = [
            types.Resource(uri=SESSIONS_URI, name="Tmux Sessions", mimeType="application/json"),
        ]
        resources.extend(await self.list_pane_resources())
        resources.extend(self.list_command_resources())
        return resources

    def list_command_resources(self) -> list[types.Resource]:
        self.engine.sweep()
        resources = []
        for command_id in self.engine.registry.list_active():
            command = self.engine.registry.get(command_id)
            if command is None:
                continue
            resources.append(
                types.Resource(
                    uri=command_uri(command_id),
                    name=f"Command: {truncate(command.command)}",
                    description=f"Execution status: {command.status.value}",
                    mimeType="text/plain",
                )
            )
        return resources

    async def list_pane_resources(self) -> list[types.Resource]:
        resources = []
        try:
            for session in await self.tmux.list_sessions():
                for window in await self.tmux.list_windows(session.id):
                    for pane in await self.tmux.list_panes(window.id):
                        active = " (active)" if pane.active else ""
                        resources.append(
                            types.Resource(
                                uri=pane_uri(pane.id),
                                name=f"Pane: {session.name} - {pane.id} - {pane.title}{active}",
                                description=f"Content from pane {pane.id} - {pane.title} in session {session.name}",
                                mimeType="text/plain",
                            )
                        )
        except TmuxPilotError as e:
            logger.error("Error listing panes: %s", e)
            return []
        return resources

    async def read_sessions_resource(self) -> str:
        try:
            return to_json(await self.tmux.list_sessions())
        except TmuxPilotError as e:
            return f"Error listing tmux sessions: {e}"

    async def read_pane_resource(self, pane_id: str) -> str:
        try:
            content = await self.tmux.capture(pane_id, self.config.panes.resource_lines, include_colors=False)
        except TmuxPilotError as e:
            return f"Error capturing pane content: {e}"
        return content or "No content captured"

    async def read_command_resource(self, command_id: str) -> str:
        """Render a command record, re-checking the pane first if it is still pending."""
        try:
            command = await self.engine.check_status(command_id)
        except TmuxPilotError as e:
            return f"Error retrieving command result: {e}"
        if command is None:
            return f"Command not found: {command_id}"
        return format_command_result(command)

    async def read_resource(self, uri: str) -> str:
        if uri == SESSIONS_URI:
            return await self.read_sessions_resource()
        if match := COMMAND_URI_RE.match(uri):
            return await self.read_command_resource(match.group("command_id"))
        if match := PANE_URI_RE.match(uri):
            return await self.read_pane_resource(match.group("pane_id"))
        raise ResourceNotFound(f"Unknown resource: {uri}")
