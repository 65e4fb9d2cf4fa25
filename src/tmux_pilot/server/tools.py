"""MCP tool definitions and handlers."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from mcp.types import TextContent, Tool

from tmux_pilot.config import AppConfig
from tmux_pilot.errors import ToolError, TmuxPilotError
from tmux_pilot.services import git
from tmux_pilot.services.agents import LaunchOptions, WorktreeOptions, launch_agent_pane
from tmux_pilot.services.commands import CommandEngine
from tmux_pilot.services.tmux import TmuxClient
from tmux_pilot.utils.formatting import format_command_result, format_execute_response, to_json

logger = logging.getLogger(__name__)

DIRECTION = {
    "type": "string",
    "enum": ["horizontal", "vertical"],
    "description": "Split direction: 'horizontal' (side by side) or 'vertical' (top/bottom). Default is 'vertical'",
}
SIZE = {"type": "integer", "minimum": 1, "maximum": 99, "description": "Size of the new pane as percentage (1-99)"}


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


def _string(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def _boolean(description: str) -> dict[str, str]:
    return {"type": "boolean", "description": description}


TOOLS = [
    Tool(name="list-sessions", description="List all active tmux sessions", inputSchema=_schema()),
    Tool(
        name="find-session",
        description="Find a tmux session by name",
        inputSchema=_schema({"name": _string("Name of the tmux session to find")}, ["name"]),
    ),
    Tool(
        name="list-windows",
        description="List windows in a tmux session",
        inputSchema=_schema({"sessionId": _string("ID of the tmux session")}, ["sessionId"]),
    ),
    Tool(
        name="list-panes",
        description="List panes in a tmux window",
        inputSchema=_schema({"windowId": _string("ID of the tmux window")}, ["windowId"]),
    ),
    Tool(
        name="capture-pane",
        description="Capture content from a tmux pane with configurable lines count and optional color preservation",
        inputSchema=_schema(
            {
                "paneId": _string("ID of the tmux pane"),
                "lines": {"type": ["integer", "string"], "description": "Number of lines to capture"},
                "colors": _boolean("Include color/escape sequences for text and background attributes"),
            },
            ["paneId"],
        ),
    ),
    Tool(
        name="create-session",
        description="Create a new tmux session",
        inputSchema=_schema({"name": _string("Name for the new tmux session")}, ["name"]),
    ),
    Tool(
        name="create-window",
        description="Create a new window in a tmux session",
        inputSchema=_schema(
            {"sessionId": _string("ID of the tmux session"), "name": _string("Name for the new window")},
            ["sessionId", "name"],
        ),
    ),
    Tool(
        name="kill-session",
        description="Kill a tmux session by ID",
        inputSchema=_schema({"sessionId": _string("ID of the tmux session to kill")}, ["sessionId"]),
    ),
    Tool(
        name="kill-window",
        description="Kill a tmux window by ID",
        inputSchema=_schema({"windowId": _string("ID of the tmux window to kill")}, ["windowId"]),
    ),
    Tool(
        name="kill-pane",
        description="Kill a tmux pane by ID",
        inputSchema=_schema({"paneId": _string("ID of the tmux pane to kill")}, ["paneId"]),
    ),
    Tool(
        name="split-pane",
        description="Split a tmux pane horizontally or vertically",
        inputSchema=_schema(
            {"paneId": _string("ID of the tmux pane to split"), "direction": DIRECTION, "size": SIZE},
            ["paneId"],
        ),
    ),
    Tool(
        name="execute-command",
        description=(
            "Execute a command in a tmux pane and get results. For interactive applications "
            "(REPLs, editors), use `rawMode=true`. When `rawMode=false` (default), avoid heredocs "
            "and other multi-line constructs: they conflict with command wrapping."
        ),
        inputSchema=_schema(
            {
                "paneId": _string("ID of the tmux pane"),
                "command": _string("Command to execute"),
                "rawMode": _boolean(
                    "Send the command without completion markers, for REPLs and interactive programs. "
                    "Disables status tracking; use capture-pane to verify the outcome."
                ),
                "noEnter": _boolean(
                    "Send keystrokes without pressing Enter, for TUI navigation. Key names such as "
                    "Up, Down, Escape, Tab or C-c are sent as keys, other text literally. Implies rawMode."
                ),
            },
            ["paneId", "command"],
        ),
    ),
    Tool(
        name="get-command-result",
        description="Get the result of an executed command",
        inputSchema=_schema({"commandId": _string("ID of the executed command")}, ["commandId"]),
    ),
    Tool(
        name="launch-agent-pane",
        description=(
            "Split a tmux pane and launch an AI coding agent CLI (Codex, ClaudeCode, Gemini) in it. "
            "Optionally prepares a git worktree, working directory, environment and pane title, "
            "and posts an initial message to the agent."
        ),
        inputSchema=_schema(
            {
                "targetPaneId": _string("Existing pane ID to split. If omitted, the active pane is used."),
                "target": _string("tmux target (session[:window[.pane]]) used to find the active pane."),
                "direction": DIRECTION,
                "size": SIZE,
                "agent": {"type": "string", "enum": ["codex", "claudecode", "gemini"], "description": "Agent preset"},
                "agentCommand": _string("Explicit command to run in the new pane. Overrides the agent preset."),
                "workingDirectory": _string("Directory to cd into before launching the agent."),
                "paneTitle": _string("Pane title to apply after creation."),
                "focus": _boolean("Focus the new pane after creation. Defaults to true."),
                "environment": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                    "description": "Environment variables to export before launching the agent.",
                },
                "initialMessage": _string("Instruction to send to the agent CLI after it starts."),
                "initialMessageDelayMs": {"type": "integer", "minimum": 0, "description": "Delay before initialMessage"},
                "worktree": {
                    "type": "object",
                    "description": "Optional git worktree configuration.",
                    "properties": {
                        "repoPath": _string("Path inside the target git repository."),
                        "branchName": _string("Branch name to use for the worktree."),
                        "worktreePath": _string("Directory for the worktree, relative to the repo root."),
                        "baseRef": _string("Starting point for a new branch (requires createBranch=true)."),
                        "createBranch": _boolean("Create a new branch for the worktree."),
                        "force": _boolean("Force worktree creation even if the branch is checked out elsewhere."),
                    },
                    "required": ["repoPath", "branchName"],
                },
            }
        ),
    ),
    Tool(
        name="list-worktrees",
        description="List git worktrees for a repository path.",
        inputSchema=_schema({"repoPath": _string("Path inside the git repository.")}, ["repoPath"]),
    ),
    Tool(
        name="create-worktree",
        description="Create (or reuse) a git worktree for the specified branch.",
        inputSchema=_schema(
            {
                "repoPath": _string("Path inside the git repository."),
                "branchName": _string("Branch name for the worktree."),
                "worktreePath": _string("Directory for the worktree. Relative paths resolve from the repo root."),
                "baseRef": _string("Starting point when creating a new branch (requires createBranch=true)."),
                "createBranch": _boolean("Create a new branch for the worktree. Defaults to false."),
                "force": _boolean("Force worktree creation even if the branch is checked out elsewhere."),
            },
            ["repoPath", "branchName"],
        ),
    ),
    Tool(
        name="remove-worktree",
        description="Remove a git worktree directory.",
        inputSchema=_schema(
            {
                "repoPath": _string("Path inside the git repository."),
                "worktreePath": _string("Worktree directory to remove."),
                "force": _boolean("Force removal (cleans even if worktree has changes)."),
            },
            ["repoPath", "worktreePath"],
        ),
    ),
]


def _require(arguments: dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if value is None or value == "":
        raise ToolError(f"Missing required argument: {key}")
    return str(value)


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


class ToolHandler:
    """Dispatch tool calls by name.

    Failures raise ToolError with an "Error <action>: ..." message; the server
    turns that into an error result for the client.
    """

    def __init__(self, tmux: TmuxClient, engine: CommandEngine, config: AppConfig) -> None:
        self.tmux = tmux
        self.engine = engine
        self.config = config
        self._handlers: dict[str, tuple[str, Callable[[dict[str, Any]], Awaitable[str]]]] = {
            "list-sessions": ("listing tmux sessions", self.list_sessions),
            "find-session": ("finding tmux session", self.find_session),
            "list-windows": ("listing windows", self.list_windows),
            "list-panes": ("listing panes", self.list_panes),
            "capture-pane": ("capturing pane content", self.capture_pane),
            "create-session": ("creating session", self.create_session),
            "create-window": ("creating window", self.create_window),
            "kill-session": ("killing session", self.kill_session),
            "kill-window": ("killing window", self.kill_window),
            "kill-pane": ("killing pane", self.kill_pane),
            "split-pane": ("splitting pane", self.split_pane),
            "execute-command": ("executing command", self.execute_command),
            "get-command-result": ("retrieving command result", self.get_command_result),
            "launch-agent-pane": ("launching agent pane", self.launch_agent_pane),
            "list-worktrees": ("listing worktrees", self.list_worktrees),
            "create-worktree": ("creating worktree", self.create_worktree),
            "remove-worktree": ("removing worktree", self.remove_worktree),
        }

    async def call(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        if name not in self._handlers:
            raise ToolError(f"Unknown tool: {name}")
        action, handler = self._handlers[name]
        try:
            return _text(await handler(arguments or {}))
        except ToolError:
            raise
        except TmuxPilotError as e:
            logger.warning("Tool %s failed: %s", name, e)
            raise ToolError(f"Error {action}: {e}") from e

    # --- tmux structure ---

    async def list_sessions(self, arguments: dict[str, Any]) -> str:
        return to_json(await self.tmux.list_sessions())

    async def find_session(self, arguments: dict[str, Any]) -> str:
        name = _require(arguments, "name")
        session = await self.tmux.find_session_by_name(name)
        return to_json(session) if session else f"Session not found: {name}"

    async def list_windows(self, arguments: dict[str, Any]) -> str:
        return to_json(await self.tmux.list_windows(_require(arguments, "sessionId")))

    async def list_panes(self, arguments: dict[str, Any]) -> str:
        return to_json(await self.tmux.list_panes(_require(arguments, "windowId")))

    async def capture_pane(self, arguments: dict[str, Any]) -> str:
        pane_id = _require(arguments, "paneId")
        lines = arguments.get("lines")
        try:
            count = int(lines) if lines not in (None, "") else self.config.panes.default_capture_lines
        except (TypeError, ValueError):
            raise ToolError(f"Invalid lines value: {lines!r}") from None
        content = await self.tmux.capture(pane_id, count, include_colors=bool(arguments.get("colors")))
        return content or "No content captured"

    async def create_session(self, arguments: dict[str, Any]) -> str:
        name = _require(arguments, "name")
        session = await self.tmux.create_session(name)
        return f"Session created: {to_json(session)}" if session else f"Failed to create session: {name}"

    async def create_window(self, arguments: dict[str, Any]) -> str:
        window = await self.tmux.create_window(_require(arguments, "sessionId"), _require(arguments, "name"))
        return f"Window created: {to_json(window)}"

    async def kill_session(self, arguments: dict[str, Any]) -> str:
        session_id = _require(arguments, "sessionId")
        await self.tmux.kill_session(session_id)
        return f"Session {session_id} has been killed"

    async def kill_window(self, arguments: dict[str, Any]) -> str:
        window_id = _require(arguments, "windowId")
        await self.tmux.kill_window(window_id)
        return f"Window {window_id} has been killed"

    async def kill_pane(self, arguments: dict[str, Any]) -> str:
        pane_id = _require(arguments, "paneId")
        await self.tmux.kill_pane(pane_id)
        return f"Pane {pane_id} has been killed"

    async def split_pane(self, arguments: dict[str, Any]) -> str:
        pane = await self.tmux.split_pane(
            _require(arguments, "paneId"),
            arguments.get("direction") or "vertical",
            arguments.get("size"),
        )
        return f"Pane split successfully. New pane: {to_json(pane)}"

    # --- command execution ---

    async def execute_command(self, arguments: dict[str, Any]) -> str:
        no_enter = bool(arguments.get("noEnter"))
        command = await self.engine.execute(
            _require(arguments, "paneId"),
            _require(arguments, "command"),
            raw_mode=bool(arguments.get("rawMode")),
            no_enter=no_enter,
        )
        return format_execute_response(command, no_enter=no_enter)

    async def get_command_result(self, arguments: dict[str, Any]) -> str:
        command_id = _require(arguments, "commandId")
        command = await self.engine.check_status(command_id)
        if command is None:
            raise ToolError(f"Command not found: {command_id}")
        return format_command_result(command)

    # --- agents and worktrees ---

    async def launch_agent_pane(self, arguments: dict[str, Any]) -> str:
        worktree = arguments.get("worktree")
        options = LaunchOptions(
            target_pane_id=arguments.get("targetPaneId"),
            target=arguments.get("target"),
            direction=arguments.get("direction") or "vertical",
            size=arguments.get("size"),
            agent=arguments.get("agent"),
            agent_command=arguments.get("agentCommand"),
            working_directory=arguments.get("workingDirectory"),
            pane_title=arguments.get("paneTitle"),
            focus=arguments.get("focus", True),
            environment=dict(arguments.get("environment") or {}),
            initial_message=arguments.get("initialMessage"),
            initial_message_delay_ms=arguments.get("initialMessageDelayMs"),
            worktree=(
                WorktreeOptions(
                    repo_path=_require(worktree, "repoPath"),
                    branch_name=_require(worktree, "branchName"),
                    worktree_path=worktree.get("worktreePath"),
                    base_ref=worktree.get("baseRef"),
                    create_branch=bool(worktree.get("createBranch")),
                    force=bool(worktree.get("force")),
                )
                if worktree
                else None
            ),
        )
        result = await launch_agent_pane(self.tmux, self.config.agents, options)
        return result.summary()

    async def list_worktrees(self, arguments: dict[str, Any]) -> str:
        return to_json(await git.list_worktrees(_require(arguments, "repoPath")))

    async def create_worktree(self, arguments: dict[str, Any]) -> str:
        result = await git.ensure_worktree(
            _require(arguments, "repoPath"),
            _require(arguments, "branchName"),
            worktree_path=arguments.get("worktreePath"),
            base_ref=arguments.get("baseRef"),
            create_branch=bool(arguments.get("createBranch")),
            force=bool(arguments.get("force")),
        )
        status = (
            f"Created worktree at {result.worktree_path}"
            if result.created
            else f"Worktree already exists at {result.worktree_path}"
        )
        return f"{status}\n\n{to_json(result)}"

    async def remove_worktree(self, arguments: dict[str, Any]) -> str:
        worktree_path = _require(arguments, "worktreePath")
        await git.remove_worktree(_require(arguments, "repoPath"), worktree_path, force=bool(arguments.get("force")))
        return f"Removed worktree at {worktree_path}"
