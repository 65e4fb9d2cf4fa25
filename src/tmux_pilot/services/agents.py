"""Launch an AI coding agent CLI in a freshly split pane."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

from tmux_pilot.config import AgentsConfig
from tmux_pilot.errors import TmuxPilotError
from tmux_pilot.services import git
from tmux_pilot.services.tmux import TmuxClient

logger = logging.getLogger(__name__)

ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _quote(value: str) -> str:
    return '"' + re.sub(r'(["\\])', r"\\\1", value) + '"'


def build_export_command(key: str, value: str) -> str:
    if not ENV_KEY_RE.match(key):
        raise TmuxPilotError(f"Invalid environment variable name: {key}")
    return f"export {key}={_quote(value)}"


def build_cd_command(path: str) -> str:
    return f"cd {_quote(path)}"


@dataclass
class WorktreeOptions:
    repo_path: str
    branch_name: str
    worktree_path: str | None = None
    base_ref: str | None = None
    create_branch: bool = False
    force: bool = False


@dataclass
class LaunchOptions:
    target_pane_id: str | None = None
    target: str | None = None
    direction: str = "vertical"
    size: int | None = None
    agent: str | None = None
    agent_command: str | None = None
    working_directory: str | None = None
    pane_title: str | None = None
    focus: bool = True
    environment: dict[str, str] = field(default_factory=dict)
    initial_message: str | None = None
    initial_message_delay_ms: int | None = None
    worktree: WorktreeOptions | None = None


@dataclass
class LaunchResult:
    pane_id: str
    operations: list[str]

    def summary(self) -> str:
        return "\n".join([f"New pane {self.pane_id} ready.", *(f"- {op}" for op in self.operations)])


async def launch_agent_pane(tmux: TmuxClient, agents: AgentsConfig, options: LaunchOptions) -> LaunchResult:
    """Split a pane, prepare it and start an agent CLI in it."""
    if options.agent and agents.command_for(options.agent) is None:
        raise TmuxPilotError(f"Unknown agent preset: {options.agent}")

    target_pane = options.target_pane_id or await tmux.get_active_pane_id(options.target)
    new_pane = await tmux.split_pane(target_pane, options.direction, options.size)
    pane_id = new_pane.id
    operations: list[str] = []

    size_suffix = f", size {options.size}%" if options.size else ""
    operations.append(f"Split pane {target_pane} -> {pane_id} ({options.direction}{size_suffix})")

    if options.focus:
        await tmux.select_pane(pane_id)
        operations.append("Focused new pane")

    title = options.pane_title or (f"Agent | {options.agent.upper()}" if options.agent else None)
    if title:
        await tmux.rename_pane(pane_id, title)
        operations.append(f'Set pane title to "{title}"')

    working_directory = options.working_directory
    if options.worktree:
        wt = options.worktree
        result = await git.ensure_worktree(
            wt.repo_path,
            wt.branch_name,
            worktree_path=wt.worktree_path,
            base_ref=wt.base_ref,
            create_branch=wt.create_branch,
            force=wt.force,
        )
        working_directory = working_directory or result.worktree_path
        if result.created:
            operations.append(f"Created worktree at {result.worktree_path} (branch {result.branch})")
        else:
            branch = (result.existing_worktree and result.existing_worktree.branch) or result.branch
            operations.append(f"Reused existing worktree at {result.worktree_path} (branch {branch})")

    if working_directory:
        await tmux.send_text(pane_id, build_cd_command(working_directory))
        operations.append(f"Changed directory to {working_directory}")

    for key, value in options.environment.items():
        await tmux.send_text(pane_id, build_export_command(key, value))
        operations.append(f"Exported {key}")

    launch_command = options.agent_command or (agents.command_for(options.agent) if options.agent else None)
    if launch_command:
        await tmux.send_text(pane_id, launch_command)
        operations.append(f"Started command: {launch_command}")
    else:
        operations.append("No launch command supplied; pane left idle.")

    if options.initial_message:
        delay_ms = (
            options.initial_message_delay_ms
            if options.initial_message_delay_ms is not None
            else agents.initial_message_delay_ms
        )
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
        await tmux.send_text(pane_id, options.initial_message)
        operations.append("Posted initial message to agent CLI")

    logger.info("Launched agent pane %s", pane_id)
    return LaunchResult(pane_id=pane_id, operations=operations)
