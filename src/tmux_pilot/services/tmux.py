"""Async tmux client: enumeration, capture and key injection."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Protocol

from tmux_pilot.errors import PaneUnavailable, TmuxError
from tmux_pilot.storage.models import TmuxPane, TmuxSession, TmuxWindow

logger = logging.getLogger(__name__)

SEP = "\t"
SESSION_FORMAT = SEP.join(["#{session_id}", "#{session_name}", "#{?session_attached,1,0}", "#{session_windows}"])
WINDOW_FORMAT = SEP.join(["#{window_id}", "#{window_name}", "#{?window_active,1,0}", "#{session_id}"])
PANE_FORMAT = SEP.join(["#{pane_id}", "#{window_id}", "#{pane_title}", "#{?pane_active,1,0}"])

# tmux key names sent as keys rather than literal text in raw key mode
SPECIAL_KEY_RE = re.compile(
    r"^(Up|Down|Left|Right|Escape|Enter|Tab|BTab|Space|BSpace|DC|Delete|Home|End|IC|Insert"
    r"|PageUp|PageDown|PgUp|PgDn|NPage|PPage|F(?:[1-9]|1[0-2])|[CMS]-\S+)$"
)


class PanePort(Protocol):
    """What the command engine needs from a terminal multiplexer."""

    async def capture(self, pane_id: str, lines: int = 200, include_colors: bool = False) -> str: ...

    async def send_text(self, pane_id: str, text: str) -> None: ...

    async def send_raw_keys(self, pane_id: str, keys: str) -> None: ...


def split_key_tokens(keys: str) -> list[str] | None:
    """Return key names if every whitespace-separated token is one, else None."""
    tokens = keys.split()
    if tokens and all(SPECIAL_KEY_RE.match(token) for token in tokens):
        return tokens
    return None


def _flag(value: str) -> bool:
    return value.strip() == "1"


class TmuxClient:
    """Run tmux commands via asyncio subprocesses.

    Every call is awaited without a timeout of its own; if tmux blocks, only the
    awaiting request blocks.
    """

    def __init__(self, binary: str = "tmux") -> None:
        self.binary = binary

    async def run(self, *args: str) -> str:
        """Run ``tmux <args>`` and return stdout. Raises TmuxError on failure."""
        cmd = [self.binary, *args]
        logger.debug("tmux %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise TmuxError(f"{self.binary} executable not found", args=list(args)) from None
        stdout_bytes, stderr_bytes = await proc.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise TmuxError(
                f"tmux {' '.join(args)} failed: {stderr.strip() or f'exit {proc.returncode}'}",
                args=list(args),
                stderr=stderr,
            )
        return stdout

    async def run_on_pane(self, pane_id: str, *args: str) -> str:
        try:
            return await self.run(*args)
        except TmuxError as e:
            raise PaneUnavailable(pane_id, stderr=e.stderr or str(e), args=e.tmux_args) from e

    # --- Enumeration ---

    async def list_sessions(self) -> list[TmuxSession]:
        stdout = await self.run("list-sessions", "-F", SESSION_FORMAT)
        sessions = []
        for line in stdout.splitlines():
            if not line.strip():
                continue
            sid, name, attached, windows = (line.split(SEP) + ["", "", "", ""])[:4]
            sessions.append(
                TmuxSession(id=sid, name=name, attached=_flag(attached), windows=int(windows or 0))
            )
        return sessions

    async def find_session_by_name(self, name: str) -> TmuxSession | None:
        for session in await self.list_sessions():
            if session.name == name:
                return session
        return None

    async def list_windows(self, session_id: str) -> list[TmuxWindow]:
        stdout = await self.run("list-windows", "-t", session_id, "-F", WINDOW_FORMAT)
        return [self._parse_window(line) for line in stdout.splitlines() if line.strip()]

    async def list_panes(self, window_id: str) -> list[TmuxPane]:
        stdout = await self.run("list-panes", "-t", window_id, "-F", PANE_FORMAT)
        return [self._parse_pane(line) for line in stdout.splitlines() if line.strip()]

    @staticmethod
    def _parse_window(line: str) -> TmuxWindow:
        wid, name, active, session_id = (line.split(SEP) + ["", "", "", ""])[:4]
        return TmuxWindow(id=wid, name=name, active=_flag(active), session_id=session_id)

    @staticmethod
    def _parse_pane(line: str) -> TmuxPane:
        pid, window_id, title, active = (line.split(SEP) + ["", "", "", ""])[:4]
        return TmuxPane(id=pid, window_id=window_id, title=title, active=_flag(active))

    # --- Pane I/O ---

    async def capture(self, pane_id: str, lines: int = 200, include_colors: bool = False) -> str:
        """Capture the last ``lines`` lines of a pane, joining wrapped lines."""
        args = ["capture-pane", "-p", "-J"]
        if include_colors:
            args.append("-e")
        args.extend(["-t", pane_id, "-S", f"-{lines}", "-E", "-"])
        return await self.run_on_pane(pane_id, *args)

    async def send_text(self, pane_id: str, text: str) -> None:
        """Type ``text`` literally into the pane and press Enter."""
        body = text.rstrip("\n")
        if body:
            await self.run_on_pane(pane_id, "send-keys", "-t", pane_id, "-l", body)
        await self.run_on_pane(pane_id, "send-keys", "-t", pane_id, "Enter")

    async def send_raw_keys(self, pane_id: str, keys: str) -> None:
        """Send keystrokes without Enter.

        A sequence made only of tmux key names (``Up``, ``Escape``, ``C-c`` ...) is
        sent as keys; anything else is typed literally.
        """
        tokens = split_key_tokens(keys)
        if tokens is not None:
            await self.run_on_pane(pane_id, "send-keys", "-t", pane_id, *tokens)
        elif keys:
            await self.run_on_pane(pane_id, "send-keys", "-t", pane_id, "-l", keys)

    # --- Management ---

    async def create_session(self, name: str) -> TmuxSession | None:
        await self.run("new-session", "-d", "-s", name)
        return await self.find_session_by_name(name)

    async def create_window(self, session_id: str, name: str) -> TmuxWindow:
        stdout = await self.run("new-window", "-t", session_id, "-n", name, "-P", "-F", WINDOW_FORMAT)
        return self._parse_window(stdout.strip())

    async def kill_session(self, session_id: str) -> None:
        await self.run("kill-session", "-t", session_id)

    async def kill_window(self, window_id: str) -> None:
        await self.run("kill-window", "-t", window_id)

    async def kill_pane(self, pane_id: str) -> None:
        await self.run_on_pane(pane_id, "kill-pane", "-t", pane_id)

    async def split_pane(self, pane_id: str, direction: str = "vertical", size: int | None = None) -> TmuxPane:
        """Split a pane. ``horizontal`` places the new pane beside, ``vertical`` below."""
        args = ["split-window", "-t", pane_id, "-h" if direction == "horizontal" else "-v"]
        if size is not None:
            args.extend(["-l", f"{size}%"])
        args.extend(["-P", "-F", PANE_FORMAT])
        stdout = await self.run_on_pane(pane_id, *args)
        return self._parse_pane(stdout.strip())

    async def select_pane(self, pane_id: str) -> None:
        await self.run_on_pane(pane_id, "select-pane", "-t", pane_id)

    async def rename_pane(self, pane_id: str, title: str) -> None:
        await self.run_on_pane(pane_id, "select-pane", "-t", pane_id, "-T", title)

    async def get_active_pane_id(self, target: str | None = None) -> str:
        args = ["display-message", "-p"]
        if target:
            args.extend(["-t", target])
        args.append("#{pane_id}")
        pane_id = (await self.run(*args)).strip()
        if not pane_id:
            raise TmuxError(f"No active pane for target {target or '(current)'}")
        return pane_id
