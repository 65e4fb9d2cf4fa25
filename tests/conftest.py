"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from tmux_pilot.config import AgentsConfig, AppConfig, CommandsConfig, LoggingConfig, PanesConfig, ShellConfig
from tmux_pilot.errors import PaneUnavailable
from tmux_pilot.services.commands import CommandEngine
from tmux_pilot.storage.models import TmuxPane, TmuxSession, TmuxWindow
from tmux_pilot.storage.registry import CommandRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeTmux:
    """In-memory stand-in for TmuxClient."""

    def __init__(self, yield_on_io: bool = False) -> None:
        # when set, pane I/O suspends once like a real subprocess call
        self.yield_on_io = yield_on_io
        self.screens: dict[str, str] = {}
        self.sent: list[tuple[str, str]] = []
        self.raw: list[tuple[str, str]] = []
        self.captures: list[tuple[str, int, bool]] = []
        self.unavailable: set[str] = set()
        self.sessions = [TmuxSession(id="$0", name="main", attached=True, windows=1)]
        self.windows = {"$0": [TmuxWindow(id="@0", name="editor", active=True, session_id="$0")]}
        self.panes = {
            "@0": [
                TmuxPane(id="%0", window_id="@0", title="vim", active=True),
                TmuxPane(id="%3", window_id="@0", title="shell", active=False),
            ]
        }

    async def _check(self, pane_id: str) -> None:
        if self.yield_on_io:
            await asyncio.sleep(0)
        if pane_id in self.unavailable:
            raise PaneUnavailable(pane_id, stderr=f"can't find pane: {pane_id}")

    async def capture(self, pane_id: str, lines: int = 200, include_colors: bool = False) -> str:
        await self._check(pane_id)
        self.captures.append((pane_id, lines, include_colors))
        return self.screens.get(pane_id, "")

    async def send_text(self, pane_id: str, text: str) -> None:
        await self._check(pane_id)
        self.sent.append((pane_id, text))

    async def send_raw_keys(self, pane_id: str, keys: str) -> None:
        await self._check(pane_id)
        self.raw.append((pane_id, keys))

    async def list_sessions(self) -> list[TmuxSession]:
        return self.sessions

    async def find_session_by_name(self, name: str) -> TmuxSession | None:
        return next((s for s in self.sessions if s.name == name), None)

    async def list_windows(self, session_id: str) -> list[TmuxWindow]:
        return self.windows.get(session_id, [])

    async def list_panes(self, window_id: str) -> list[TmuxPane]:
        return self.panes.get(window_id, [])


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        shell=ShellConfig(type="bash"),
        commands=CommandsConfig(capture_lines=1000, retention_minutes=10, unresolved_after_seconds=60),
        panes=PanesConfig(resource_lines=200, default_capture_lines=200),
        agents=AgentsConfig(initial_message_delay_ms=0),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_tmux():
    return FakeTmux()


@pytest.fixture
def registry(clock):
    return CommandRegistry(clock=clock)


@pytest.fixture
def engine(fake_tmux, registry, app_config):
    ids = (f"c{i}" for i in itertools.count(1))
    return CommandEngine(fake_tmux, registry, shell="bash", config=app_config.commands, id_factory=lambda: next(ids))
