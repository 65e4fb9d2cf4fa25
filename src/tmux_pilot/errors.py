"""Exception hierarchy for tmux-pilot."""

from __future__ import annotations


class TmuxPilotError(Exception):
    """Base exception for all tmux-pilot errors."""


class ConfigurationError(TmuxPilotError):
    """Invalid configuration, e.g. an unsupported shell type. Fatal at startup."""


class TmuxError(TmuxPilotError):
    """A tmux invocation failed."""

    def __init__(self, message: str, args: list[str] | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.tmux_args = args or []
        self.stderr = stderr


class PaneUnavailable(TmuxError):
    """The pane cannot be reached (killed, or the tmux server is down)."""

    def __init__(self, pane_id: str, stderr: str = "", args: list[str] | None = None) -> None:
        detail = stderr.strip() or "tmux did not respond"
        super().__init__(f"Pane {pane_id} unavailable: {detail}", args=args, stderr=stderr)
        self.pane_id = pane_id


class PaneBusy(TmuxPilotError):
    """A tracked command is still running in the pane."""

    def __init__(self, pane_id: str, command_id: str) -> None:
        super().__init__(
            f"Pane {pane_id} is still running tracked command {command_id}. "
            "Wait for it to finish, or use rawMode to send without tracking."
        )
        self.pane_id = pane_id
        self.command_id = command_id


class InvalidTransition(TmuxPilotError):
    """Attempt to change a command that already reached a terminal state."""


class GitError(TmuxPilotError):
    """A git invocation failed."""


class ToolError(TmuxPilotError):
    """A tool call failed; the message is returned to the client as an error result."""


class ResourceNotFound(TmuxPilotError):
    """No resource is served at the requested URI."""
