"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from tmux_pilot.errors import ConfigurationError
from tmux_pilot.services.shell import resolve_shell_type

CONFIG_DIR = Path.home() / ".tmux-pilot"
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOG_FILE = CONFIG_DIR / "server.log"

DEFAULT_AGENT_COMMANDS: dict[str, str] = {
    "codex": "codex",
    "claudecode": "claudecode",
    "gemini": "gemini",
}


@dataclass
class ShellConfig:
    type: str = "bash"


@dataclass
class CommandsConfig:
    capture_lines: int = 1000
    retention_minutes: int = 10
    unresolved_after_seconds: int = 60
    exclusive_panes: bool = True


@dataclass
class PanesConfig:
    resource_lines: int = 200
    default_capture_lines: int = 200


@dataclass
class AgentsConfig:
    codex: str = DEFAULT_AGENT_COMMANDS["codex"]
    claudecode: str = DEFAULT_AGENT_COMMANDS["claudecode"]
    gemini: str = DEFAULT_AGENT_COMMANDS["gemini"]
    initial_message_delay_ms: int = 500

    def command_for(self, agent: str) -> str | None:
        if agent not in DEFAULT_AGENT_COMMANDS:
            return None
        return getattr(self, agent)


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = str(LOG_FILE)

    def path(self) -> Path:
        return Path(self.file).expanduser().resolve()


@dataclass
class AppConfig:
    shell: ShellConfig = field(default_factory=ShellConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    panes: PanesConfig = field(default_factory=PanesConfig)
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def sections(self) -> dict[str, object]:
        return {
            "shell": self.shell,
            "commands": self.commands,
            "panes": self.panes,
            "agents": self.agents,
            "logging": self.logging,
        }


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def validate_config(config: AppConfig) -> AppConfig:
    """Normalize and check values that must be right before the server starts."""
    config.shell.type = resolve_shell_type(config.shell.type).value
    if config.commands.capture_lines <= 0:
        raise ConfigurationError("commands.capture_lines must be positive")
    if config.commands.retention_minutes <= 0:
        raise ConfigurationError("commands.retention_minutes must be positive")
    if config.panes.resource_lines <= 0:
        raise ConfigurationError("panes.resource_lines must be positive")
    return config


def _apply_section(obj: object, values: dict) -> None:
    for key, value in values.items():
        if hasattr(obj, key):
            setattr(obj, key, value)


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid config file {CONFIG_FILE}: {e}") from e

        for name, section in config.sections().items():
            _apply_section(section, data.get(name, {}))

    # Environment variable overrides
    if env_shell := os.environ.get("TMUX_PILOT_SHELL"):
        config.shell.type = env_shell
    try:
        if env_lines := os.environ.get("TMUX_PILOT_CAPTURE_LINES"):
            config.commands.capture_lines = int(env_lines)
        if env_retention := os.environ.get("TMUX_PILOT_RETENTION_MINUTES"):
            config.commands.retention_minutes = int(env_retention)
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric environment override: {e}") from e
    if env_log_level := os.environ.get("TMUX_PILOT_LOG_LEVEL"):
        config.logging.level = env_log_level
    if env_log_file := os.environ.get("TMUX_PILOT_LOG_FILE"):
        config.logging.file = env_log_file

    return validate_config(config)


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "shell": {
            "type": config.shell.type,
        },
        "commands": {
            "capture_lines": config.commands.capture_lines,
            "retention_minutes": config.commands.retention_minutes,
            "unresolved_after_seconds": config.commands.unresolved_after_seconds,
            "exclusive_panes": config.commands.exclusive_panes,
        },
        "panes": {
            "resource_lines": config.panes.resource_lines,
            "default_capture_lines": config.panes.default_capture_lines,
        },
        "agents": {
            "codex": config.agents.codex,
            "claudecode": config.agents.claudecode,
            "gemini": config.agents.gemini,
            "initial_message_delay_ms": config.agents.initial_message_delay_ms,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)

