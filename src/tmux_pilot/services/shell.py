"""Shell syntax adapters for command wrapping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tmux_pilot.errors import ConfigurationError


class ShellType(str, Enum):
    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"


@dataclass(frozen=True)
class ShellSyntax:
    """Textual conventions needed to delimit a command in an interactive shell."""

    type: ShellType
    exit_status_var: str
    statement_separator: str = "; "


SHELLS: dict[ShellType, ShellSyntax] = {
    ShellType.BASH: ShellSyntax(ShellType.BASH, exit_status_var="$?"),
    ShellType.ZSH: ShellSyntax(ShellType.ZSH, exit_status_var="$?"),
    # fish has no $?
    ShellType.FISH: ShellSyntax(ShellType.FISH, exit_status_var="$status"),
}

SUPPORTED_SHELLS = tuple(s.value for s in ShellType)


def resolve_shell_type(name: str) -> ShellType:
    """Map a shell name to its ShellType. Raises ConfigurationError if unsupported."""
    try:
        return ShellType(name.strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported shell type: {name!r} (expected one of: {', '.join(SUPPORTED_SHELLS)})"
        ) from None


def get_shell(shell: str | ShellType) -> ShellSyntax:
    """Look up the syntax table entry for a shell."""
    if not isinstance(shell, ShellType):
        shell = resolve_shell_type(shell)
    return SHELLS[shell]
