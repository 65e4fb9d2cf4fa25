"""System utility checks."""

from __future__ import annotations

import shutil
import subprocess


def check_cli(name: str, version_args: list[str]) -> tuple[bool, str]:
    """Check that an executable is on PATH and return its version string."""
    path = shutil.which(name)
    if not path:
        return False, f"{name} not found on PATH"
    try:
        result = subprocess.run(
            [name, *version_args],
            capture_output=True,
            text=True,
            timeout=10,
        )
        version = result.stdout.strip() or result.stderr.strip()
        return True, version
    except subprocess.TimeoutExpired:
        return False, f"{name} version check timed out"
    except OSError as e:
        return False, f"Error checking {name}: {e}"


def check_tmux_cli() -> tuple[bool, str]:
    return check_cli("tmux", ["-V"])


def check_git_cli() -> tuple[bool, str]:
    return check_cli("git", ["--version"])


def check_tmux_server() -> tuple[bool, str]:
    """Check whether a tmux server is running and reachable."""
    if not shutil.which("tmux"):
        return False, "tmux not found on PATH"
    try:
        result = subprocess.run(["tmux", "list-sessions"], capture_output=True, text=True, timeout=10)
    except subprocess.TimeoutExpired:
        return False, "tmux server did not respond"
    if result.returncode != 0:
        return False, result.stderr.strip() or "tmux server not running"
    count = len([line for line in result.stdout.splitlines() if line.strip()])
    return True, f"{count} session(s)"
