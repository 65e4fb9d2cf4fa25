"""Marker protocol: wrap a command with delimiters and find them again in pane output.

A wrapped command prints a start marker, runs the caller's command, then prints
an end marker carrying the exit status::

    echo '<<START:'ID'>>'; <command>; echo '<<END:'ID':'$?'>>'

The echo arguments are split into adjacent quoted fragments. The shell joins
them back into ``<<START:ID>>`` when it prints, but the line the terminal echoes
while the user "types" it never contains the contiguous marker, so only real
output can match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from tmux_pilot.services.shell import ShellSyntax, ShellType, get_shell

START_TAG = "<<START:"
END_TAG = "<<END:"
CLOSE_TAG = ">>"


class ParseState(str, Enum):
    FOUND = "found"
    RUNNING = "running"
    MISSING = "missing"


@dataclass
class ParseResult:
    state: ParseState
    output: str | None = None
    exit_code: int | None = None
    truncated: bool = False

    @property
    def found(self) -> bool:
        return self.state is ParseState.FOUND


def start_marker(command_id: str) -> str:
    return f"{START_TAG}{command_id}{CLOSE_TAG}"


def end_marker(command_id: str, exit_code: int | str) -> str:
    return f"{END_TAG}{command_id}:{exit_code}{CLOSE_TAG}"


def _end_pattern(command_id: str) -> re.Pattern[str]:
    return re.compile(re.escape(f"{END_TAG}{command_id}:") + r"(-?\d+)" + re.escape(CLOSE_TAG))


def build_wrapped(command_id: str, command_text: str, shell: str | ShellType | ShellSyntax) -> str:
    """Return the text to type into a pane so the command's output can be located later.

    The command text is passed through untouched.
    """
    syntax = shell if isinstance(shell, ShellSyntax) else get_shell(shell)
    statements = [
        f"echo '{START_TAG}'{command_id}'{CLOSE_TAG}'",
        command_text,
        f"echo '{END_TAG}'{command_id}':'{syntax.exit_status_var}'{CLOSE_TAG}'",
    ]
    return syntax.statement_separator.join(statements) + "\n"


def parse(captured: str, command_id: str) -> ParseResult:
    """Locate this command's markers in captured pane text.

    - start and end marker: FOUND, output is the text between them
    - start marker only: RUNNING
    - end marker only: FOUND with truncated output (start scrolled out of the window)
    - neither: MISSING
    """
    start = start_marker(command_id)
    end_re = _end_pattern(command_id)

    start_idx = captured.rfind(start)
    if start_idx != -1:
        body_start = start_idx + len(start)
        match = end_re.search(captured, body_start)
        if match is None:
            return ParseResult(ParseState.RUNNING)
        return ParseResult(
            ParseState.FOUND,
            output=captured[body_start : match.start()].strip(),
            exit_code=int(match.group(1)),
        )

    match = end_re.search(captured)
    if match is not None:
        return ParseResult(
            ParseState.FOUND,
            output=captured[: match.start()].strip(),
            exit_code=int(match.group(1)),
            truncated=True,
        )

    return ParseResult(ParseState.MISSING)
