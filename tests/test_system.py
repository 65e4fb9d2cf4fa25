"""Tests for environment checks."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

from tmux_pilot.utils.system import check_cli, check_tmux_server


class TestCheckTmuxServer:
    def test_not_installed(self):
        with patch("tmux_pilot.utils.system.shutil.which", return_value=None):
            assert check_tmux_server() == (False, "tmux not found on PATH")

    def test_counts_sessions(self):
        done = MagicMock(returncode=0, stdout="main: 1 windows\nwork: 2 windows\n", stderr="")
        with patch("tmux_pilot.utils.system.shutil.which", return_value="/usr/bin/tmux"), patch(
            "tmux_pilot.utils.system.subprocess.run", return_value=done
        ) as mock_run:
            assert check_tmux_server() == (True, "2 session(s)")
        assert mock_run.call_args.kwargs["timeout"] == 10

    def test_no_server(self):
        done = MagicMock(returncode=1, stdout="", stderr="no server running on /tmp/tmux-1000/default\n")
        with patch("tmux_pilot.utils.system.shutil.which", return_value="/usr/bin/tmux"), patch(
            "tmux_pilot.utils.system.subprocess.run", return_value=done
        ):
            assert check_tmux_server() == (False, "no server running on /tmp/tmux-1000/default")

    def test_hung_server_times_out(self):
        with patch("tmux_pilot.utils.system.shutil.which", return_value="/usr/bin/tmux"), patch(
            "tmux_pilot.utils.system.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["tmux", "list-sessions"], 10),
        ):
            assert check_tmux_server() == (False, "tmux server did not respond")


class TestCheckCli:
    def test_version_string(self):
        done = MagicMock(returncode=0, stdout="tmux 3.4\n", stderr="")
        with patch("tmux_pilot.utils.system.shutil.which", return_value="/usr/bin/tmux"), patch(
            "tmux_pilot.utils.system.subprocess.run", return_value=done
        ):
            assert check_cli("tmux", ["-V"]) == (True, "tmux 3.4")
