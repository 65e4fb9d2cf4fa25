"""Tests for git worktree helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from tmux_pilot.errors import GitError
from tmux_pilot.services import git

PORCELAIN = """worktree /repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /repo/../feature
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feature
locked (in use by agent)

worktree /tmp/detached
HEAD 3333333333333333333333333333333333333333
detached
prunable gitdir file points to non-existent location
"""


def fake_git(responses: dict[str, str]):
    """Build a run_git replacement answering by the first git subcommand words."""
    calls: list[list[str]] = []

    async def _run(repo_path: str, args: list[str]) -> str:
        calls.append(args)
        key = " ".join(args[:2])
        if key not in responses:
            return ""
        value = responses[key]
        if isinstance(value, Exception):
            raise value
        return value

    return _run, calls


class TestParseWorktreeList:
    def test_entries(self):
        entries = git.parse_worktree_list(PORCELAIN, "/repo")
        assert [e.path for e in entries] == ["/repo", "/feature", "/tmp/detached"]
        assert entries[0].branch == "main"
        assert entries[1].locked == "in use by agent"
        assert entries[2].detached is True
        assert entries[2].branch is None
        assert entries[2].prunable == "gitdir file points to non-existent location"

    def test_relative_paths_resolve_against_root(self):
        entries = git.parse_worktree_list("worktree sub/dir\nbare\n", "/repo")
        assert entries[0].path == "/repo/sub/dir"
        assert entries[0].bare is True

    def test_empty(self):
        assert git.parse_worktree_list("", "/repo") == []


class TestEnsureWorktree:
    @pytest.mark.asyncio
    async def test_reuses_existing_path(self):
        run, calls = fake_git({"rev-parse --show-toplevel": "/repo\n", "worktree list": PORCELAIN})
        with patch.object(git, "run_git", run):
            result = await git.ensure_worktree("/repo", "feature")
        assert result.created is False
        assert result.worktree_path == "/feature"
        assert result.existing_worktree.locked == "in use by agent"
        assert not any(args[:2] == ["worktree", "add"] for args in calls)

    @pytest.mark.asyncio
    async def test_branch_checked_out_elsewhere(self):
        run, _ = fake_git({"rev-parse --show-toplevel": "/repo\n", "worktree list": PORCELAIN})
        with patch.object(git, "run_git", run):
            with pytest.raises(GitError, match="already checked out at /repo"):
                await git.ensure_worktree("/repo", "main", worktree_path="wt/main")

    @pytest.mark.asyncio
    async def test_creates_new_branch_from_base(self):
        run, calls = fake_git({"rev-parse --show-toplevel": "/repo\n", "worktree list": PORCELAIN})
        with patch.object(git, "run_git", run):
            result = await git.ensure_worktree(
                "/repo", "topic", worktree_path=".worktrees/topic", base_ref="origin/main", create_branch=True
            )
        assert result.created is True
        assert result.worktree_path == "/repo/.worktrees/topic"
        assert calls[-1] == ["worktree", "add", "-b", "topic", "/repo/.worktrees/topic", "origin/main"]

    @pytest.mark.asyncio
    async def test_existing_branch_with_force(self):
        run, calls = fake_git({"rev-parse --show-toplevel": "/repo\n", "worktree list": PORCELAIN})
        with patch.object(git, "run_git", run):
            await git.ensure_worktree("/repo", "main", worktree_path="/tmp/main2", force=True)
        assert calls[-1] == ["worktree", "add", "--force", "/tmp/main2", "main"]

    @pytest.mark.asyncio
    async def test_base_ref_requires_create_branch(self):
        with pytest.raises(GitError, match="baseRef"):
            await git.ensure_worktree("/repo", "topic", base_ref="main")

    @pytest.mark.asyncio
    async def test_blank_branch(self):
        with pytest.raises(GitError, match="branchName is required"):
            await git.ensure_worktree("/repo", "  ")

    @pytest.mark.asyncio
    async def test_not_a_repository(self):
        run, _ = fake_git({"rev-parse --show-toplevel": GitError("fatal: not a git repository")})
        with patch.object(git, "run_git", run):
            with pytest.raises(GitError, match="not a git repository"):
                await git.list_worktrees("/nowhere")


class TestRemoveWorktree:
    @pytest.mark.asyncio
    async def test_force_remove(self):
        run, calls = fake_git({"rev-parse --show-toplevel": "/repo\n"})
        with patch.object(git, "run_git", run):
            await git.remove_worktree("/repo", "wt/old", force=True)
        assert calls[-1] == ["worktree", "remove", "--force", "/repo/wt/old"]


class TestRunGit:
    @pytest.mark.asyncio
    async def test_failure_carries_stderr(self):
        proc = AsyncMock()
        proc.communicate = AsyncMock(return_value=(b"", b"fatal: bad revision\n"))
        proc.returncode = 128
        with patch("tmux_pilot.services.git.asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            with pytest.raises(GitError, match="git log failed: fatal: bad revision"):
                await git.run_git("/repo", ["log"])
        assert mock_exec.call_args.args[:4] == ("git", "-C", "/repo", "log")
