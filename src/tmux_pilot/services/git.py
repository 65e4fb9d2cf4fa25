"""Git worktree management for agent panes."""

from __future__ import annotations

import asyncio
import logging
import os

from tmux_pilot.errors import GitError
from tmux_pilot.storage.models import EnsureWorktreeResult, WorktreeInfo

logger = logging.getLogger(__name__)


async def run_git(repo_path: str, args: list[str]) -> str:
    """Run ``git -C repo_path <args>`` and return stdout."""
    label = f"git {' '.join(args)}"
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            "-C",
            repo_path,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise GitError("git executable not found") from None
    stdout_bytes, stderr_bytes = await proc.communicate()
    if proc.returncode != 0:
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        raise GitError(f"{label} failed: {stderr or f'exit {proc.returncode}'}")
    return stdout_bytes.decode("utf-8", errors="replace")


def _resolve(root: str, path: str) -> str:
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(root, path))


async def resolve_repo_root(repo_path: str) -> str:
    stdout = await run_git(os.path.normpath(repo_path), ["rev-parse", "--show-toplevel"])
    return os.path.normpath(stdout.strip())


def _strip_parens(value: str) -> str:
    value = value.strip()
    if value.startswith("(") and value.endswith(")"):
        value = value[1:-1]
    return value


def parse_worktree_list(output: str, root: str) -> list[WorktreeInfo]:
    """Parse ``git worktree list --porcelain`` output."""
    worktrees: list[WorktreeInfo] = []
    current: WorktreeInfo | None = None

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            if current:
                worktrees.append(current)
                current = None
            continue

        if line.startswith("worktree "):
            if current:
                worktrees.append(current)
            current = WorktreeInfo(path=_resolve(root, line[len("worktree ") :].strip()))
            continue

        if current is None:
            continue

        if line.startswith("HEAD "):
            current.head = line[len("HEAD ") :].strip()
        elif line.startswith("branch "):
            current.branch = line[len("branch ") :].strip().removeprefix("refs/heads/")
        elif line == "bare":
            current.bare = True
        elif line == "detached":
            current.detached = True
        elif line.startswith("locked"):
            current.locked = _strip_parens(line[len("locked") :]) or "locked"
        elif line.startswith("prunable"):
            current.prunable = _strip_parens(line[len("prunable") :]) or "prunable"

    if current:
        worktrees.append(current)
    return worktrees


async def list_worktrees(repo_path: str) -> list[WorktreeInfo]:
    root = await resolve_repo_root(repo_path)
    stdout = await run_git(root, ["worktree", "list", "--porcelain"])
    return parse_worktree_list(stdout, root)


async def ensure_worktree(
    repo_path: str,
    branch_name: str,
    worktree_path: str | None = None,
    base_ref: str | None = None,
    create_branch: bool = False,
    force: bool = False,
) -> EnsureWorktreeResult:
    """Create a worktree for ``branch_name``, or reuse the one already at the target path.

    Without ``worktree_path`` the worktree goes next to the repository, in a
    directory named after the branch.
    """
    if not branch_name.strip():
        raise GitError("branchName is required")
    if base_ref and not create_branch:
        raise GitError("baseRef can only be used when createBranch is true")

    root = await resolve_repo_root(repo_path)
    target = _resolve(root, worktree_path) if worktree_path else _resolve(root, os.path.join("..", branch_name))

    worktrees = await list_worktrees(root)
    for entry in worktrees:
        if entry.path == target:
            logger.info("Reusing worktree at %s", target)
            return EnsureWorktreeResult(
                repo_path=root,
                worktree_path=target,
                branch=entry.branch or branch_name,
                created=False,
                existing_worktree=entry,
            )

    in_use = next((w for w in worktrees if w.branch == branch_name), None)
    if in_use is not None and not force:
        raise GitError(
            f"Branch {branch_name} is already checked out at {in_use.path}. "
            "Use force=true to reuse the branch or choose a different branch name."
        )

    args = ["worktree", "add"]
    if force:
        args.append("--force")
    if create_branch:
        args.extend(["-b", branch_name])
    args.append(target)
    if create_branch:
        if base_ref:
            args.append(base_ref)
    else:
        args.append(branch_name)

    await run_git(root, args)
    logger.info("Created worktree at %s (branch %s)", target, branch_name)
    return EnsureWorktreeResult(repo_path=root, worktree_path=target, branch=branch_name, created=True)


async def remove_worktree(repo_path: str, worktree_path: str, force: bool = False) -> None:
    root = await resolve_repo_root(repo_path)
    args = ["worktree", "remove"]
    if force:
        args.append("--force")
    args.append(_resolve(root, worktree_path))
    await run_git(root, args)
