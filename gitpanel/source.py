"""Diff sources: where raw diff text and hunk lists come from."""

from __future__ import annotations

import shutil
from pathlib import Path
from subprocess import CalledProcessError, run
from typing import Protocol

import structlog

from gitpanel.errors import GitError
from gitpanel.models import DiffKind, DiffPayload
from gitpanel.patch import filter_hunks_for_path, normalize_path, parse_hunks
from gitpanel.settings import settings

logger = structlog.get_logger(__name__)


class DiffSource(Protocol):
    """Backend returning the diff of a single file."""

    def diff_for_path(self, path: str, kind: DiffKind) -> DiffPayload: ...


def resolve_git_dir(worktree: str | Path) -> Path:
    """Return the git directory of *worktree*.

    Follows ``gitdir:`` pointer files used by linked worktrees and
    submodules; falls back to ``<worktree>/.git``.
    """
    dot_git = Path(worktree) / ".git"
    if dot_git.is_file():
        text = dot_git.read_text(encoding="utf-8", errors="replace").strip()
        if text.startswith("gitdir:"):
            target = Path(text[len("gitdir:"):].strip())
            if not target.is_absolute():
                target = (Path(worktree) / target).resolve()
            return target
    return dot_git


def _require_git_binary() -> str:
    git = shutil.which(settings.git_binary())
    if not git:
        raise GitError("Git executable missing")
    return git


class GitDiffSource:
    """Runs ``git diff`` in a working tree and parses its hunks.

    *repo_path* must be the root of a working tree, the directory holding
    ``.git``; linked worktrees and submodules are resolved through
    :func:`resolve_git_dir`.
    """

    def __init__(self, repo_path: str | Path) -> None:
        self.repo_path = Path(repo_path)

    def _run(self, args: list[str]) -> str:
        if not self.repo_path.is_dir():
            raise GitError(f"Directory not found: {self.repo_path}")
        if not resolve_git_dir(self.repo_path).exists():
            raise GitError(f"Not a git repository: {self.repo_path}")
        git = _require_git_binary()
        try:
            result = run(
                [git, "-C", str(self.repo_path), *args],
                capture_output=True,
                text=True,
                check=True,
            )
        except CalledProcessError as exc:
            message = (exc.stderr or str(exc)).strip()
            raise GitError(f"git {args[0]} failed: {message}") from exc
        return result.stdout

    def diff_text(self, path: str, kind: DiffKind) -> str:
        args = ["diff", "--no-color", "--unified=3"]
        if kind == DiffKind.STAGED:
            args.append("--cached")
        args.extend(["--", normalize_path(path)])
        return self._run(args)

    def diff_for_path(self, path: str, kind: DiffKind) -> DiffPayload:
        """Return raw text and hunks for *path*.

        Hunks are filtered to the requested path; when git reported the file
        under another name, all parsed hunks are returned instead.
        """
        text = self.diff_text(path, kind)
        all_hunks = parse_hunks(text, path, kind)
        hunks = filter_hunks_for_path(all_hunks, path) or all_hunks
        logger.debug(
            "Fetched diff",
            path=path,
            kind=kind.value,
            hunks=len(hunks),
            bytes=len(text),
        )
        return DiffPayload(text=text, hunks=hunks)
