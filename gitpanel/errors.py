"""Domain exceptions raised by gitpanel."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitpanel.models import HunkAssignment


class GitpanelError(Exception):
    """Base class for all gitpanel errors."""

    code = "INTERNAL_ERROR"


class PatchParseError(GitpanelError):
    """A patch produced no renderable output."""

    code = "DIFF_PARSE_FAILED"


class ChangelistError(GitpanelError):
    """A changelist operation was rejected."""

    code = "CHANGELIST_ERROR"


class UnknownChangelistError(ChangelistError):
    """No changelist with the requested id exists."""

    code = "NOT_FOUND"


class InvalidHunksError(ChangelistError):
    """Hunk assignments went stale and must be reselected before committing."""

    code = "INVALID_HUNKS"

    def __init__(self, message: str, invalid_hunks: list[HunkAssignment]) -> None:
        super().__init__(message)
        self.invalid_hunks = invalid_hunks


class GitError(GitpanelError):
    """The git executable is missing or a git command failed."""

    code = "GIT_ERROR"
