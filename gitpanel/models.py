"""Pydantic models for diffs, hunks, changelists and API payloads."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class DiffKind(str, Enum):
    """Which side of the index a diff was taken from."""
    STAGED = "staged"
    UNSTAGED = "unstaged"


class StatusKind(str, Enum):
    """Working tree status of a file as reported by the backend."""
    STAGED = "staged"
    UNSTAGED = "unstaged"
    BOTH = "both"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"


class Hunk(BaseModel):
    """One hunk of a single-file diff as returned by the diff source."""
    id: str
    path: str = ""
    kind: DiffKind = DiffKind.UNSTAGED
    header: str
    file_header: str = ""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str
    content_hash: str = ""


class HunkAssignment(BaseModel):
    """Snapshot of a hunk taken when it was assigned to a changelist."""

    model_config = ConfigDict(frozen=True)

    id: str
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content_hash: str
    kind: DiffKind

    @classmethod
    def from_hunk(cls, hunk: Hunk, content_hash: str) -> HunkAssignment:
        return cls(
            id=hunk.id,
            header=hunk.header,
            old_start=hunk.old_start,
            old_lines=hunk.old_lines,
            new_start=hunk.new_start,
            new_lines=hunk.new_lines,
            content_hash=content_hash,
            kind=hunk.kind,
        )


class HunkAssignmentSet(BaseModel):
    """Hunks of one file assigned to a single changelist."""
    changelist_id: str
    hunks: list[HunkAssignment] = Field(default_factory=list)

    @field_validator("hunks")
    @classmethod
    def _unique_ids(cls, hunks: list[HunkAssignment]) -> list[HunkAssignment]:
        # Ordered set keyed by hunk id; the last snapshot of an id wins.
        by_id: dict[str, HunkAssignment] = {}
        for hunk in hunks:
            by_id[hunk.id] = hunk
        return list(by_id.values())

    def hunk_ids(self) -> list[str]:
        return [hunk.id for hunk in self.hunks]


class Changelist(BaseModel):
    """A user-defined bucket used to group pending changes."""
    id: str
    name: str
    created_at: int  # epoch milliseconds


class ChangelistState(BaseModel):
    """Everything persisted about changelists for one repository."""
    lists: list[Changelist] = Field(default_factory=list)
    active_id: str = "default"
    assignments: dict[str, str] = Field(default_factory=dict)
    hunk_assignments: dict[str, HunkAssignmentSet] = Field(default_factory=dict)


class DiffPayload(BaseModel):
    """Raw diff text plus the structured hunk list for one file."""
    text: str = ""
    hunks: list[Hunk] = Field(default_factory=list)


class DiffContents(BaseModel):
    """Synthetic before/after buffers derived from hunk bodies."""
    old_content: str
    new_content: str


class RenderableDiff(BaseModel):
    """Canonical single-file patch ready for a diff renderer."""
    path: str
    patch: str
    old_content: str = ""
    new_content: str = ""
    hunk_count: int
    additions: int
    deletions: int


class StatusFile(BaseModel):
    """A changed file annotated with its changelist membership."""
    path: str
    status: StatusKind
    old_path: str | None = None
    changelist_id: str | None = None
    changelist_name: str | None = None
    changelist_partial: bool | None = None


class StatusCounts(BaseModel):
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    conflicted: int = 0


class CommitPreview(BaseModel):
    """What committing a changelist would include, and what blocks it."""
    changelist_id: str
    files: list[StatusFile]
    stats: StatusCounts
    warnings: list[str] = Field(default_factory=list)
    hunk_files: list[str] = Field(default_factory=list)
    invalid_hunks: list[HunkAssignment] = Field(default_factory=list)

    @computed_field
    @property
    def blocked(self) -> bool:
        return bool(self.invalid_hunks)


class ErrorDetail(BaseModel):
    """Structured error payload for API responses."""
    code: str
    message: str
    details: dict | None


class ErrorResponse(BaseModel):
    """Envelope for API error responses."""
    error: ErrorDetail
