"""Pydantic request/response models for API endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gitpanel.models import DiffKind, Hunk, StatusFile


# --- Request Models ---


class CanonicalizeRequest(BaseModel):
    """Request body for building a renderable diff."""

    path: str = Field(..., min_length=1)
    patch_text: str = ""
    fallback_patch_text: str | None = None
    hunks: list[Hunk] = Field(default_factory=list)
    client_id: str = "default"


class FingerprintRequest(BaseModel):
    header: str
    content: str


class ParseHunksRequest(BaseModel):
    """Request body for splitting raw diff text into hunks."""

    path: str = Field(..., min_length=1)
    text: str
    kind: DiffKind = DiffKind.UNSTAGED


class CreateChangelistRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)


class RenameChangelistRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)


class PathsRequest(BaseModel):
    paths: list[str] = Field(default_factory=list)


class AssignHunksRequest(BaseModel):
    """Request body for assigning live hunks of one file to a changelist."""

    path: str = Field(..., min_length=1)
    hunks: list[Hunk]


class UnassignHunksRequest(BaseModel):
    path: str = Field(..., min_length=1)
    hunk_ids: list[str]


class InvalidHunksRequest(BaseModel):
    """Request body for checking stored hunk assignments against live hunks."""

    path: str = Field(..., min_length=1)
    hunks: list[Hunk]
    changelist_id: str | None = None


class CommitPreviewRequest(BaseModel):
    """Request body for a commit preview.

    ``worktree`` is the directory git diffs are taken from; ``files`` is the
    current status of the working tree.
    """

    worktree: str
    files: list[StatusFile]


class CommitCheckRequest(BaseModel):
    """Request body for the pre-commit check of a changelist."""

    worktree: str


# --- Response Models ---


class OkResponse(BaseModel):
    """Simple success response."""

    ok: bool = True


class CommitCheckResponse(BaseModel):
    """Files a commit of the changelist would touch."""

    changelist_id: str
    files: list[str]


class FingerprintResponse(BaseModel):
    content_hash: str


class HealthResponse(BaseModel):
    """Health check response."""

    ok: bool
    version: str
