"""Changelist and hunk assignment endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import APIRouter

from gitpanel.api.errors import raise_domain_error
from gitpanel.api.schemas import (
    AssignHunksRequest,
    CommitCheckRequest,
    CommitCheckResponse,
    CommitPreviewRequest,
    CreateChangelistRequest,
    InvalidHunksRequest,
    OkResponse,
    PathsRequest,
    RenameChangelistRequest,
    UnassignHunksRequest,
)
from gitpanel.changelists import AssignmentTracker
from gitpanel.errors import GitpanelError
from gitpanel.models import (
    Changelist,
    ChangelistState,
    CommitPreview,
    HunkAssignment,
    HunkAssignmentSet,
)
from gitpanel.preview import build_commit_preview, check_committable
from gitpanel.source import GitDiffSource
from gitpanel.store import store

router = APIRouter(prefix="/repos/{repo_id}", tags=["changelists"])
logger = structlog.get_logger(__name__)


@contextmanager
def _tracker(repo_id: str, *, save: bool = True) -> Iterator[AssignmentTracker]:
    """Load the repo's tracker, save it afterwards and map domain errors."""
    structlog.contextvars.bind_contextvars(repo_id=repo_id)
    try:
        tracker = store.tracker(repo_id)
        yield tracker
        if save:
            store.commit(repo_id, tracker)
    except GitpanelError as exc:
        logger.info("Changelist request rejected", error=str(exc), code=exc.code)
        raise_domain_error(exc)
    finally:
        structlog.contextvars.unbind_contextvars("repo_id")


@router.get("/changelists", response_model=ChangelistState)
async def get_changelists(repo_id: str) -> ChangelistState:
    """Return the full changelist state of a repository."""
    with _tracker(repo_id, save=False) as tracker:
        return tracker.state


@router.post("/changelists", response_model=Changelist, status_code=201)
async def create_changelist(repo_id: str, payload: CreateChangelistRequest) -> Changelist:
    with _tracker(repo_id) as tracker:
        return tracker.create(payload.name)


@router.patch("/changelists/{changelist_id}", response_model=OkResponse)
async def rename_changelist(
    repo_id: str, changelist_id: str, payload: RenameChangelistRequest
) -> OkResponse:
    with _tracker(repo_id) as tracker:
        tracker.rename(changelist_id, payload.name)
    return OkResponse()


@router.delete("/changelists/{changelist_id}", response_model=OkResponse)
async def delete_changelist(repo_id: str, changelist_id: str) -> OkResponse:
    """Delete a changelist and every assignment pointing at it."""
    with _tracker(repo_id) as tracker:
        tracker.delete(changelist_id)
    return OkResponse()


@router.post("/changelists/{changelist_id}/activate", response_model=OkResponse)
async def activate_changelist(repo_id: str, changelist_id: str) -> OkResponse:
    with _tracker(repo_id) as tracker:
        tracker.set_active(changelist_id)
    return OkResponse()


@router.post("/changelists/{changelist_id}/files", response_model=OkResponse)
async def assign_files(repo_id: str, changelist_id: str, payload: PathsRequest) -> OkResponse:
    """Assign whole files to a changelist."""
    with _tracker(repo_id) as tracker:
        tracker.assign_files(changelist_id, payload.paths)
    return OkResponse()


@router.post("/files/unassign", response_model=OkResponse)
async def unassign_files(repo_id: str, payload: PathsRequest) -> OkResponse:
    with _tracker(repo_id) as tracker:
        tracker.unassign_files(payload.paths)
    return OkResponse()


@router.post("/files/clear", response_model=OkResponse)
async def clear_assignments(repo_id: str, payload: PathsRequest) -> OkResponse:
    """Forget file and hunk assignments, e.g. after the files were committed."""
    if not payload.paths:
        return OkResponse()
    with _tracker(repo_id) as tracker:
        tracker.clear_assignments(payload.paths)
    return OkResponse()


@router.post("/changelists/{changelist_id}/hunks", response_model=HunkAssignmentSet)
async def assign_hunks(
    repo_id: str, changelist_id: str, payload: AssignHunksRequest
) -> HunkAssignmentSet:
    """Assign selected hunks of one file, replacing its previous hunk assignment."""
    with _tracker(repo_id) as tracker:
        entry = tracker.assign_hunks(payload.path, changelist_id, payload.hunks)
    logger.info(
        "Assigned hunks",
        repo_id=repo_id,
        changelist_id=changelist_id,
        path=payload.path,
        count=len(entry.hunks),
    )
    return entry


@router.post("/hunks/unassign", response_model=OkResponse)
async def unassign_hunks(repo_id: str, payload: UnassignHunksRequest) -> OkResponse:
    with _tracker(repo_id) as tracker:
        tracker.clear_hunks(payload.path, payload.hunk_ids)
    return OkResponse()


@router.post("/hunks/invalid", response_model=list[HunkAssignment])
async def invalid_hunks(repo_id: str, payload: InvalidHunksRequest) -> list[HunkAssignment]:
    """List hunk assignments of a file that no longer match its live hunks."""
    with _tracker(repo_id, save=False) as tracker:
        return tracker.invalid_hunks_for(payload.path, payload.hunks, payload.changelist_id)


@router.post("/changelists/{changelist_id}/preview", response_model=CommitPreview)
async def commit_preview(
    repo_id: str, changelist_id: str, payload: CommitPreviewRequest
) -> CommitPreview:
    """Preview a commit of the changelist, re-validating its hunk assignments."""
    source = GitDiffSource(payload.worktree)
    with _tracker(repo_id) as tracker:
        return build_commit_preview(tracker, changelist_id, payload.files, source)


@router.post("/changelists/{changelist_id}/commit-check", response_model=CommitCheckResponse)
async def commit_check(
    repo_id: str, changelist_id: str, payload: CommitCheckRequest
) -> CommitCheckResponse:
    """Confirm the changelist can be committed; 409 when a hunk assignment is stale."""
    source = GitDiffSource(payload.worktree)
    with _tracker(repo_id, save=False) as tracker:
        files = check_committable(tracker, changelist_id, source)
    return CommitCheckResponse(changelist_id=changelist_id, files=files)
