"""Commit preview for a changelist: included files, stale hunks, warnings."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from gitpanel.changelists import AssignmentTracker
from gitpanel.errors import ChangelistError
from gitpanel.models import (
    CommitPreview,
    DiffKind,
    Hunk,
    HunkAssignment,
    StatusCounts,
    StatusFile,
    StatusKind,
)
from gitpanel.source import DiffSource

logger = structlog.get_logger(__name__)

STALE_HUNKS_WARNING = "Some hunks no longer match the file. Reselect required."
MIXED_KIND_WARNING = (
    "Unstaged hunks cannot be committed while staged changes exist in the same file."
)
MIXED_FILES_WARNING = (
    "Some files have both staged and unstaged changes; "
    "the commit will use the working tree version."
)


def _count(files: list[StatusFile]) -> tuple[StatusCounts, bool]:
    stats = StatusCounts()
    has_mixed = False
    for file in files:
        if file.status == StatusKind.STAGED:
            stats.staged += 1
        elif file.status == StatusKind.UNSTAGED:
            stats.unstaged += 1
        elif file.status == StatusKind.BOTH:
            stats.staged += 1
            stats.unstaged += 1
            has_mixed = True
        elif file.status == StatusKind.UNTRACKED:
            stats.untracked += 1
        elif file.status == StatusKind.CONFLICTED:
            stats.conflicted += 1
    return stats, has_mixed


def fetch_live_hunks(
    tracker: AssignmentTracker,
    paths: Iterable[str],
    diff_source: DiffSource,
) -> dict[str, list[Hunk]]:
    """Refetch the current hunks of *paths* for every kind their assignments use."""
    live: dict[str, list[Hunk]] = {}
    for path in paths:
        entry = tracker.state.hunk_assignments.get(path)
        if entry is None:
            continue
        kinds = sorted({hunk.kind for hunk in entry.hunks}, key=lambda item: item.value)
        live[path] = [
            hunk for kind in kinds for hunk in diff_source.diff_for_path(path, kind).hunks
        ]
    return live


def check_committable(
    tracker: AssignmentTracker,
    changelist_id: str,
    diff_source: DiffSource,
) -> list[str]:
    """Return the sorted files a commit of *changelist_id* would touch.

    Raises:
        InvalidHunksError: A hunk assignment went stale since it was made.
    """
    tracker.require(changelist_id)
    live = fetch_live_hunks(tracker, tracker.hunk_files(changelist_id), diff_source)
    return sorted(tracker.ensure_committable(changelist_id, live))


def build_commit_preview(
    tracker: AssignmentTracker,
    changelist_id: str,
    status_files: list[StatusFile],
    diff_source: DiffSource,
) -> CommitPreview:
    """Describe what committing *changelist_id* would include.

    Hunk assignments are re-validated against freshly fetched hunks. The
    preview is ``blocked`` whenever any assignment went stale.

    Args:
        tracker: Changelist state of the repository.
        changelist_id: Changelist about to be committed.
        status_files: Current working tree status; annotated in place.
        diff_source: Backend used to refetch hunks of partially assigned files.

    Raises:
        ChangelistError: Unknown or empty changelist, or conflicted files.
    """
    tracker.require(changelist_id)
    tracker.apply_to_status(status_files)

    files = [file for file in status_files if file.changelist_id == changelist_id]
    hunk_files = tracker.hunk_files(changelist_id)
    if not files and not hunk_files:
        raise ChangelistError("Changelist has no files.")
    if any(file.status == StatusKind.CONFLICTED for file in files):
        raise ChangelistError("Changelist contains conflicted files.")

    stats, has_mixed = _count(files)
    file_status = {file.path: file.status for file in files}
    warnings: list[str] = []
    invalid_hunks: list[HunkAssignment] = []

    checked: list[str] = []
    for path in hunk_files:
        entry = tracker.state.hunk_assignments[path]
        has_staged = file_status.get(path) in (StatusKind.STAGED, StatusKind.BOTH)
        if has_staged and any(hunk.kind == DiffKind.UNSTAGED for hunk in entry.hunks):
            invalid_hunks.extend(entry.hunks)
            if MIXED_KIND_WARNING not in warnings:
                warnings.append(MIXED_KIND_WARNING)
            continue
        checked.append(path)

    live_by_path = fetch_live_hunks(tracker, checked, diff_source)
    for path in checked:
        invalid_for_file = tracker.invalid_hunks_for(path, live_by_path[path], changelist_id)
        if invalid_for_file:
            invalid_hunks.extend(invalid_for_file)
            if STALE_HUNKS_WARNING not in warnings:
                warnings.append(STALE_HUNKS_WARNING)

    if has_mixed:
        warnings.append(MIXED_FILES_WARNING)

    preview = CommitPreview(
        changelist_id=changelist_id,
        files=files,
        stats=stats,
        warnings=warnings,
        hunk_files=hunk_files,
        invalid_hunks=invalid_hunks,
    )
    logger.info(
        "Built commit preview",
        changelist_id=changelist_id,
        files=len(files),
        hunk_files=len(hunk_files),
        invalid_hunks=len(invalid_hunks),
    )
    return preview
