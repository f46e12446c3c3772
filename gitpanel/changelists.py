"""Changelist bookkeeping and hunk assignment tracking.

All mutations of a :class:`~gitpanel.models.ChangelistState` go through an
:class:`AssignmentTracker`. The tracker is owned by a single caller and is
never touched from the diff worker processes, so it needs no locking.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping

import structlog

from gitpanel.errors import ChangelistError, InvalidHunksError, UnknownChangelistError
from gitpanel.fingerprint import hunk_fingerprint
from gitpanel.models import (
    Changelist,
    ChangelistState,
    DiffKind,
    Hunk,
    HunkAssignment,
    HunkAssignmentSet,
    StatusFile,
)

logger = structlog.get_logger(__name__)

DEFAULT_ID = "default"
DEFAULT_NAME = "Default"


def now_ms() -> int:
    """Milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def default_state() -> ChangelistState:
    """Fresh state holding only the default changelist."""
    return ChangelistState(
        lists=[Changelist(id=DEFAULT_ID, name=DEFAULT_NAME, created_at=now_ms())],
        active_id=DEFAULT_ID,
    )


class AssignmentTracker:
    """Maps files and hunks to changelists and detects stale hunk assignments."""

    def __init__(self, state: ChangelistState | None = None) -> None:
        self.state = state if state is not None else default_state()

    # ------------------------------------------------------------------
    # Changelists
    # ------------------------------------------------------------------

    def require(self, changelist_id: str) -> Changelist:
        """Return the changelist with *changelist_id* or raise ChangelistError."""
        for item in self.state.lists:
            if item.id == changelist_id:
                return item
        raise UnknownChangelistError("unknown changelist id")

    def names(self) -> dict[str, str]:
        """Map changelist ids to display names."""
        return {item.id: item.name for item in self.state.lists}

    def normalize(self) -> bool:
        """Restore the default changelist and a valid active id.

        Returns True when the state had to be changed.
        """
        changed = False
        if not any(item.id == DEFAULT_ID for item in self.state.lists):
            self.state.lists.insert(
                0, Changelist(id=DEFAULT_ID, name=DEFAULT_NAME, created_at=now_ms())
            )
            changed = True
        if not any(item.id == self.state.active_id for item in self.state.lists):
            self.state.active_id = DEFAULT_ID
            changed = True
        return changed

    def create(self, name: str) -> Changelist:
        """Create a changelist named *name* and return it."""
        created_at = now_ms()
        changelist_id = f"cl-{created_at}"
        if any(item.id == changelist_id for item in self.state.lists):
            changelist_id = f"cl-{created_at}-{len(self.state.lists)}"
        changelist = Changelist(id=changelist_id, name=name, created_at=created_at)
        self.state.lists.append(changelist)
        logger.info("Created changelist", changelist_id=changelist_id, name=name)
        return changelist

    def rename(self, changelist_id: str, name: str) -> None:
        self.require(changelist_id).name = name

    def delete(self, changelist_id: str) -> None:
        """Delete a changelist together with every assignment pointing at it."""
        if changelist_id == DEFAULT_ID:
            raise ChangelistError("cannot delete default changelist")
        self.state.lists = [item for item in self.state.lists if item.id != changelist_id]
        self.state.assignments = {
            path: value
            for path, value in self.state.assignments.items()
            if value != changelist_id
        }
        self.state.hunk_assignments = {
            path: entry
            for path, entry in self.state.hunk_assignments.items()
            if entry.changelist_id != changelist_id
        }
        if self.state.active_id == changelist_id:
            self.state.active_id = DEFAULT_ID
        logger.info("Deleted changelist", changelist_id=changelist_id)

    def set_active(self, changelist_id: str) -> None:
        self.require(changelist_id)
        self.state.active_id = changelist_id

    # ------------------------------------------------------------------
    # Whole-file assignments
    # ------------------------------------------------------------------

    def assign_files(self, changelist_id: str, paths: Iterable[str]) -> None:
        """Assign whole files; any hunk assignment for those files is dropped."""
        self.require(changelist_id)
        for path in paths:
            self.state.assignments[path] = changelist_id
            self.state.hunk_assignments.pop(path, None)

    def unassign_files(self, paths: Iterable[str]) -> None:
        for path in paths:
            self.state.assignments.pop(path, None)

    def clear_assignments(self, paths: Iterable[str]) -> None:
        """Forget both file and hunk assignments for *paths*."""
        for path in paths:
            self.state.assignments.pop(path, None)
            self.state.hunk_assignments.pop(path, None)

    # ------------------------------------------------------------------
    # Hunk assignments
    # ------------------------------------------------------------------

    def assign_hunks(self, path: str, changelist_id: str, hunks: Iterable[Hunk]) -> HunkAssignmentSet:
        """Snapshot *hunks* into the hunk assignment set of *path*.

        The previous set for the path is replaced, whichever changelist it
        belonged to, and a whole-file assignment of the path is dropped.

        Args:
            path: Repository-relative file path.
            changelist_id: Target changelist.
            hunks: Live hunks selected by the user.
        """
        snapshots = [HunkAssignment.from_hunk(hunk, hunk_fingerprint(hunk)) for hunk in hunks]
        if not snapshots:
            raise ChangelistError("no hunks provided")
        self.require(changelist_id)

        previous = self.state.hunk_assignments.get(path)
        if previous is not None and previous.changelist_id != changelist_id:
            logger.info(
                "Replacing hunk assignment from another changelist",
                path=path,
                previous_changelist_id=previous.changelist_id,
                changelist_id=changelist_id,
            )
        self.state.assignments.pop(path, None)
        entry = HunkAssignmentSet(changelist_id=changelist_id, hunks=snapshots)
        self.state.hunk_assignments[path] = entry
        return entry

    def clear_hunks(self, path: str, hunk_ids: Iterable[str]) -> None:
        """Remove the given hunk ids from the assignment set of *path*."""
        entry = self.state.hunk_assignments.get(path)
        if entry is None:
            return
        drop = set(hunk_ids)
        entry.hunks = [hunk for hunk in entry.hunks if hunk.id not in drop]
        if not entry.hunks:
            del self.state.hunk_assignments[path]

    def invalid_hunks_for(
        self,
        path: str,
        live_hunks: Iterable[Hunk],
        changelist_id: str | None = None,
        kind: DiffKind | None = None,
    ) -> list[HunkAssignment]:
        """Return stored assignments of *path* that no longer match live hunks.

        An assignment is invalid when its hunk id is gone or the live hunk's
        fingerprint differs from the one captured at assignment time. When
        *changelist_id* is given and the stored set belongs to another
        changelist, nothing is reported. *kind* restricts the check to
        assignments taken from that side of the index.
        """
        entry = self.state.hunk_assignments.get(path)
        if entry is None:
            return []
        if changelist_id is not None and entry.changelist_id != changelist_id:
            return []
        # Hunk ids are only unique within one file and kind.
        live = {(hunk.kind, hunk.id): hunk_fingerprint(hunk) for hunk in live_hunks}
        return [
            hunk
            for hunk in entry.hunks
            if (kind is None or hunk.kind == kind)
            and live.get((hunk.kind, hunk.id)) != hunk.content_hash
        ]

    def changelist_of(self, path: str) -> tuple[str, bool]:
        """Return ``(changelist_id, partial)`` for *path*."""
        names = self.names()
        assigned = self.state.assignments.get(path)
        if assigned is not None and assigned in names:
            return assigned, False
        entry = self.state.hunk_assignments.get(path)
        if entry is not None and entry.changelist_id in names:
            return entry.changelist_id, True
        return DEFAULT_ID, False

    def hunk_files(self, changelist_id: str) -> list[str]:
        """Paths carrying a hunk assignment to *changelist_id*."""
        return [
            path
            for path, entry in self.state.hunk_assignments.items()
            if entry.changelist_id == changelist_id
        ]

    def committable_files(
        self,
        changelist_id: str,
        live_hunks_by_path: Mapping[str, Iterable[Hunk]],
    ) -> set[str]:
        """Files wholly assigned to the changelist plus files with a valid hunk in it."""
        files = {path for path, value in self.state.assignments.items() if value == changelist_id}
        for path in self.hunk_files(changelist_id):
            live = list(live_hunks_by_path.get(path, ()))
            invalid = {hunk.id for hunk in self.invalid_hunks_for(path, live, changelist_id)}
            entry = self.state.hunk_assignments[path]
            if any(hunk.id not in invalid for hunk in entry.hunks):
                files.add(path)
        return files

    def ensure_committable(
        self,
        changelist_id: str,
        live_hunks_by_path: Mapping[str, Iterable[Hunk]],
    ) -> set[str]:
        """Return the committable files, refusing when any hunk assignment is stale.

        Raises:
            InvalidHunksError: A hunk assigned to the changelist changed since
                it was assigned.
        """
        self.require(changelist_id)
        invalid: list[HunkAssignment] = []
        for path in self.hunk_files(changelist_id):
            live = list(live_hunks_by_path.get(path, ()))
            invalid.extend(self.invalid_hunks_for(path, live, changelist_id))
        if invalid:
            logger.warning(
                "Commit blocked by stale hunk assignments",
                changelist_id=changelist_id,
                invalid=len(invalid),
            )
            raise InvalidHunksError("Some hunks need reselect before committing.", invalid)
        return self.committable_files(changelist_id, live_hunks_by_path)

    # ------------------------------------------------------------------
    # Status annotation
    # ------------------------------------------------------------------

    def apply_to_status(self, files: list[StatusFile]) -> bool:
        """Annotate *files* with their changelist and follow renames.

        When a renamed file's old path carried a file or hunk assignment, the
        assignment moves to the new path. Returns True if the state changed.
        """
        changed = False
        names = self.names()
        for file in files:
            if file.path not in self.state.assignments and file.old_path:
                old_id = self.state.assignments.pop(file.old_path, None)
                if old_id is not None:
                    self.state.assignments[file.path] = old_id
                    changed = True
                else:
                    old_hunks = self.state.hunk_assignments.pop(file.old_path, None)
                    if old_hunks is not None:
                        self.state.hunk_assignments[file.path] = old_hunks
                        changed = True

            changelist_id, partial = self.changelist_of(file.path)
            file.changelist_id = changelist_id
            file.changelist_name = names.get(changelist_id, DEFAULT_NAME)
            file.changelist_partial = partial
        if changed:
            logger.debug("Carried changelist assignments across renames")
        return changed
