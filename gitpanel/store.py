"""Durable storage of changelist state, one row per repository."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock

import structlog
from pydantic import ValidationError

from gitpanel.changelists import AssignmentTracker, default_state
from gitpanel.db import get_session as get_db_session
from gitpanel.db import init_db
from gitpanel.db.tables import ChangelistStateRow
from gitpanel.models import ChangelistState

logger = structlog.get_logger(__name__)


class ChangelistStore:
    """Loads and saves :class:`ChangelistState` with SQLModel persistence."""

    def __init__(self) -> None:
        self._db_lock = Lock()
        self._initialized = False

    def _ensure_db(self) -> None:
        if not self._initialized:
            init_db()
            self._initialized = True

    def _now(self) -> str:
        """Return an ISO8601 UTC timestamp."""
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    def load(self, repo_id: str) -> ChangelistState:
        """Return the stored state for *repo_id*.

        A missing or unreadable row is replaced by a fresh default state. A
        state that needed normalizing is written back.
        """
        self._ensure_db()
        with self._db_lock:
            with get_db_session() as db:
                row = db.get(ChangelistStateRow, repo_id)
                raw = row.state_json if row else None

        if raw is None:
            state = default_state()
            self.save(repo_id, state)
            return state

        try:
            state = ChangelistState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable changelist state", repo_id=repo_id)
            state = default_state()
            self.save(repo_id, state)
            return state

        if AssignmentTracker(state).normalize():
            self.save(repo_id, state)
        return state

    def save(self, repo_id: str, state: ChangelistState) -> None:
        """Persist *state* for *repo_id*, replacing any previous row."""
        self._ensure_db()
        payload = state.model_dump_json()
        with self._db_lock:
            with get_db_session() as db:
                row = db.get(ChangelistStateRow, repo_id)
                if row is None:
                    row = ChangelistStateRow(repo_id=repo_id, state_json=payload, updated_at=self._now())
                else:
                    row.state_json = payload
                    row.updated_at = self._now()
                db.add(row)
                db.commit()
        logger.debug("Saved changelist state", repo_id=repo_id, lists=len(state.lists))

    def delete(self, repo_id: str) -> bool:
        """Remove the stored state for *repo_id*."""
        self._ensure_db()
        with self._db_lock:
            with get_db_session() as db:
                row = db.get(ChangelistStateRow, repo_id)
                if row is None:
                    return False
                db.delete(row)
                db.commit()
        return True

    def tracker(self, repo_id: str) -> AssignmentTracker:
        """Load *repo_id* and wrap its state in a tracker."""
        return AssignmentTracker(self.load(repo_id))

    def commit(self, repo_id: str, tracker: AssignmentTracker) -> None:
        """Write back the state held by *tracker*."""
        self.save(repo_id, tracker.state)


store = ChangelistStore()
