"""Off-thread diff building with last-issued-wins response handling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor

import structlog

from gitpanel.dispatch.messages import DiffFailure, DiffRequest, DiffSuccess, response_adapter
from gitpanel.dispatch.worker import handle_request
from gitpanel.settings import settings

logger = structlog.get_logger(__name__)

DiffOutcome = DiffSuccess | DiffFailure


class DiffDispatchChannel:
    """Sends diff build requests to an executor and applies only the newest answer.

    Every request gets the next sequence number. A response is applied only
    when its sequence number is still the latest one issued; older responses
    are dropped once they arrive. In-flight work is never cancelled.

    The channel belongs to one asyncio event loop, which serializes the
    sequence bookkeeping.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        on_outcome: Callable[[DiffOutcome], None] | None = None,
    ) -> None:
        self._executor = executor
        self._owns_executor = executor is None
        self._on_outcome = on_outcome
        self._seq = 0
        self.last_outcome: DiffOutcome | None = None

    @property
    def latest_seq(self) -> int:
        return self._seq

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=settings.dispatch_workers())
        return self._executor

    def issue(self, path: str, patch_text: str, fallback_patch_text: str | None = None) -> DiffRequest:
        """Allocate the next sequence number for a request."""
        self._seq += 1
        return DiffRequest(
            seq=self._seq,
            path=path,
            patch_text=patch_text,
            fallback_patch_text=fallback_patch_text,
        )

    def deliver(self, message: dict) -> DiffOutcome | None:
        """Apply a worker response unless a newer request superseded it."""
        outcome = response_adapter.validate_python(message)
        if outcome.seq != self._seq:
            logger.debug("Discarding stale diff response", seq=outcome.seq, latest=self._seq)
            return None
        self.last_outcome = outcome
        if isinstance(outcome, DiffFailure):
            logger.warning(
                "Diff could not be parsed",
                seq=outcome.seq,
                error=outcome.error,
                duration_ms=outcome.duration_ms,
            )
        else:
            logger.debug(
                "Diff built",
                seq=outcome.seq,
                path=outcome.diff.path,
                hunks=outcome.diff.hunk_count,
                duration_ms=outcome.duration_ms,
            )
        if self._on_outcome is not None:
            self._on_outcome(outcome)
        return outcome

    async def canonicalize(
        self,
        path: str,
        patch_text: str,
        fallback_patch_text: str | None = None,
    ) -> DiffOutcome | None:
        """Build a renderable diff for *path* without blocking the event loop.

        Returns the outcome, or None when a newer request was issued before
        this one finished.

        Args:
            path: Repository-relative file path.
            patch_text: Primary diff text, possibly multi-file or malformed.
            fallback_patch_text: Alternate patch tried when the primary fails.
        """
        request = self.issue(path, patch_text, fallback_patch_text)
        loop = asyncio.get_running_loop()
        try:
            message = await loop.run_in_executor(
                self._get_executor(), handle_request, request.model_dump()
            )
        except Exception as exc:
            logger.exception("Diff worker failed", seq=request.seq, path=path)
            message = DiffFailure(
                seq=request.seq, duration_ms=0, error=f"Diff worker failed: {exc}"
            ).model_dump()
        return self.deliver(message)

    def shutdown(self) -> None:
        """Release the worker pool if this channel created it."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
