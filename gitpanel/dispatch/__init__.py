"""Isolated execution of the diff build pipeline."""

from __future__ import annotations

from gitpanel.dispatch.channel import DiffDispatchChannel, DiffOutcome
from gitpanel.dispatch.messages import DiffFailure, DiffRequest, DiffSuccess
from gitpanel.dispatch.worker import build_renderable_diff, handle_request

__all__ = [
    "DiffDispatchChannel",
    "DiffFailure",
    "DiffOutcome",
    "DiffRequest",
    "DiffSuccess",
    "build_renderable_diff",
    "handle_request",
]
