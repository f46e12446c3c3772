"""HTTP API for diff canonicalization and changelist management."""

from __future__ import annotations

from gitpanel.api.router import api_router

__all__ = ["api_router"]
