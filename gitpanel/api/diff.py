"""Diff canonicalization endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter

from gitpanel.api.errors import raise_http_error
from gitpanel.api.schemas import (
    CanonicalizeRequest,
    FingerprintRequest,
    FingerprintResponse,
    ParseHunksRequest,
)
from gitpanel.api.state import get_channel
from gitpanel.dispatch import DiffFailure
from gitpanel.fingerprint import fingerprint
from gitpanel.models import Hunk, RenderableDiff
from gitpanel.patch import build_patch_from_hunks, parse_hunks, sanitize_patch_text

router = APIRouter(prefix="/diff", tags=["diff"])
logger = structlog.get_logger(__name__)


@router.post("/canonicalize", response_model=RenderableDiff)
async def canonicalize(payload: CanonicalizeRequest) -> RenderableDiff:
    """Build a renderable diff, falling back to a patch rebuilt from hunks."""
    fallback = payload.fallback_patch_text
    if fallback is None and payload.hunks:
        fallback = build_patch_from_hunks(payload.path, payload.hunks)
    primary = sanitize_patch_text(payload.patch_text) or (fallback or "")
    if not primary:
        raise_http_error("EMPTY_DIFF", "No diff to display.", 422)

    channel = get_channel(payload.client_id)
    outcome = await channel.canonicalize(payload.path, primary, fallback or None)
    if outcome is None:
        raise_http_error("SUPERSEDED", "A newer diff request replaced this one", 409)
    if isinstance(outcome, DiffFailure):
        raise_http_error("DIFF_PARSE_FAILED", outcome.error, 422)
    return outcome.diff


@router.post("/fingerprint", response_model=FingerprintResponse)
async def fingerprint_hunk(payload: FingerprintRequest) -> FingerprintResponse:
    """Fingerprint a hunk header and body."""
    return FingerprintResponse(content_hash=fingerprint(payload.header, payload.content))


@router.post("/hunks", response_model=list[Hunk])
async def parse_diff_hunks(payload: ParseHunksRequest) -> list[Hunk]:
    """Split raw diff text into hunks with ids and fingerprints."""
    hunks = parse_hunks(payload.text, payload.path, payload.kind)
    logger.info("Parsed hunks", path=payload.path, kind=payload.kind.value, count=len(hunks))
    return hunks
