"""Diff build pipeline executed inside worker processes.

Everything here is a pure function of its input message so it can run in a
``ProcessPoolExecutor`` without sharing state with the caller.
"""

from __future__ import annotations

import time

from gitpanel.dispatch.messages import DiffFailure, DiffRequest, DiffSuccess
from gitpanel.errors import PatchParseError
from gitpanel.models import RenderableDiff
from gitpanel.patch import (
    canonicalize_patch,
    count_changes,
    derive_file_lines,
    extract_single_file_patch,
    has_hunk_header,
    is_binary_patch,
    normalize_path,
)
from gitpanel.patch.canonicalize import HUNK_HEADER_RE


def build_renderable_diff(path: str, patch_text: str) -> RenderableDiff:
    """Run extract → canonicalize → reconstruct for one patch source.

    Raises:
        PatchParseError: The patch is binary, empty, has no hunk header, or
            its hunks describe no lines at all.
    """
    extracted = extract_single_file_patch(patch_text, path)
    if is_binary_patch(extracted):
        raise PatchParseError("Binary diff cannot be rendered")
    patch = canonicalize_patch(path, extracted)
    if not patch:
        raise PatchParseError("Empty patch")
    if not has_hunk_header(patch):
        raise PatchParseError("No hunk header found in patch")

    old_lines, new_lines = derive_file_lines(patch)
    if not old_lines and not new_lines:
        raise PatchParseError("Parsed empty diff from hunked patch")

    additions, deletions = count_changes(patch)
    return RenderableDiff(
        path=normalize_path(path),
        patch=patch,
        old_content="\n".join(old_lines),
        new_content="\n".join(new_lines),
        hunk_count=sum(1 for line in patch.split("\n") if HUNK_HEADER_RE.match(line)),
        additions=additions,
        deletions=deletions,
    )


def handle_request(message: dict) -> dict:
    """Answer one :class:`DiffRequest` message; never raises.

    The primary patch is tried first, then the fallback when it differs.
    A failure reports the errors of every attempt joined with ``" | "``.
    """
    start = time.monotonic()
    request = DiffRequest.model_validate(message)

    candidates = [request.patch_text]
    fallback = request.fallback_patch_text
    if fallback and fallback != request.patch_text:
        candidates.append(fallback)

    errors: list[str] = []
    for candidate in candidates:
        try:
            diff = build_renderable_diff(request.path, candidate)
        except PatchParseError as exc:
            errors.append(str(exc))
            continue
        except Exception as exc:  # unexpected failures are reported like parse errors
            errors.append(f"{type(exc).__name__}: {exc}")
            continue
        return DiffSuccess(
            seq=request.seq,
            duration_ms=round((time.monotonic() - start) * 1000),
            diff=diff,
        ).model_dump(mode="json")

    return DiffFailure(
        seq=request.seq,
        duration_ms=round((time.monotonic() - start) * 1000),
        error=" | ".join(errors) or "Diff could not be parsed",
    ).model_dump(mode="json")
