"""Repair single-file patches into a shape hunk parsers accept."""

from __future__ import annotations

import re

from gitpanel.patch.extract import DIFF_MARKER, normalize_path
from gitpanel.patch.sanitize import sanitize_patch_text

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
DIFF_LINE_PREFIXES = (" ", "+", "-", "\\")
_HAS_HUNK_RE = re.compile(r"(?:^|\n)@@ ")


def has_hunk_header(text: str) -> bool:
    """Return True if any line of *text* starts like a hunk header."""
    return bool(_HAS_HUNK_RE.search(text))


def synthetic_header(file_path: str) -> str:
    """Build a ``diff --git``/``---``/``+++`` header for *file_path*."""
    path = normalize_path(file_path)
    return f"{DIFF_MARKER}a/{path} b/{path}\n--- a/{path}\n+++ b/{path}"


def _keep_header(header_lines: list[str]) -> str | None:
    """Return the existing header up to ``+++`` when it is well-formed."""
    minus_index = next(
        (i for i, line in enumerate(header_lines) if line.startswith("--- ")), -1
    )
    plus_index = next(
        (i for i, line in enumerate(header_lines) if line.startswith("+++ ")), -1
    )
    if minus_index < 0 or plus_index < 0 or minus_index > plus_index:
        return None
    return "\n".join(header_lines[: plus_index + 1])


def canonicalize_patch(file_path: str, text: str) -> str:
    """Return *text* with exactly one file header and fully prefixed hunk bodies.

    Patches without any hunk header are returned sanitized but otherwise
    untouched. Only leading and trailing newlines are trimmed; a final
    ``" "`` context line or trailing spaces belong to the hunk. Lines inside a hunk that carry no diff prefix are kept as
    context by prefixing a space, so renderers stay aligned with the hunk
    line counts.

    Args:
        file_path: Path used when a header has to be synthesized.
        text: Single-file diff text.
    """
    patch = sanitize_patch_text(text).strip("\n")
    if not patch.strip():
        return ""

    lines = patch.split("\n")
    hunk_start = next(
        (i for i, line in enumerate(lines) if HUNK_HEADER_RE.match(line)), -1
    )
    if hunk_start < 0:
        return patch

    header = _keep_header(lines[:hunk_start]) or synthetic_header(file_path)

    body: list[str] = []
    in_hunk = False
    for line in lines[hunk_start:]:
        if line.startswith(DIFF_MARKER):
            if in_hunk:
                break
            continue

        if HUNK_HEADER_RE.match(line):
            in_hunk = True
            body.append(line)
            continue

        if not in_hunk:
            continue

        if line.startswith(DIFF_LINE_PREFIXES):
            body.append(line)
            continue

        body.append(f" {line}" if line else " ")

    if not body:
        return patch
    return header + "\n" + "\n".join(body)
