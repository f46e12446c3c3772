"""Helpers for turning unified diffs into hunk lists and back."""

from __future__ import annotations

import re

from gitpanel.fingerprint import fingerprint
from gitpanel.models import DiffKind, Hunk
from gitpanel.patch.canonicalize import HUNK_HEADER_RE, synthetic_header
from gitpanel.patch.extract import DIFF_MARKER, extract_b_path, normalize_path, split_file_blocks
from gitpanel.patch.sanitize import sanitize_patch_text

_BINARY_RE = re.compile(r"(?:^|\n)(?:Binary files .* differ|GIT binary patch)(?:\n|$)")


def is_binary_patch(text: str) -> bool:
    """Return True for git's binary diff placeholders."""
    return bool(text) and bool(_BINARY_RE.search(text))


def _hunk_id(old_start: int, old_lines: int, new_start: int, new_lines: int, content_hash: str) -> str:
    return f"{old_start}:{old_lines}:{new_start}:{new_lines}:{content_hash[:8]}"


def _make_hunk(
    path: str,
    kind: DiffKind,
    file_header: str,
    match: re.Match,
    body: list[str],
) -> Hunk:
    while body and body[-1] == "":
        body.pop()
    header = match.string
    old_start = int(match.group(1))
    old_lines = int(match.group(2)) if match.group(2) is not None else 1
    new_start = int(match.group(3))
    new_lines = int(match.group(4)) if match.group(4) is not None else 1
    content = "\n".join(body)
    content_hash = fingerprint(header, content)
    return Hunk(
        id=_hunk_id(old_start, old_lines, new_start, new_lines, content_hash),
        path=path,
        kind=kind,
        header=header,
        file_header=file_header,
        old_start=old_start,
        old_lines=old_lines,
        new_start=new_start,
        new_lines=new_lines,
        content=content,
        content_hash=content_hash,
    )


def parse_hunks(text: str, path: str, kind: DiffKind = DiffKind.UNSTAGED) -> list[Hunk]:
    """Parse a unified diff (one or more files) into a flat hunk list.

    Args:
        text: Raw diff text.
        path: Path assigned to hunks whose block has no ``diff --git`` line.
        kind: Whether the diff was taken against the index or the worktree.
    """
    hunks: list[Hunk] = []
    for block in split_file_blocks(sanitize_patch_text(text)):
        lines = block.split("\n")
        block_path = normalize_path(path)
        if lines and lines[0].startswith(DIFF_MARKER):
            block_path = extract_b_path(lines[0]) or block_path

        header_lines: list[str] = []
        current: re.Match | None = None
        body: list[str] = []
        for line in lines:
            match = HUNK_HEADER_RE.match(line)
            if match:
                if current is not None:
                    hunks.append(_make_hunk(block_path, kind, "\n".join(header_lines), current, body))
                current = match
                body = []
                continue
            if current is None:
                header_lines.append(line)
            else:
                body.append(line)
        if current is not None:
            hunks.append(_make_hunk(block_path, kind, "\n".join(header_lines), current, body))
    return hunks


def filter_hunks_for_path(hunks: list[Hunk], path: str) -> list[Hunk]:
    """Keep hunks whose normalized path equals *path*."""
    target = normalize_path(path)
    return [hunk for hunk in hunks if normalize_path(hunk.path) == target]


def build_patch_from_hunks(file_path: str, hunks: list[Hunk]) -> str:
    """Rebuild a single-file patch from a structured hunk list.

    Used as the fallback patch source when the raw diff text cannot be
    parsed. Returns an empty string when no hunk has content.
    """
    if not hunks:
        return ""

    lines: list[str] = []
    last_header = ""
    for hunk in hunks:
        content = sanitize_patch_text(hunk.content or "")
        if not content.strip():
            continue
        file_header = sanitize_patch_text(hunk.file_header)
        if file_header and file_header != last_header:
            lines.append(file_header)
            last_header = file_header
        lines.append(hunk.header)
        lines.append(content)

    body = "\n".join(line for line in lines if line)
    if not body:
        return ""
    if body.startswith(DIFF_MARKER):
        return body
    return synthetic_header(file_path) + "\n" + body
