"""Derive paired old/new buffers from a canonical patch.

Some renderers want full before/after text instead of a patch. The buffers
built here contain only the lines the hunks mention, in hunk order, which is
enough for such renderers to lay the hunks out.
"""

from __future__ import annotations

from collections.abc import Iterator

from gitpanel.models import DiffContents
from gitpanel.patch.canonicalize import HUNK_HEADER_RE
from gitpanel.patch.extract import DIFF_MARKER

NO_NEWLINE_MARKER = "\\ No newline at end of file"


def _hunk_lines(patch_text: str) -> Iterator[str]:
    """Yield body lines that sit inside hunks, skipping headers and markers."""
    in_hunk = False
    for line in patch_text.split("\n"):
        if HUNK_HEADER_RE.match(line):
            in_hunk = True
            continue
        if not in_hunk:
            continue
        if line.startswith(DIFF_MARKER):
            break
        if line.startswith("@@ ") or line.startswith(NO_NEWLINE_MARKER):
            continue
        yield line


def derive_file_lines(patch_text: str) -> tuple[list[str], list[str]]:
    """Return the old-side and new-side lines described by the hunks."""
    old_lines: list[str] = []
    new_lines: list[str] = []
    for line in _hunk_lines(patch_text):
        prefix, content = line[:1], line[1:]
        if prefix == "+":
            new_lines.append(content)
        elif prefix == "-":
            old_lines.append(content)
        elif prefix == " ":
            old_lines.append(content)
            new_lines.append(content)
        else:
            # Malformed line: keep both sides aligned.
            old_lines.append(line)
            new_lines.append(line)
    return old_lines, new_lines


def derive_file_contents(patch_text: str) -> DiffContents:
    """Join :func:`derive_file_lines` into LF-separated buffers."""
    old_lines, new_lines = derive_file_lines(patch_text)
    return DiffContents(old_content="\n".join(old_lines), new_content="\n".join(new_lines))


def count_changes(patch_text: str) -> tuple[int, int]:
    """Count added and removed lines inside the hunks of *patch_text*."""
    additions = deletions = 0
    for line in _hunk_lines(patch_text):
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions
