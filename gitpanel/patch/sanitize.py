"""Byte-level cleanup applied to diff text before any structural parsing."""

from __future__ import annotations

_BOM = "\ufeff"


def sanitize_patch_text(text: str) -> str:
    """Strip a leading BOM, normalize line endings to LF and drop NUL bytes."""
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    return text.replace("\r\n", "\n").replace("\r", "").replace("\0", "")
