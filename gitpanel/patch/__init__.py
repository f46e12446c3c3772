"""Unified diff sanitizing, extraction, canonicalization and reconstruction."""

from __future__ import annotations

from gitpanel.patch.canonicalize import canonicalize_patch, has_hunk_header, synthetic_header
from gitpanel.patch.extract import extract_single_file_patch, normalize_path
from gitpanel.patch.hunks import (
    build_patch_from_hunks,
    filter_hunks_for_path,
    is_binary_patch,
    parse_hunks,
)
from gitpanel.patch.reconstruct import count_changes, derive_file_contents, derive_file_lines
from gitpanel.patch.sanitize import sanitize_patch_text

__all__ = [
    "build_patch_from_hunks",
    "canonicalize_patch",
    "count_changes",
    "derive_file_contents",
    "derive_file_lines",
    "extract_single_file_patch",
    "filter_hunks_for_path",
    "has_hunk_header",
    "is_binary_patch",
    "normalize_path",
    "parse_hunks",
    "sanitize_patch_text",
    "synthetic_header",
]
