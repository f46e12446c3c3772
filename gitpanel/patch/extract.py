"""Isolate one file's block from a multi-file unified diff."""

from __future__ import annotations

import posixpath
import re

import structlog

from gitpanel.patch.sanitize import sanitize_patch_text

logger = structlog.get_logger(__name__)

DIFF_MARKER = "diff --git "
_HUNK_IN_BLOCK_RE = re.compile(r"\n@@ ")
_C_ESCAPES = {"a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v"}
_OCTAL_DIGITS = frozenset("01234567")


def normalize_path(path: str) -> str:
    """Use forward slashes and drop a leading ``./``."""
    path = path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    return path


def _read_quoted(source: str, index: int) -> tuple[str, int]:
    """Decode a C-style quoted token starting just after its opening quote.

    Git writes non-ASCII path bytes as three-digit octal escapes, so the
    token is collected as bytes and decoded as UTF-8 once it closes.
    """
    out = bytearray()
    length = len(source)
    while index < length:
        ch = source[index]
        index += 1
        if ch == '"':
            break
        if ch != "\\" or index >= length:
            out += ch.encode("utf-8")
            continue
        octal = source[index:index + 3]
        if len(octal) == 3 and set(octal) <= _OCTAL_DIGITS:
            out.append(int(octal, 8) & 0xFF)
            index += 3
            continue
        escaped = source[index]
        index += 1
        out += _C_ESCAPES.get(escaped, escaped).encode("utf-8")
    return out.decode("utf-8", errors="replace"), index


def tokenize_diff_header(line: str) -> list[str]:
    """Split a ``diff --git`` line into its path tokens.

    Double-quoted tokens may contain spaces and git's C-style escapes,
    including octal byte sequences for non-ASCII paths.
    """
    if not line.startswith(DIFF_MARKER):
        return []
    source = line[len(DIFF_MARKER):]
    tokens: list[str] = []
    index = 0
    length = len(source)

    while index < length:
        while index < length and source[index].isspace():
            index += 1
        if index >= length:
            break

        if source[index] == '"':
            token, index = _read_quoted(source, index + 1)
            tokens.append(token)
            continue

        start = index
        while index < length and not source[index].isspace():
            index += 1
        tokens.append(source[start:index])

    return tokens


def extract_b_path(line: str) -> str | None:
    """Return the normalized "new file" path declared by a ``diff --git`` line."""
    tokens = tokenize_diff_header(line.strip())
    if len(tokens) < 2:
        return None
    target = tokens[1]
    if target.startswith("b/"):
        target = target[2:]
    return normalize_path(target)


def split_file_blocks(text: str) -> list[str]:
    """Split diff text into blocks, each opening with a ``diff --git`` line.

    Lines before the first marker form their own leading block.
    """
    blocks: list[str] = []
    current: list[str] = []
    for line in text.split("\n"):
        if line.startswith(DIFF_MARKER):
            if current:
                blocks.append("\n".join(current))
            current = [line]
            continue
        current.append(line)
    if current:
        blocks.append("\n".join(current))
    return blocks


def _first_line(block: str) -> str:
    return block.split("\n", 1)[0]


def extract_single_file_patch(patch_text: str, file_path: str) -> str:
    """Return the block of *patch_text* that belongs to *file_path*.

    Text that does not open with a ``diff --git`` line is returned as-is
    (after sanitizing). When no block declares the exact path, the first
    block with the same basename wins, then the first block containing a
    hunk, then the first block.

    Args:
        patch_text: Raw diff text, possibly covering several files.
        file_path: Repository-relative path of the requested file.
    """
    target = normalize_path(file_path)
    text = sanitize_patch_text(patch_text)
    if not text.startswith(DIFF_MARKER):
        return text

    blocks = split_file_blocks(text)
    if len(blocks) <= 1:
        return blocks[0] if blocks else text

    fallback_with_hunk: str | None = None
    for block in blocks:
        if extract_b_path(_first_line(block)) == target:
            return block
        if fallback_with_hunk is None and _HUNK_IN_BLOCK_RE.search(block):
            fallback_with_hunk = block

    target_name = posixpath.basename(target)
    if target_name:
        for block in blocks:
            b_path = extract_b_path(_first_line(block))
            if b_path and posixpath.basename(b_path) == target_name:
                logger.debug("Matched diff block by basename", path=file_path, block_path=b_path)
                return block

    logger.debug(
        "No diff block matched path, using fallback block",
        path=file_path,
        blocks=len(blocks),
        has_hunk_fallback=fallback_with_hunk is not None,
    )
    return fallback_with_hunk if fallback_with_hunk is not None else blocks[0]
