"""Content fingerprints that identify hunks across repeated diff fetches."""

from __future__ import annotations

import hashlib

from gitpanel.models import Hunk


def fingerprint(header: str, content: str) -> str:
    """Return the SHA-256 hex digest of ``header + "\\n" + content``."""
    digest = hashlib.sha256()
    digest.update(header.encode("utf-8"))
    digest.update(b"\n")
    digest.update(content.encode("utf-8"))
    return digest.hexdigest()


def hunk_fingerprint(hunk: Hunk) -> str:
    """Fingerprint a live hunk from its header and body.

    The stored ``content_hash`` of the hunk is ignored; comparisons always
    use a freshly computed value.
    """
    return fingerprint(hunk.header, hunk.content)
