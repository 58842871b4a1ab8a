"""Content hashing — the sole identity signal for managed rule files."""

from __future__ import annotations

import hashlib
from pathlib import Path

DIGEST_LENGTH = 64


def hash_content(content: str) -> str:
    """Return the SHA-256 hex digest of ``content`` encoded as UTF-8."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def hash_file(path: str | Path) -> str:
    """Read a file as UTF-8 text and hash it.

    Newlines are read untranslated so the digest matches what was written.
    Raises OSError or UnicodeDecodeError when the file cannot be read;
    callers decide whether that is fatal.
    """
    with open(Path(path), encoding="utf-8", newline="") as f:
        return hash_content(f.read())
