"""Tests for content hashing."""

import hashlib
import tempfile
from pathlib import Path

from devassist.rules.hashing import DIGEST_LENGTH, hash_content, hash_file


def test_hash_is_deterministic():
    assert hash_content("hello") == hash_content("hello")


def test_hash_is_sha256_hex_of_utf8():
    assert hash_content("héllo") == hashlib.sha256("héllo".encode("utf-8")).hexdigest()
    assert len(hash_content("")) == DIGEST_LENGTH


def test_distinct_inputs_hash_differently():
    samples = ["", "a", "b", "a\n", "a\r\n", "# Code Style", "# Code style"]
    digests = {hash_content(s) for s in samples}
    assert len(digests) == len(samples)


def test_hash_file_matches_hash_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "rule.mdc"
        path.write_bytes("line one\r\nline two\n".encode("utf-8"))
        # Line endings are hashed as stored, not normalized
        assert hash_file(path) == hash_content("line one\r\nline two\n")
