"""Tests for logging setup."""

import logging
import tempfile
from pathlib import Path

from devassist.logging_config import parse_level, setup_logging


def test_parse_level():
    assert parse_level("debug") == logging.DEBUG
    assert parse_level("INFO") == logging.INFO
    assert parse_level(None) == logging.WARNING
    assert parse_level("nonsense") == logging.WARNING


def test_setup_logging_writes_file_and_quiets_third_party():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    with tempfile.TemporaryDirectory() as tmpdir:
        log_file = Path(tmpdir) / "dev.log"
        try:
            setup_logging("INFO", log_file=str(log_file), log_file_level="DEBUG")

            assert root.level == logging.DEBUG
            assert logging.getLogger("git").level == logging.WARNING

            logging.getLogger("devassist.test").debug("to the file only")
            for handler in root.handlers:
                handler.flush()
            assert "to the file only" in log_file.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:], root.level = saved
