"""Tests for settings loading."""

import tempfile
from pathlib import Path

import pytest

from devassist.config import CONFIG_FILE, DEFAULT_DB_FILE, find_config_file, load_settings
from devassist.errors import ConfigError


def test_defaults_without_config_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        settings = load_settings(project_root=root, env={})

        assert settings.project_root == root
        assert settings.database_path == root / DEFAULT_DB_FILE
        assert settings.backup_existing is True
        assert settings.watch is True


def test_config_file_values_and_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir).resolve()
        (root / CONFIG_FILE).write_text(
            "db_path: data/dev.db\n"
            "backup_existing: false\n"
            "deployed_by: ci-bot\n"
            "max_recent_changes: 25\n"
        )

        settings = load_settings(config_path=root / CONFIG_FILE, env={})

        assert settings.project_root == root
        assert settings.database_path == root / "data" / "dev.db"
        assert settings.backup_existing is False
        assert settings.deployed_by == "ci-bot"
        assert settings.max_recent_changes == 25


def test_config_found_by_walking_up():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir).resolve()
        (root / CONFIG_FILE).write_text("deployed_by: someone\n")
        nested = root / "src" / "pkg"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == root / CONFIG_FILE


def test_environment_overrides_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / CONFIG_FILE).write_text("deployed_by: from-file\nlog_level: INFO\n")

        settings = load_settings(
            config_path=root / CONFIG_FILE,
            env={"DEVASSIST_DEPLOYED_BY": "from-env", "DEVASSIST_DB_PATH": "/var/tmp/x.db"},
        )

        assert settings.deployed_by == "from-env"
        assert settings.log_level == "INFO"
        assert settings.database_path == Path("/var/tmp/x.db")


def test_missing_explicit_config_is_an_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigError):
            load_settings(config_path=Path(tmpdir) / "nope.yml", env={})


def test_invalid_yaml_is_an_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / CONFIG_FILE
        path.write_text("deployed_by: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(config_path=path, env={})


def test_non_mapping_yaml_is_an_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / CONFIG_FILE
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_settings(config_path=path, env={})


def test_invalid_value_is_an_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / CONFIG_FILE
        path.write_text("max_recent_changes: 0\n")
        with pytest.raises(ConfigError):
            load_settings(config_path=path, env={})
