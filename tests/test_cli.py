"""Tests for the CLI commands."""

import json
import tempfile
from pathlib import Path

from click.testing import CliRunner

from devassist.cli import main
from devassist.config import ENV_OVERRIDES


def _invoke(root: Path, *args):
    runner = CliRunner()
    return runner.invoke(main, ["--project", str(root), *args], env={var: None for var in ENV_OVERRIDES})


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_rules_deploy_status_history_show():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)

        result = _invoke(root, "rules", "deploy", "--deployed-by", "cli-user")
        assert result.exit_code == 0, result.output
        assert "successfully created" in result.output
        assert (root / ".cursor" / "rules" / "security.mdc").exists()
        assert (root / ".dev-assistant.db").exists()

        result = _invoke(root, "rules", "status")
        assert result.exit_code == 0
        assert "OK" in result.output

        result = _invoke(root, "rules", "history")
        assert result.exit_code == 0
        assert "Rule Deployments (1)" in result.output

        result = _invoke(root, "rules", "show")
        assert result.exit_code == 0
        assert "code-style.mdc" in result.output


def test_rules_deploy_drift_exits_nonzero():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _invoke(root, "rules", "deploy")
        (root / ".cursor" / "rules" / "architecture.mdc").write_text("hand edited\n")

        result = _invoke(root, "rules", "deploy")
        assert result.exit_code == 2
        assert "architecture.mdc" in result.output

        result = _invoke(root, "rules", "deploy", "--force", "--no-backup")
        assert result.exit_code == 0
        assert not (root / ".cursor" / "rules" / "backups").exists()


def test_facts_remember_and_recall():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)

        result = _invoke(root, "facts", "remember", "decisions", "Use [SQLite]", "-t", "db")
        assert result.exit_code == 0, result.output

        result = _invoke(root, "facts", "recall", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)[0]["fact"] == "Use [SQLite]"

        result = _invoke(root, "facts", "categories")
        assert "decisions" in result.output


def test_structure_and_search():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "pkg").mkdir()
        (root / "pkg" / "core.py").write_text("ANSWER = 42\n")

        result = _invoke(root, "structure")
        assert result.exit_code == 0
        assert "core.py" in result.output

        result = _invoke(root, "search", "ANSWER")
        assert result.exit_code == 0
        assert "pkg/core.py" in result.output

        result = _invoke(root, "search", "(")
        assert result.exit_code == 1


def test_git_commands_outside_repository():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        result = _invoke(root, "git", "changes")
        assert result.exit_code == 0
        assert "Not a git repository" in result.output

        result = _invoke(root, "git", "status")
        assert "not-a-git-repo" in result.output


def test_bad_config_file_fails_cleanly():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / ".devassist.yml").write_text("- not a mapping\n")
        result = CliRunner().invoke(main, ["--config", str(root / ".devassist.yml"), "facts", "categories"])
        assert result.exit_code == 1
