"""Tests for the git analyzer (uses throwaway repositories)."""

import tempfile
from pathlib import Path

from git import Actor, Repo

from devassist.analyzers.git_analyzer import GitAnalyzer

ALICE = Actor("Alice", "alice@example.com")
BOB = Actor("Bob", "bob@example.com")


def _commit(repo: Repo, root: Path, name: str, content: str, message: str, author: Actor = ALICE):
    (root / name).write_text(content)
    repo.index.add([name])
    return repo.index.commit(message, author=author, committer=author)


def test_non_repository_degrades_to_empty_results():
    with tempfile.TemporaryDirectory() as tmpdir:
        analyzer = GitAnalyzer(tmpdir)

        assert not analyzer.is_git_repository()
        assert analyzer.get_current_branch() == "not-a-git-repo"
        assert analyzer.get_recent_changes().commits == []
        assert analyzer.get_status().is_clean
        assert analyzer.get_file_history("a.txt") == []


def test_repository_without_commits():
    with tempfile.TemporaryDirectory() as tmpdir:
        Repo.init(tmpdir)
        analyzer = GitAnalyzer(tmpdir)

        assert analyzer.is_git_repository()
        assert analyzer.get_recent_changes().summary.total_commits == 0


def test_recent_changes_and_summary():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        repo = Repo.init(root)
        _commit(repo, root, "a.txt", "one\n", "Add a")
        _commit(repo, root, "b.txt", "two\nthree\n", "Add b", author=BOB)
        _commit(repo, root, "a.txt", "one\nmore\n", "Extend a")

        analysis = GitAnalyzer(root).get_recent_changes()

        assert [c.message for c in analysis.commits] == ["Extend a", "Add b", "Add a"]
        newest = analysis.commits[0]
        assert newest.files == ["a.txt"]
        assert newest.insertions == 1
        assert analysis.commits[1].author == "Bob"

        summary = analysis.summary
        assert summary.total_commits == 3
        assert set(summary.active_files) == {"a.txt", "b.txt"}
        assert summary.top_authors[0].name == "Alice"
        assert summary.top_authors[0].commits == 2
        assert summary.last_commit == newest.date
        assert summary.commits_last_week == 3
        assert summary.commits_last_month == 3


def test_max_commits_limits_results():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        repo = Repo.init(root)
        for i in range(4):
            _commit(repo, root, "a.txt", f"{i}\n", f"Commit {i}")

        assert len(GitAnalyzer(root).get_recent_changes(max_commits=2).commits) == 2


def test_branch_name():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        repo = Repo.init(root)
        _commit(repo, root, "a.txt", "x\n", "init")
        repo.git.checkout("-b", "feature/rules")

        assert GitAnalyzer(root).get_current_branch() == "feature/rules"


def test_status_buckets():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        repo = Repo.init(root)
        _commit(repo, root, "tracked.txt", "v1\n", "init")
        _commit(repo, root, "doomed.txt", "bye\n", "add doomed")

        (root / "tracked.txt").write_text("v2\n")
        (root / "doomed.txt").unlink()
        (root / "staged.txt").write_text("new\n")
        repo.index.add(["staged.txt"])
        (root / "loose.txt").write_text("?\n")

        status = GitAnalyzer(root).get_status()

        assert status.modified == ["tracked.txt"]
        assert status.deleted == ["doomed.txt"]
        assert status.added == ["staged.txt"]
        assert status.untracked == ["loose.txt"]
        assert not status.is_clean


def test_file_history():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        repo = Repo.init(root)
        _commit(repo, root, "a.txt", "one\n", "Add a")
        _commit(repo, root, "b.txt", "b\n", "Add b")
        _commit(repo, root, "a.txt", "one\ntwo\nthree\n", "Grow a")

        history = GitAnalyzer(root).get_file_history("a.txt")

        assert [c.message for c in history] == ["Grow a", "Add a"]
        assert history[0].insertions == 2
        assert history[0].files == ["a.txt"]
