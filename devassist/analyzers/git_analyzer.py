"""Git analysis — recent history, status and per-file history of the project.

Every query degrades to an empty result outside a repository, so callers
never have to check first.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from git import Commit, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

logger = logging.getLogger(__name__)


@dataclass
class GitCommit:
    hash: str
    date: str
    message: str
    author: str
    files: list[str] = field(default_factory=list)
    insertions: int = 0
    deletions: int = 0


@dataclass
class AuthorCount:
    name: str
    commits: int


@dataclass
class GitSummary:
    total_commits: int = 0
    active_files: list[str] = field(default_factory=list)
    top_authors: list[AuthorCount] = field(default_factory=list)
    last_commit: str = ""
    commits_last_week: int = 0
    commits_last_month: int = 0


@dataclass
class GitAnalysis:
    """Commits in a time window plus an activity summary."""

    commits: list[GitCommit] = field(default_factory=list)
    summary: GitSummary = field(default_factory=GitSummary)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GitStatus:
    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.modified or self.added or self.deleted or self.untracked)

    def to_dict(self) -> dict:
        return asdict(self)


class GitAnalyzer:
    """Read-only view of the git repository containing the project."""

    def __init__(self, project_path: str | Path):
        self.project_path = Path(project_path)

    def _repo(self) -> Repo | None:
        try:
            return Repo(self.project_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return None

    def is_git_repository(self) -> bool:
        return self._repo() is not None

    def get_recent_changes(self, days: int = 7, max_commits: int = 20) -> GitAnalysis:
        """Commits from the last ``days`` days, newest first."""
        repo = self._repo()
        if repo is None:
            return GitAnalysis()

        since = datetime.now(timezone.utc) - timedelta(days=days)
        try:
            commits = [
                _to_commit(c)
                for c in repo.iter_commits(max_count=max_commits, since=since.isoformat())
            ]
        except (GitCommandError, ValueError) as e:
            # ValueError: no commits yet, HEAD does not resolve
            logger.warning("Could not read git history in %s: %s", self.project_path, e)
            return GitAnalysis()

        return GitAnalysis(commits=commits, summary=_summarize(commits))

    def get_current_branch(self) -> str:
        repo = self._repo()
        if repo is None:
            return "not-a-git-repo"
        if repo.head.is_detached:
            return "detached"
        try:
            return repo.active_branch.name
        except TypeError:
            return "unknown"

    def get_status(self) -> GitStatus:
        """Working tree status: unstaged edits, staged files, deletions, untracked."""
        repo = self._repo()
        if repo is None:
            return GitStatus()

        try:
            unstaged = repo.index.diff(None)
            if repo.head.is_valid():
                staged = sorted({d.a_path or d.b_path for d in repo.index.diff("HEAD")})
            else:
                staged = sorted(path for path, _stage in repo.index.entries)
            return GitStatus(
                modified=sorted(d.a_path for d in unstaged if d.change_type == "M"),
                added=staged,
                deleted=sorted(d.a_path for d in unstaged if d.change_type == "D"),
                untracked=sorted(repo.untracked_files),
            )
        except GitCommandError as e:
            logger.warning("Could not read git status in %s: %s", self.project_path, e)
            return GitStatus()

    def get_file_history(self, file_path: str, max_commits: int = 10) -> list[GitCommit]:
        """Commits that touched ``file_path``, with that file's line counts."""
        repo = self._repo()
        if repo is None:
            return []

        repo_path = _repo_relative(repo, self.project_path / file_path)
        history = []
        try:
            for commit in repo.iter_commits(paths=repo_path, max_count=max_commits):
                stats = commit.stats.files.get(repo_path, {})
                history.append(GitCommit(
                    hash=commit.hexsha,
                    date=commit.authored_datetime.isoformat(),
                    message=_subject(commit),
                    author=commit.author.name or "",
                    files=[file_path],
                    insertions=stats.get("insertions", 0),
                    deletions=stats.get("deletions", 0),
                ))
        except (GitCommandError, ValueError) as e:
            logger.warning("Could not read history of %s: %s", file_path, e)
            return []
        return history


def _to_commit(commit: Commit) -> GitCommit:
    try:
        stats = commit.stats
        files = list(stats.files)
        insertions = stats.total.get("insertions", 0)
        deletions = stats.total.get("deletions", 0)
    except GitCommandError:
        files, insertions, deletions = [], 0, 0

    return GitCommit(
        hash=commit.hexsha,
        date=commit.authored_datetime.isoformat(),
        message=_subject(commit),
        author=commit.author.name or "",
        files=files,
        insertions=insertions,
        deletions=deletions,
    )


def _summarize(commits: list[GitCommit]) -> GitSummary:
    active: dict[str, None] = {}
    authors: Counter[str] = Counter()
    for c in commits:
        active.update(dict.fromkeys(c.files))
        authors[c.author] += 1

    now = datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)
    dates = [datetime.fromisoformat(c.date) for c in commits]

    return GitSummary(
        total_commits=len(commits),
        active_files=list(active),
        top_authors=[AuthorCount(name, n) for name, n in authors.most_common(5)],
        last_commit=commits[0].date if commits else "",
        commits_last_week=sum(1 for d in dates if d > week_ago),
        commits_last_month=sum(1 for d in dates if d > month_ago),
    )


def _subject(commit: Commit) -> str:
    message = commit.message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    return message.strip().splitlines()[0] if message.strip() else ""


def _repo_relative(repo: Repo, path: Path) -> str:
    root = Path(repo.working_tree_dir).resolve()
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
