"""File scanner — discover, classify and filter project files."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Iterator
from pathlib import Path

# Directories to always skip
SKIP_DIRS = {
    ".git", "__pycache__", "node_modules", ".venv", "venv", ".env",
    "dist", "build", ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "target", "vendor", ".next", ".nuxt", "coverage",
}

# File extensions we care about, mapped to language
LANGUAGE_MAP = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".jsx": "javascript",
    ".vue": "vue",
    ".svelte": "svelte",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".sh": "shell",
}

# Patterns ignored by the watcher on top of the project's .gitignore
DEFAULT_IGNORE_PATTERNS = [
    "node_modules/",
    ".git/",
    "build/",
    "dist/",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    "*.tmp",
    "*.temp",
    ".dev-assistant.db",
    ".dev-assistant.db-journal",
    ".next/",
    ".nuxt/",
    ".vscode/",
    ".idea/",
    "coverage/",
    "*.min.js",
    "*.min.css",
]


def scan_project_files(
    repo_path: Path,
    extensions: Iterable[str] | None = None,
    limit: int | None = None,
) -> list[Path]:
    """Recursively scan a project directory for source files.

    Skips common non-source directories. ``extensions`` narrows the match
    (with or without the leading dot); by default any known source type.
    """
    wanted = _normalize_extensions(extensions)
    files = []
    for item in iter_project_files(repo_path):
        if wanted is not None:
            if item.suffix.lower() not in wanted:
                continue
        elif item.suffix not in LANGUAGE_MAP:
            continue
        files.append(item)
        if limit is not None and len(files) >= limit:
            break
    return files


def iter_project_files(repo_path: Path) -> Iterator[Path]:
    """Yield every file under ``repo_path`` outside of SKIP_DIRS, in sorted order."""
    try:
        entries = sorted(repo_path.iterdir())
    except OSError:
        return
    for item in entries:
        if item.is_dir():
            if item.name not in SKIP_DIRS:
                yield from iter_project_files(item)
        elif item.is_file():
            yield item


def classify_file(path: Path) -> str | None:
    """Return the language classification for a file, or None if unknown."""
    return LANGUAGE_MAP.get(path.suffix)


def _normalize_extensions(extensions: Iterable[str] | None) -> set[str] | None:
    if not extensions:
        return None
    return {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}


# ----------------------------------------------------------------------
# Ignore rules
# ----------------------------------------------------------------------


class IgnoreRules:
    """A small gitignore-style matcher.

    Supports ``#`` comments, ``!`` negation, trailing ``/`` for directories
    and leading ``/`` for anchoring to the project root. The last matching
    pattern wins.
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self._rules: list[tuple[str, bool, bool, bool]] = []
        self.add(patterns)

    @classmethod
    def for_project(cls, project_path: Path) -> IgnoreRules:
        """Defaults plus the project's ``.gitignore``, if any."""
        rules = cls(DEFAULT_IGNORE_PATTERNS)
        gitignore = project_path / ".gitignore"
        if gitignore.is_file():
            try:
                rules.add(gitignore.read_text(encoding="utf-8").splitlines())
            except (OSError, UnicodeDecodeError):
                pass
        return rules

    def add(self, patterns: Iterable[str]) -> None:
        for raw in patterns:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            negated = line.startswith("!")
            if negated:
                line = line[1:]
            dir_only = line.endswith("/")
            line = line.rstrip("/")
            anchored = "/" in line
            line = line.lstrip("/")
            if line:
                self._rules.append((line, negated, dir_only, anchored))

    def ignores(self, relative_path: str) -> bool:
        """True if the project-relative path is ignored."""
        parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
        if not parts:
            return False

        ignored = False
        for pattern, negated, dir_only, anchored in self._rules:
            if _matches(parts, pattern, dir_only, anchored):
                ignored = not negated
        return ignored


def _matches(parts: list[str], pattern: str, dir_only: bool, anchored: bool) -> bool:
    # Any leading directory of the path may match a directory pattern
    prefixes = range(1, len(parts)) if dir_only else range(1, len(parts) + 1)
    for n in prefixes:
        if anchored:
            if fnmatch.fnmatchcase("/".join(parts[:n]), pattern):
                return True
        elif fnmatch.fnmatchcase(parts[n - 1], pattern):
            return True
    return False
