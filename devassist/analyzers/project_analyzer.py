"""Project analysis — directory structure, code search and dependencies."""

from __future__ import annotations

import json
import logging
import re
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

from devassist.utils.file_scanner import SKIP_DIRS, iter_project_files, scan_project_files

logger = logging.getLogger(__name__)

SEARCH_EXCLUDE_SUFFIXES = (".min.js", ".min.css")
MAX_IMPORT_FILES = 50
IMPORT_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx", ".py")

_JS_IMPORT_RES = [
    re.compile(r"""import\s+.*?\s+from\s+['"]([^'"]+)['"]"""),
    re.compile(r"""import\s+['"]([^'"]+)['"]"""),
    re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
]
_PY_IMPORT_RE = re.compile(r"^\s*(?:from\s+([\w.]+)\s+import|import\s+([\w.]+))", re.MULTILINE)
_REQUIREMENT_NAME_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


@dataclass
class ProjectNode:
    """A file or directory in the structure tree."""

    name: str
    type: str  # "file" | "directory"
    path: str
    size: int | None = None
    children: list[ProjectNode] | None = None

    def to_dict(self) -> dict:
        data: dict = {"name": self.name, "type": self.type, "path": self.path}
        if self.size is not None:
            data["size"] = self.size
        if self.children is not None:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@dataclass
class SearchMatch:
    file: str
    line: int
    content: str
    match: str


@dataclass
class FileImports:
    file: str
    imports: list[str]


@dataclass
class DependencyInfo:
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    imports: list[FileImports] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class ProjectAnalyzer:
    """Answers questions about the files of one project directory."""

    def __init__(self, project_path: str | Path):
        self.project_path = Path(project_path).resolve()

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def get_project_structure(self, max_depth: int = 3, include_hidden: bool = False) -> ProjectNode:
        """Tree of the project, directories first, then by name.

        Directories at ``max_depth`` are listed without children.
        """
        root = ProjectNode(name=self.project_path.name, type="directory", path="", children=[])
        root.children = self._children(self.project_path, 0, max_depth, include_hidden)
        return root

    def _children(self, directory: Path, depth: int, max_depth: int, include_hidden: bool) -> list[ProjectNode]:
        if depth >= max_depth:
            return []
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.debug("Cannot list %s: %s", directory, e)
            return []

        nodes = []
        for entry in entries:
            if not include_hidden and entry.name.startswith("."):
                continue
            rel = entry.relative_to(self.project_path).as_posix()
            if entry.is_dir():
                if entry.name in SKIP_DIRS:
                    continue
                nodes.append(ProjectNode(
                    name=entry.name,
                    type="directory",
                    path=rel,
                    children=self._children(entry, depth + 1, max_depth, include_hidden),
                ))
            elif entry.is_file():
                try:
                    size = entry.stat().st_size
                except OSError:
                    continue
                nodes.append(ProjectNode(name=entry.name, type="file", path=rel, size=size))

        nodes.sort(key=lambda n: (n.type != "directory", n.name))
        return nodes

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_code(
        self,
        query: str,
        file_extensions: list[str] | None = None,
        case_sensitive: bool = False,
        max_results: int = 100,
    ) -> list[SearchMatch]:
        """Regex search over project text files.

        Raises:
            ValueError: If ``query`` is not a valid regular expression.
        """
        try:
            regex = re.compile(query, 0 if case_sensitive else re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid search pattern {query!r}: {e}") from e

        if file_extensions:
            files = scan_project_files(self.project_path, extensions=file_extensions)
        else:
            files = list(iter_project_files(self.project_path))

        results: list[SearchMatch] = []
        for path in files:
            if path.name.endswith(SEARCH_EXCLUDE_SUFFIXES):
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue

            rel = path.relative_to(self.project_path).as_posix()
            for lineno, line in enumerate(text.split("\n"), start=1):
                for m in regex.finditer(line):
                    results.append(SearchMatch(file=rel, line=lineno, content=line.strip(), match=m.group(0)))
                    if len(results) >= max_results:
                        return results
        return results

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def get_file_content(self, file_path: str) -> str:
        """Read a project file as UTF-8 text.

        Raises:
            ValueError: If the path resolves outside the project.
            FileNotFoundError: If the file cannot be read.
        """
        full = (self.project_path / file_path).resolve()
        if not full.is_relative_to(self.project_path):
            raise ValueError(f"Path is outside the project: {file_path}")
        try:
            return full.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileNotFoundError(f"Could not read file: {file_path}") from e

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def get_dependencies(self, include_dev: bool = True) -> DependencyInfo:
        """Declared dependencies plus the imports of a sample of source files."""
        info = DependencyInfo()
        self._read_package_json(info, include_dev)
        self._read_pyproject(info, include_dev)

        for path in scan_project_files(self.project_path, extensions=IMPORT_EXTENSIONS, limit=MAX_IMPORT_FILES):
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            imports = extract_imports(text, python=path.suffix == ".py")
            if imports:
                rel = path.relative_to(self.project_path).as_posix()
                info.imports.append(FileImports(file=rel, imports=imports))
        return info

    def _read_package_json(self, info: DependencyInfo, include_dev: bool) -> None:
        path = self.project_path / "package.json"
        if not path.is_file():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Cannot parse %s: %s", path, e)
            return
        info.dependencies.update(data.get("dependencies") or {})
        if include_dev:
            info.dev_dependencies.update(data.get("devDependencies") or {})

    def _read_pyproject(self, info: DependencyInfo, include_dev: bool) -> None:
        path = self.project_path / "pyproject.toml"
        if not path.is_file():
            return
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Cannot parse %s: %s", path, e)
            return

        project = data.get("project", {})
        info.dependencies.update(_requirements(project.get("dependencies", [])))
        if include_dev:
            for extra in project.get("optional-dependencies", {}).values():
                info.dev_dependencies.update(_requirements(extra))


def extract_imports(content: str, python: bool = False) -> list[str]:
    """Unique imported module names, in order of first appearance."""
    found: list[str] = []
    if python:
        for m in _PY_IMPORT_RE.finditer(content):
            found.append(m.group(1) or m.group(2))
    else:
        for regex in _JS_IMPORT_RES:
            found.extend(m.group(1) for m in regex.finditer(content))
    return list(dict.fromkeys(found))


def _requirements(specs: list[str]) -> dict[str, str]:
    result = {}
    for spec in specs:
        m = _REQUIREMENT_NAME_RE.match(spec)
        if m:
            name = m.group(1)
            result[name] = spec[m.end():].strip() or "*"
    return result
