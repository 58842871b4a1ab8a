"""Analyzers — read-only views of the project's files and git history."""

from devassist.analyzers.git_analyzer import GitAnalysis, GitAnalyzer, GitCommit, GitStatus
from devassist.analyzers.project_analyzer import (
    DependencyInfo,
    ProjectAnalyzer,
    ProjectNode,
    SearchMatch,
)

__all__ = [
    "DependencyInfo",
    "GitAnalysis",
    "GitAnalyzer",
    "GitCommit",
    "GitStatus",
    "ProjectAnalyzer",
    "ProjectNode",
    "SearchMatch",
]
