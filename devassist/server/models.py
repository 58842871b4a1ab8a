"""Pydantic request models for the MCP tools.

One model per tool. Tool arguments are validated here before any handler
runs, so handlers can trust their inputs.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Fact memory
# ---------------------------------------------------------------------------


class RememberFactRequest(BaseModel):
    category: str = Field(min_length=1)
    fact: str = Field(min_length=1)
    context: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("category", "fact")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class RecallFactsRequest(BaseModel):
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    search: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=500)


# ---------------------------------------------------------------------------
# Rule deployment
# ---------------------------------------------------------------------------


class SetupProjectRulesRequest(BaseModel):
    """Arguments of ``setup_project_rules``."""

    force_update: bool = False
    backup_existing: Optional[bool] = None
    deployed_by: Optional[str] = None
    workspace_path: Optional[str] = None


class RulesStatusRequest(BaseModel):
    workspace_path: Optional[str] = None


class RulesHistoryRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=500)
    include_files: bool = False


# ---------------------------------------------------------------------------
# Changes & git
# ---------------------------------------------------------------------------


class RecentChangesRequest(BaseModel):
    days: int = Field(default=7, ge=1)
    max_commits: int = Field(default=20, ge=1, le=1000)
    include_file_changes: bool = True


class FileChangesRequest(BaseModel):
    """Filters for the watcher's change buffer; at most one of since/file_path applies."""

    limit: Optional[int] = Field(default=None, ge=1)
    since: Optional[str] = None
    file_path: Optional[str] = None


class FileHistoryRequest(BaseModel):
    file_path: str = Field(min_length=1)
    max_commits: int = Field(default=10, ge=1, le=1000)


# ---------------------------------------------------------------------------
# Project analysis
# ---------------------------------------------------------------------------


class ProjectStructureRequest(BaseModel):
    max_depth: int = Field(default=3, ge=0, le=20)
    include_hidden: bool = False


class SearchCodeRequest(BaseModel):
    query: str = Field(min_length=1)
    file_extensions: list[str] = Field(default_factory=list)
    case_sensitive: bool = False
    max_results: int = Field(default=100, ge=1, le=1000)


class FileContentRequest(BaseModel):
    file_path: str = Field(min_length=1)


class DependenciesRequest(BaseModel):
    include_dev: bool = True
