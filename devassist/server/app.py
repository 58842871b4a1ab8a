"""MCP server — exposes the handlers as tools over stdio."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import BaseModel, ValidationError

from devassist.config import Settings
from devassist.errors import DevAssistError
from devassist.server import handlers
from devassist.server.handlers import ServerContext, build_context
from devassist.server.models import (
    DependenciesRequest,
    FileChangesRequest,
    FileContentRequest,
    FileHistoryRequest,
    ProjectStructureRequest,
    RecallFactsRequest,
    RecentChangesRequest,
    RememberFactRequest,
    RulesHistoryRequest,
    RulesStatusRequest,
    SearchCodeRequest,
    SetupProjectRulesRequest,
)
from devassist.storage.database import Database

logger = logging.getLogger(__name__)

SERVER_NAME = "dev-assistant"


def call_tool(
    handler: Callable[[ServerContext, BaseModel], str],
    context: ServerContext,
    model: type[BaseModel],
    **arguments,
) -> str:
    """Validate ``arguments`` against ``model`` and run ``handler``.

    Every failure surfaces to the client as a ToolError.
    """
    try:
        request = model.model_validate(arguments)
    except ValidationError as e:
        raise ToolError(f"Invalid arguments: {e}") from e

    try:
        return handler(context, request)
    except (DevAssistError, ValueError, FileNotFoundError) as e:
        logger.error("%s failed: %s", handler.__name__, e)
        raise ToolError(str(e)) from e


def create_server(ctx: ServerContext) -> FastMCP:
    """Build the FastMCP server with every tool bound to ``ctx``."""
    mcp = FastMCP(SERVER_NAME)

    # -- Fact memory -------------------------------------------------------

    @mcp.tool()
    def remember_fact(
        category: str,
        fact: str,
        context: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> str:
        """Store a fact about the project for later recall.

        Categories group related facts (e.g. "architecture", "decisions").
        """
        return call_tool(
            handlers.remember_fact, ctx, RememberFactRequest,
            category=category, fact=fact, context=context, tags=tags or [],
        )

    @mcp.tool()
    def recall_facts(
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
        limit: int = 20,
    ) -> str:
        """Recall stored facts, filtered by category, tags or a text search."""
        return call_tool(
            handlers.recall_facts, ctx, RecallFactsRequest,
            category=category, tags=tags or [], search=search, limit=limit,
        )

    # -- Rule deployment ---------------------------------------------------

    @mcp.tool()
    def setup_project_rules(
        force_update: bool = False,
        backup_existing: Optional[bool] = None,
        deployed_by: Optional[str] = None,
        workspace_path: Optional[str] = None,
    ) -> str:
        """Deploy the Cursor project rules into <workspace>/.cursor/rules.

        Refuses to overwrite manually modified rules unless force_update is set.
        backup_existing defaults to the configured setting.
        """
        return call_tool(
            handlers.setup_project_rules, ctx, SetupProjectRulesRequest,
            force_update=force_update, backup_existing=backup_existing,
            deployed_by=deployed_by, workspace_path=workspace_path,
        )

    @mcp.tool()
    def rules_status(workspace_path: Optional[str] = None) -> str:
        """Report whether the project rules are up to date, drifted or outdated."""
        return call_tool(handlers.rules_status, ctx, RulesStatusRequest, workspace_path=workspace_path)

    @mcp.tool()
    def rules_history(limit: int = 10, include_files: bool = False) -> str:
        """List past rule deployments, newest first."""
        return call_tool(
            handlers.rules_history, ctx, RulesHistoryRequest,
            limit=limit, include_files=include_files,
        )

    # -- Changes & git -----------------------------------------------------

    @mcp.tool()
    def get_recent_changes(days: int = 7, max_commits: int = 20, include_file_changes: bool = True) -> str:
        """Recent git commits plus file changes seen by the watcher."""
        return call_tool(
            handlers.get_recent_changes, ctx, RecentChangesRequest,
            days=days, max_commits=max_commits, include_file_changes=include_file_changes,
        )

    @mcp.tool()
    def get_file_changes(
        limit: Optional[int] = None,
        since: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> str:
        """File changes observed since the server started."""
        return call_tool(
            handlers.get_file_changes, ctx, FileChangesRequest,
            limit=limit, since=since, file_path=file_path,
        )

    @mcp.tool()
    def get_git_status() -> str:
        """Current branch and working tree status."""
        try:
            return handlers.get_git_status(ctx)
        except DevAssistError as e:
            raise ToolError(str(e)) from e

    @mcp.tool()
    def get_file_history(file_path: str, max_commits: int = 10) -> str:
        """Commits that touched a file."""
        return call_tool(
            handlers.get_file_history, ctx, FileHistoryRequest,
            file_path=file_path, max_commits=max_commits,
        )

    # -- Project analysis --------------------------------------------------

    @mcp.tool()
    def get_project_structure(max_depth: int = 3, include_hidden: bool = False) -> str:
        """Directory tree of the project."""
        return call_tool(
            handlers.get_project_structure, ctx, ProjectStructureRequest,
            max_depth=max_depth, include_hidden=include_hidden,
        )

    @mcp.tool()
    def search_code(
        query: str,
        file_extensions: Optional[list[str]] = None,
        case_sensitive: bool = False,
        max_results: int = 100,
    ) -> str:
        """Regex search across project files."""
        return call_tool(
            handlers.search_code, ctx, SearchCodeRequest,
            query=query, file_extensions=file_extensions or [],
            case_sensitive=case_sensitive, max_results=max_results,
        )

    @mcp.tool()
    def get_file_content(file_path: str) -> str:
        """Read a file from the project."""
        return call_tool(handlers.get_file_content, ctx, FileContentRequest, file_path=file_path)

    @mcp.tool()
    def get_dependencies(include_dev: bool = True) -> str:
        """Declared dependencies and per-file imports."""
        return call_tool(handlers.get_dependencies, ctx, DependenciesRequest, include_dev=include_dev)

    return mcp


def run_server(settings: Settings) -> None:
    """Serve over stdio until the client disconnects.

    The database and file watcher live exactly as long as the server.
    """
    with Database(settings.database_path) as database:
        context = build_context(settings, database)
        if context.watcher is not None:
            context.watcher.start()
        try:
            logger.info("Starting %s for %s", SERVER_NAME, settings.project_root)
            create_server(context).run()
        finally:
            if context.watcher is not None:
                context.watcher.stop()
