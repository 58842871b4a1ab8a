"""Tool handlers — the logic behind each MCP tool.

Handlers take a ServerContext and a validated request model and return
the text sent back to the client. They raise DevAssistError, ValueError
or FileNotFoundError on failure; the server layer turns those into tool
errors.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from devassist.analyzers.git_analyzer import GitAnalyzer
from devassist.analyzers.project_analyzer import ProjectAnalyzer
from devassist.config import Settings
from devassist.facts.store import FactStore
from devassist.rules.backup import BackupManager
from devassist.rules.engine import Action, ReconciliationEngine, resolve_rules_dir
from devassist.rules.history import DeploymentHistoryStore
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
from devassist.watch.file_watcher import FileWatcher


@dataclass
class ServerContext:
    """Everything the handlers need, wired to one open database."""

    settings: Settings
    database: Database
    facts: FactStore
    history: DeploymentHistoryStore
    engine: ReconciliationEngine
    git: GitAnalyzer
    project: ProjectAnalyzer
    watcher: FileWatcher | None = None


def build_context(settings: Settings, database: Database) -> ServerContext:
    """Wire the stores and analyzers for ``settings.project_root``."""
    facts = FactStore(database)
    history = DeploymentHistoryStore(database)
    root = settings.project_root
    watcher = None
    if settings.watch:
        watcher = FileWatcher(root, facts=facts, max_recent_changes=settings.max_recent_changes)
    return ServerContext(
        settings=settings,
        database=database,
        facts=facts,
        history=history,
        engine=ReconciliationEngine(history, backups=BackupManager(), facts=facts),
        git=GitAnalyzer(root),
        project=ProjectAnalyzer(root),
        watcher=watcher,
    )


def _json(data) -> str:
    return json.dumps(data, indent=2, default=str)


def _rules_dir(ctx: ServerContext, workspace_path: str | None) -> Path:
    return resolve_rules_dir(workspace_path or ctx.settings.project_root)


# ---------------------------------------------------------------------------
# Fact memory
# ---------------------------------------------------------------------------


def remember_fact(ctx: ServerContext, req: RememberFactRequest) -> str:
    fact_id = ctx.facts.store_fact(req.category, req.fact, req.context, req.tags)
    return f"Fact stored successfully with ID: {fact_id}"


def recall_facts(ctx: ServerContext, req: RecallFactsRequest) -> str:
    facts = ctx.facts.get_facts(req.category, req.tags, req.search, req.limit)
    return _json([asdict(f) for f in facts])


# ---------------------------------------------------------------------------
# Rule deployment
# ---------------------------------------------------------------------------


def setup_project_rules(ctx: ServerContext, req: SetupProjectRulesRequest) -> str:
    """Reconcile the workspace's rules directory and describe the outcome."""
    backup = ctx.settings.backup_existing if req.backup_existing is None else req.backup_existing
    result = ctx.engine.reconcile(
        _rules_dir(ctx, req.workspace_path),
        force_update=req.force_update,
        backup_requested=backup,
        deployed_by=req.deployed_by or ctx.settings.deployed_by,
    )
    return result.summary()


def rules_status(ctx: ServerContext, req: RulesStatusRequest) -> str:
    """What a deployment would do right now, without writing anything."""
    target = _rules_dir(ctx, req.workspace_path)
    plan = ctx.engine.plan(target)
    last = plan.last_deployment
    return _json({
        "rules_dir": str(target),
        "template_version": ctx.engine.template_version,
        "action": plan.action.value,
        "reason": plan.reason,
        "up_to_date": plan.action == Action.SKIP,
        "managed_files": sorted(plan.current_hashes),
        "drifted_files": plan.drifted_files,
        "changed_files": plan.changed_files,
        "last_deployment": asdict(last) if last else None,
    })


def rules_history(ctx: ServerContext, req: RulesHistoryRequest) -> str:
    entries = []
    for deployment in ctx.history.history(req.limit):
        entry = asdict(deployment)
        if req.include_files:
            entry["files"] = [
                {"filename": f.filename, "content_hash": f.content_hash}
                for f in ctx.history.files_of(deployment.id)
            ]
        entries.append(entry)
    return _json(entries)


# ---------------------------------------------------------------------------
# Changes & git
# ---------------------------------------------------------------------------


def get_recent_changes(ctx: ServerContext, req: RecentChangesRequest) -> str:
    analysis = ctx.git.get_recent_changes(req.days, req.max_commits)
    data = {
        "branch": ctx.git.get_current_branch(),
        "git": analysis.to_dict(),
    }
    if req.include_file_changes:
        changes = ctx.watcher.get_recent_changes() if ctx.watcher else []
        data["file_changes"] = [c.to_dict() for c in changes]
    return _json(data)


def get_file_changes(ctx: ServerContext, req: FileChangesRequest) -> str:
    if ctx.watcher is None:
        return _json([])
    if req.file_path:
        changes = ctx.watcher.get_changes_for_file(req.file_path)
    elif req.since:
        try:
            changes = ctx.watcher.get_changes_since(req.since)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {req.since}") from e
    else:
        changes = ctx.watcher.get_recent_changes()
    if req.limit:
        changes = changes[: req.limit]
    return _json([c.to_dict() for c in changes])


def get_git_status(ctx: ServerContext) -> str:
    status = ctx.git.get_status()
    return _json({
        "branch": ctx.git.get_current_branch(),
        "is_git_repository": ctx.git.is_git_repository(),
        "clean": status.is_clean,
        **status.to_dict(),
    })


def get_file_history(ctx: ServerContext, req: FileHistoryRequest) -> str:
    commits = ctx.git.get_file_history(req.file_path, req.max_commits)
    return _json([asdict(c) for c in commits])


# ---------------------------------------------------------------------------
# Project analysis
# ---------------------------------------------------------------------------


def get_project_structure(ctx: ServerContext, req: ProjectStructureRequest) -> str:
    return _json(ctx.project.get_project_structure(req.max_depth, req.include_hidden).to_dict())


def search_code(ctx: ServerContext, req: SearchCodeRequest) -> str:
    matches = ctx.project.search_code(
        req.query,
        req.file_extensions or None,
        req.case_sensitive,
        req.max_results,
    )
    return _json([asdict(m) for m in matches])


def get_file_content(ctx: ServerContext, req: FileContentRequest) -> str:
    return ctx.project.get_file_content(req.file_path)


def get_dependencies(ctx: ServerContext, req: DependenciesRequest) -> str:
    return _json(ctx.project.get_dependencies(req.include_dev).to_dict())
