"""dev-assistant CLI — the main entry point."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from devassist import __version__
from devassist.config import Settings, load_settings
from devassist.errors import DevAssistError
from devassist.logging_config import setup_logging

console = Console()


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/]")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log at INFO level")
@click.option("--debug", is_flag=True, help="Log at DEBUG level")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Path to .devassist.yml (default: search upward)")
@click.option("--project", "-p", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Project root (default: config directory or cwd)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, debug: bool, config_path: Path | None, project: Path | None):
    """dev-assistant — project memory and Cursor rule deployment.

    Remembers facts about a project, tracks its changes, and keeps the
    .cursor/rules bundle deployed without clobbering manual edits.
    """
    try:
        settings = load_settings(config_path, project)
    except DevAssistError as e:
        _fail(str(e))

    level = "DEBUG" if debug else "INFO" if verbose else settings.log_level
    setup_logging(level=level, log_file=settings.log_file)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--no-watch", is_flag=True, help="Do not start the file watcher")
@click.pass_context
def serve(ctx: click.Context, no_watch: bool):
    """Run the MCP server over stdio."""
    from devassist.server.app import run_server

    settings = _settings(ctx)
    if no_watch:
        settings = settings.model_copy(update={"watch": False})
    # stdout belongs to the protocol; nothing else may print there
    try:
        run_server(settings)
    except DevAssistError as e:
        click.echo(f"dev-assistant: {e}", err=True)
        raise SystemExit(1)


# ── Rules ────────────────────────────────────────────────────────────


@main.group()
def rules():
    """Deploy and inspect the Cursor project rules."""


@rules.command()
@click.option("--workspace", "-w", default=None, help="Workspace directory (default: project root)")
@click.option("--force", is_flag=True, help="Overwrite manually modified rules")
@click.option("--backup/--no-backup", default=None, help="Snapshot existing rules first")
@click.option("--deployed-by", default=None, help="Name recorded in the deployment history")
@click.pass_context
def deploy(ctx: click.Context, workspace: str | None, force: bool, backup: bool | None, deployed_by: str | None):
    """Deploy the rule bundle into <workspace>/.cursor/rules."""
    from devassist.facts.store import FactStore
    from devassist.rules.engine import Outcome, ReconciliationEngine, resolve_rules_dir
    from devassist.rules.history import DeploymentHistoryStore
    from devassist.storage.database import Database

    settings = _settings(ctx)
    target = resolve_rules_dir(workspace or settings.project_root)
    console.print(f"\n[bold blue]dev-assistant[/] — Deploying rules: {target}\n")

    try:
        with Database(settings.database_path) as db:
            engine = ReconciliationEngine(DeploymentHistoryStore(db), facts=FactStore(db))
            result = engine.reconcile(
                target,
                force_update=force,
                backup_requested=settings.backup_existing if backup is None else backup,
                deployed_by=deployed_by or settings.deployed_by,
            )
    except DevAssistError as e:
        _fail(f"Deployment failed: {e}")

    style = {
        Outcome.DEPLOYED: "green",
        Outcome.ALREADY_UP_TO_DATE: "dim",
        Outcome.DRIFT_WARNING: "yellow",
    }[result.outcome]
    console.print(result.summary(), style=style, markup=False, highlight=False)
    if result.outcome == Outcome.DRIFT_WARNING:
        raise SystemExit(2)


@rules.command()
@click.option("--workspace", "-w", default=None, help="Workspace directory (default: project root)")
@click.pass_context
def status(ctx: click.Context, workspace: str | None):
    """Show whether the deployed rules are current, drifted or outdated."""
    from devassist.rules.engine import Action, ReconciliationEngine, resolve_rules_dir
    from devassist.rules.history import DeploymentHistoryStore
    from devassist.storage.database import Database

    settings = _settings(ctx)
    target = resolve_rules_dir(workspace or settings.project_root)

    try:
        with Database(settings.database_path) as db:
            plan = ReconciliationEngine(DeploymentHistoryStore(db)).plan(target)
    except DevAssistError as e:
        _fail(str(e))

    if plan.action == Action.SKIP:
        console.print(f"  [green]OK[/] {plan.reason}")
    elif plan.action == Action.WARN:
        console.print(f"  [red]DRIFT[/] {plan.reason}")
        for name in plan.drifted_files:
            console.print(f"    - {name}")
    else:
        console.print(f"  [yellow]OUTDATED[/] {plan.reason}")
        for name in plan.changed_files:
            console.print(f"    - {name}")

    last = plan.last_deployment
    if last:
        console.print(f"\n  Last deployed {last.deployed_at} by {last.deployed_by or 'Unknown'} (#{last.id})")


@rules.command()
@click.option("--limit", "-n", default=10, show_default=True, help="Number of deployments")
@click.pass_context
def history(ctx: click.Context, limit: int):
    """List past deployments, newest first."""
    from devassist.rules.history import DeploymentHistoryStore
    from devassist.storage.database import Database

    try:
        with Database(_settings(ctx).database_path) as db:
            deployments = DeploymentHistoryStore(db).history(limit)
    except DevAssistError as e:
        _fail(str(e))

    if not deployments:
        console.print("[yellow]No deployments recorded.[/]")
        return

    table = Table(title=f"Rule Deployments ({len(deployments)})")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Deployed At", style="cyan")
    table.add_column("By")
    table.add_column("Version", style="green")
    table.add_column("Files", justify="right")
    table.add_column("Backup")

    for d in deployments:
        table.add_row(
            str(d.id), d.deployed_at, d.deployed_by or "-", d.template_version,
            str(d.file_count), d.backup_path or "-",
        )

    console.print(table)


@rules.command()
@click.argument("deployment_id", type=int, required=False)
@click.pass_context
def show(ctx: click.Context, deployment_id: int | None):
    """Show the files of a deployment (default: the latest)."""
    from devassist.rules.history import DeploymentHistoryStore
    from devassist.storage.database import Database

    try:
        with Database(_settings(ctx).database_path) as db:
            store = DeploymentHistoryStore(db)
            deployment = (
                store.get_deployment(deployment_id) if deployment_id is not None
                else store.latest_deployment()
            )
            files = store.files_of(deployment.id) if deployment else []
    except DevAssistError as e:
        _fail(str(e))

    if deployment is None:
        console.print("[yellow]No such deployment.[/]")
        return

    console.print(
        f"\n[bold]Deployment #{deployment.id}[/] v{deployment.template_version} "
        f"at {deployment.deployed_at} by {deployment.deployed_by or 'Unknown'}\n"
    )
    for f in files:
        console.print(f"  [cyan]{f.filename}[/] {f.content_hash[:12]}")


# ── Facts ────────────────────────────────────────────────────────────


@main.group()
def facts():
    """Remember and recall facts about the project."""


@facts.command()
@click.argument("category")
@click.argument("fact")
@click.option("--context", "-c", "context_note", default=None, help="Extra context")
@click.option("--tag", "-t", multiple=True, help="Tag (repeatable)")
@click.pass_context
def remember(ctx: click.Context, category: str, fact: str, context_note: str | None, tag: tuple):
    """Store a FACT under CATEGORY."""
    from devassist.facts.store import FactStore
    from devassist.storage.database import Database

    try:
        with Database(_settings(ctx).database_path) as db:
            fact_id = FactStore(db).store_fact(category, fact, context_note, list(tag))
    except DevAssistError as e:
        _fail(str(e))

    console.print(f"[green]Fact stored with ID:[/] {fact_id}")


@facts.command()
@click.option("--category", default=None, help="Only this category")
@click.option("--tag", "-t", multiple=True, help="Match any of these tags")
@click.option("--search", "-s", default=None, help="Text search in fact and context")
@click.option("--limit", "-n", default=20, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def recall(ctx: click.Context, category: str | None, tag: tuple, search: str | None, limit: int, as_json: bool):
    """Recall stored facts."""
    from dataclasses import asdict

    from devassist.facts.store import FactStore
    from devassist.storage.database import Database

    try:
        with Database(_settings(ctx).database_path) as db:
            found = FactStore(db).get_facts(category, list(tag), search, limit)
    except DevAssistError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps([asdict(f) for f in found], indent=2))
        return

    if not found:
        console.print("[yellow]No facts found.[/]")
        return

    table = Table(title=f"Facts ({len(found)})")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Fact")
    table.add_column("Tags", style="green")
    for f in found:
        table.add_row(str(f.id), escape(f.category), escape(f.fact), escape(", ".join(f.tags)))
    console.print(table)


@facts.command()
@click.pass_context
def categories(ctx: click.Context):
    """List fact categories."""
    from devassist.facts.store import FactStore
    from devassist.storage.database import Database

    try:
        with Database(_settings(ctx).database_path) as db:
            names = FactStore(db).get_categories()
    except DevAssistError as e:
        _fail(str(e))

    for name in names:
        console.print(f"  {name}")


# ── Git ──────────────────────────────────────────────────────────────


@main.group()
def git():
    """Inspect the project's git repository."""


@git.command()
@click.option("--days", default=7, show_default=True)
@click.option("--max-commits", default=20, show_default=True)
@click.pass_context
def changes(ctx: click.Context, days: int, max_commits: int):
    """Recent commits and activity summary."""
    from devassist.analyzers.git_analyzer import GitAnalyzer

    analyzer = GitAnalyzer(_settings(ctx).project_root)
    if not analyzer.is_git_repository():
        console.print("[yellow]Not a git repository.[/]")
        return

    analysis = analyzer.get_recent_changes(days, max_commits)
    summary = analysis.summary
    console.print(
        f"\n[bold blue]dev-assistant[/] — {summary.total_commits} commit(s) in the last {days} day(s)\n"
    )

    table = Table()
    table.add_column("Commit", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Author")
    table.add_column("Message")
    table.add_column("+/-", justify="right")
    for c in analysis.commits:
        table.add_row(c.hash[:8], c.date, c.author, escape(c.message[:60]), f"+{c.insertions}/-{c.deletions}")
    console.print(table)

    if summary.top_authors:
        authors = ", ".join(f"{a.name} ({a.commits})" for a in summary.top_authors)
        console.print(f"\n  Top authors: {authors}")


@git.command(name="status")
@click.pass_context
def git_status(ctx: click.Context):
    """Branch and working tree status."""
    from devassist.analyzers.git_analyzer import GitAnalyzer

    analyzer = GitAnalyzer(_settings(ctx).project_root)
    console.print(f"  Branch: [cyan]{analyzer.get_current_branch()}[/]")

    st = analyzer.get_status()
    if st.is_clean:
        console.print("  [green]Working tree clean[/]")
        return
    for label, paths, color in (
        ("modified", st.modified, "yellow"),
        ("added", st.added, "green"),
        ("deleted", st.deleted, "red"),
        ("untracked", st.untracked, "dim"),
    ):
        for p in paths:
            console.print(f"  [{color}]{label:>9}[/] {p}")


# ── Project ──────────────────────────────────────────────────────────


@main.command()
@click.option("--depth", default=3, show_default=True, help="Maximum directory depth")
@click.option("--hidden", is_flag=True, help="Include dotfiles")
@click.pass_context
def structure(ctx: click.Context, depth: int, hidden: bool):
    """Print the project's directory tree."""
    from devassist.analyzers.project_analyzer import ProjectAnalyzer

    root = ProjectAnalyzer(_settings(ctx).project_root).get_project_structure(depth, hidden)
    tree = Tree(f"[bold]{root.name}[/]")
    _add_nodes(tree, root.children or [])
    console.print(tree)


def _add_nodes(branch: Tree, nodes: list) -> None:
    for node in nodes:
        if node.type == "directory":
            _add_nodes(branch.add(f"[blue]{node.name}/[/]"), node.children or [])
        else:
            branch.add(f"{node.name} [dim]({node.size} B)[/]")


@main.command()
@click.argument("query")
@click.option("--ext", "-e", multiple=True, help="Only files with this extension (repeatable)")
@click.option("--case-sensitive", is_flag=True)
@click.option("--max-results", default=100, show_default=True)
@click.pass_context
def search(ctx: click.Context, query: str, ext: tuple, case_sensitive: bool, max_results: int):
    """Regex search across project files."""
    from devassist.analyzers.project_analyzer import ProjectAnalyzer

    analyzer = ProjectAnalyzer(_settings(ctx).project_root)
    try:
        matches = analyzer.search_code(query, list(ext) or None, case_sensitive, max_results)
    except ValueError as e:
        _fail(str(e))

    if not matches:
        console.print("[yellow]No matches.[/]")
        return

    for m in matches:
        console.print(f"  [cyan]{escape(m.file)}[/]:[dim]{m.line}[/]  {escape(m.content)}", highlight=False)


if __name__ == "__main__":
    main()
