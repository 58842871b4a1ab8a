"""Reconciliation — decide whether to deploy the rule bundle, and do it.

Three states are compared on every run:

1. Actual:   the ``.mdc`` files currently in the rules directory
2. Baseline: the hashes recorded by the latest deployment
3. Desired:  the freshly rendered templates

Drift means a managed file on disk no longer matches what was last deployed
(someone edited it by hand). Drift blocks the deployment unless forced.

A template change is judged against the files on disk, not the baseline:
a managed file that already holds the desired content needs no write, even
when no deployment ever recorded it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from devassist.errors import TargetUnwritable, WriteVerificationFailed
from devassist.facts.store import FactStore
from devassist.rules.backup import BackupManager
from devassist.rules.hashing import hash_content, hash_file
from devassist.rules.history import Deployment, DeploymentHistoryStore
from devassist.rules.templates import (
    RULE_TEMPLATES,
    TEMPLATE_VERSION,
    RuleTemplate,
    TemplateArtifact,
    render_templates,
)

logger = logging.getLogger(__name__)

RULES_SUBPATH = Path(".cursor") / "rules"
MANAGED_SUFFIX = ".mdc"
WRITE_PROBE = ".write_test"


class Outcome(Enum):
    ALREADY_UP_TO_DATE = "already_up_to_date"
    DRIFT_WARNING = "drift_warning"
    DEPLOYED = "deployed"


class Action(Enum):
    """What a plan intends to do."""

    SKIP = "skip"
    WARN = "warn"
    WRITE = "write"


@dataclass
class ReconcilePlan:
    """The decision for one rules directory, before anything is written."""

    action: Action
    reason: str
    current_hashes: dict[str, str] = field(default_factory=dict)
    baseline_hashes: dict[str, str] = field(default_factory=dict)
    artifacts: list[TemplateArtifact] = field(default_factory=list)
    desired_hashes: dict[str, str] = field(default_factory=dict)
    drifted_files: list[str] = field(default_factory=list)
    changed_files: list[str] = field(default_factory=list)
    last_deployment: Deployment | None = None

    @property
    def first_run(self) -> bool:
        return not self.current_hashes

    @property
    def has_drift(self) -> bool:
        return len(self.drifted_files) > 0


@dataclass
class ReconcileResult:
    """What a reconciliation did."""

    outcome: Outcome
    target_dir: Path
    template_version: str
    deployment_id: int | None = None
    deployed_at: str = ""
    filenames: list[str] = field(default_factory=list)
    drifted_files: list[str] = field(default_factory=list)
    last_deployment: Deployment | None = None
    backup_path: Path | None = None
    created: bool = False

    @property
    def deployed(self) -> bool:
        return self.outcome == Outcome.DEPLOYED

    def summary(self) -> str:
        if self.outcome == Outcome.ALREADY_UP_TO_DATE:
            return (
                "Project rules are already up to date. "
                "Use force_update=true to overwrite."
            )

        if self.outcome == Outcome.DRIFT_WARNING:
            last = self.last_deployment
            lines = [
                "WARNING: Some .cursor/rules files have been manually modified "
                "since the last deployment.",
                f"- Last deployed: {last.deployed_at if last else 'Unknown'}",
                f"- Last deployed by: {(last.deployed_by if last else None) or 'Unknown'}",
                "- Use force_update=true to overwrite the modifications.",
                "",
                "Modified files detected:",
            ]
            lines.extend(f"  - {name}" for name in self.drifted_files)
            return "\n".join(lines)

        verb = "created" if self.created else "updated"
        deployed_by = (self.last_deployment.deployed_by if self.last_deployment else None)
        lines = [
            f"Cursor project rules successfully {verb}.",
            "",
            "Deployment details:",
            f"- Template version: {self.template_version}",
            f"- Deployed at: {self.deployed_at}",
            f"- Deployed by: {deployed_by or 'Unknown'}",
            f"- Files deployed: {len(self.filenames)}",
            f"- Deployment ID: {self.deployment_id}",
        ]
        if self.backup_path is not None:
            lines.append(f"- Backup created: {_relative_to(self.backup_path, self.target_dir.parent)}")
        lines.extend(["", f"Rules location: {self.target_dir}", "", "Deployed files:"])
        lines.extend(f"  - {name}" for name in self.filenames)
        return "\n".join(lines)


def resolve_rules_dir(workspace_path: str | Path | None = None) -> Path:
    """Return the managed rules directory for a workspace.

    ``<workspace>/.cursor/rules``; a path that already ends in
    ``.cursor/rules`` is used as-is. Defaults to the current directory.
    """
    base = Path(workspace_path) if workspace_path else Path.cwd()
    if base.parts[-2:] == RULES_SUBPATH.parts:
        return base
    return base / RULES_SUBPATH


class ReconciliationEngine:
    """Deploys the rule bundle into a rules directory, guarding against drift."""

    def __init__(
        self,
        history: DeploymentHistoryStore,
        templates: Sequence[RuleTemplate] = RULE_TEMPLATES,
        template_version: str = TEMPLATE_VERSION,
        backups: BackupManager | None = None,
        facts: FactStore | None = None,
        suffix: str = MANAGED_SUFFIX,
    ):
        self.history = history
        self.templates = list(templates)
        self.template_version = template_version
        self.backups = backups or BackupManager()
        self.facts = facts
        self.suffix = suffix

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, target_dir: str | Path, timestamp: str | None = None) -> ReconcilePlan:
        """Classify the directory without touching it."""
        target = Path(target_dir)
        current = self.inventory(target)
        latest = self.history.latest_deployment()
        baseline = self.history.latest_file_hashes()

        artifacts = render_templates(self.templates, timestamp)
        desired = {a.filename: hash_content(a.content) for a in artifacts}

        plan = ReconcilePlan(
            action=Action.WRITE,
            reason="",
            current_hashes=current,
            baseline_hashes=baseline,
            artifacts=artifacts,
            desired_hashes=desired,
            last_deployment=latest,
        )

        if not current:
            plan.reason = "no managed files present (first deployment)"
            return plan

        plan.drifted_files = sorted(
            name for name, digest in current.items()
            if name in baseline and baseline[name] != digest
        )
        plan.changed_files = [
            name for name, digest in desired.items() if current.get(name) != digest
        ]

        if not plan.drifted_files and not plan.changed_files:
            plan.action = Action.SKIP
            plan.reason = "rules already match the templates"
        elif plan.drifted_files:
            plan.action = Action.WARN
            plan.reason = f"{len(plan.drifted_files)} file(s) modified since last deployment"
        else:
            plan.reason = f"{len(plan.changed_files)} template(s) changed"
        return plan

    def reconcile(
        self,
        target_dir: str | Path,
        force_update: bool = False,
        backup_requested: bool = True,
        deployed_by: str | None = None,
    ) -> ReconcileResult:
        """Bring the rules directory in line with the templates.

        Raises:
            TargetUnwritable: The directory cannot be created or written.
            BackupFailed: A requested backup failed; nothing was overwritten.
            WriteVerificationFailed: A written file is missing afterwards.
            StorageUnavailable: The history could not be read or written.
        """
        target = Path(target_dir)
        logger.info("Reconciling rules in %s", target)
        self._ensure_writable(target)

        timestamp = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        plan = self.plan(target, timestamp)

        if not plan.first_run and not force_update:
            if plan.action == Action.SKIP:
                logger.info("Rules in %s are up to date", target)
                return ReconcileResult(
                    outcome=Outcome.ALREADY_UP_TO_DATE,
                    target_dir=target,
                    template_version=self.template_version,
                    last_deployment=plan.last_deployment,
                )
            if plan.action == Action.WARN:
                logger.warning(
                    "Drift detected in %s: %s", target, ", ".join(plan.drifted_files)
                )
                return ReconcileResult(
                    outcome=Outcome.DRIFT_WARNING,
                    target_dir=target,
                    template_version=self.template_version,
                    drifted_files=plan.drifted_files,
                    last_deployment=plan.last_deployment,
                )
        elif force_update and plan.has_drift:
            logger.warning(
                "Overwriting modified rules in %s: %s", target, ", ".join(plan.drifted_files)
            )

        return self._write(plan, target, backup_requested, deployed_by)

    def inventory(self, target_dir: Path) -> dict[str, str]:
        """Hash every managed file directly inside ``target_dir``.

        Unreadable files are logged and left out, as if absent.
        """
        if not target_dir.is_dir():
            return {}

        hashes: dict[str, str] = {}
        for path in sorted(target_dir.iterdir()):
            if not path.name.endswith(self.suffix) or not path.is_file():
                continue
            try:
                hashes[path.name] = hash_file(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable rule file %s: %s", path, e)
        return hashes

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(
        self,
        plan: ReconcilePlan,
        target: Path,
        backup_requested: bool,
        deployed_by: str | None,
    ) -> ReconcileResult:
        backup_path = None
        if backup_requested and plan.current_hashes:
            backup_path = self.backups.backup(target, sorted(plan.current_hashes))

        written = [artifact.filename for artifact in plan.artifacts]

        def write_files() -> None:
            for artifact in plan.artifacts:
                path = target / artifact.filename
                try:
                    with open(path, "w", encoding="utf-8", newline="") as f:
                        f.write(artifact.content)
                except OSError as e:
                    raise TargetUnwritable(f"Failed to write rule file {path}: {e}") from e
            self._verify(target, written)

        # Rows are inserted first so a storage failure aborts before any file is touched.
        deployment = self.history.record(
            self.template_version,
            {name: plan.desired_hashes[name] for name in written},
            deployed_by=deployed_by,
            backup_path=str(backup_path) if backup_path else None,
            before_commit=write_files,
        )

        if self.facts is not None:
            self.facts.store_fact(
                "project-setup",
                f"Cursor project rules deployed (v{self.template_version}) - {len(written)} files",
                f"Deployed by: {deployed_by or 'Unknown'}, Files: {', '.join(written)}",
                ["cursor-rules", "deployment", "project-setup", "mdc-format"],
            )

        return ReconcileResult(
            outcome=Outcome.DEPLOYED,
            target_dir=target,
            template_version=self.template_version,
            deployment_id=deployment.id,
            deployed_at=deployment.deployed_at,
            filenames=written,
            last_deployment=deployment,
            backup_path=backup_path,
            created=plan.first_run,
        )

    def _verify(self, target: Path, filenames: list[str]) -> None:
        for name in filenames:
            path = target / name
            try:
                with open(path, "rb") as f:
                    f.read(1)
            except OSError as e:
                raise WriteVerificationFailed(f"Rule file missing after write: {path}") from e

    def _ensure_writable(self, target: Path) -> None:
        probe = target / WRITE_PROBE
        try:
            target.mkdir(parents=True, exist_ok=True)
            probe.write_text("test")
            probe.unlink()
        except OSError as e:
            raise TargetUnwritable(f"Cannot write to rules directory: {target}. Error: {e}") from e


def _relative_to(path: Path, base: Path) -> str:
    try:
        return str(path.relative_to(base))
    except ValueError:
        return str(path)
