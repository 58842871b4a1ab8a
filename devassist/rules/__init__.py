"""Rule deployment — managing the bundle of Cursor rule files in a project.

This package provides the primitives for:
- Templates: the standards documents we deploy, rendered per run
- Hashing: content digests used as the identity of each file
- History: an append-only record of what was deployed, when, and by whom
- Backups: snapshots of managed files taken before overwriting them
- Reconciliation: deciding between skip, drift warning, and write
"""

from devassist.rules.engine import (
    Outcome,
    ReconcilePlan,
    ReconcileResult,
    ReconciliationEngine,
    resolve_rules_dir,
)
from devassist.rules.history import Deployment, DeployedFileRecord, DeploymentHistoryStore

__all__ = [
    "Deployment",
    "DeployedFileRecord",
    "DeploymentHistoryStore",
    "Outcome",
    "ReconcilePlan",
    "ReconcileResult",
    "ReconciliationEngine",
    "resolve_rules_dir",
]
