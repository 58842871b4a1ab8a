"""Error taxonomy shared by the storage layer, the rules engine and the tool surface.

Every error carries a human-readable message. Drift is deliberately absent:
it is a reconciliation outcome, not a failure.
"""

from __future__ import annotations


class DevAssistError(Exception):
    """Base class for all dev-assistant failures."""


class ConfigError(DevAssistError):
    """Raised when the configuration file is invalid or unreadable."""


class StorageUnavailable(DevAssistError):
    """The database cannot be opened, read or written."""


class InvalidReference(DevAssistError):
    """A record points at a deployment that does not exist."""


class TargetUnwritable(DevAssistError):
    """The rules directory cannot be created or written to."""


class BackupFailed(DevAssistError):
    """A requested backup could not be completed; nothing was overwritten."""


class WriteVerificationFailed(DevAssistError):
    """A rule file is missing or unreadable right after it was written."""
