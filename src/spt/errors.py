"""Error taxonomy for the sync engine.

- NotFoundError: permanent for the given key (unknown handle, vanished student).
- TransientError: retry on the next scheduled run (network, timeout, bad payload).
- NotifierError: reminder delivery failed; never escapes the inactivity check.
- PersistenceError: a database operation failed; caught per student by the orchestrator.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync engine errors."""


class NotFoundError(SyncError):
    """A Codeforces handle or a student record does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class TransientError(SyncError):
    """The external source failed in a way that may succeed later."""


class NotifierError(SyncError):
    """The notifier could not deliver a reminder."""


class PersistenceError(SyncError):
    """A read or write against the record store failed."""


class InvalidScheduleError(ValueError):
    """A recurrence rule is not a valid 5-field cron expression."""
