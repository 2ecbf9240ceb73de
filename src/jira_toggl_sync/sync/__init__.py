"""Reconciliation of Toggl time entries with Jira worklogs."""

from jira_toggl_sync.sync.engine import RunStatus, SyncEngine, SyncResult, SyncState
from jira_toggl_sync.sync.executor import OperationExecutor
from jira_toggl_sync.sync.fetcher import EntryFetcher
from jira_toggl_sync.sync.models import (
    CreateOperation,
    DeleteOperation,
    OperationKind,
    OperationResult,
    RawEntry,
    ReconciliationPlan,
    SyncWindow,
    TimeEntry,
    UpdateOperation,
    UserIdentity,
)
from jira_toggl_sync.sync.planner import ReconciliationPlanner

__all__ = [
    "CreateOperation",
    "DeleteOperation",
    "EntryFetcher",
    "OperationExecutor",
    "OperationKind",
    "OperationResult",
    "RawEntry",
    "ReconciliationPlan",
    "ReconciliationPlanner",
    "RunStatus",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "SyncWindow",
    "TimeEntry",
    "UpdateOperation",
    "UserIdentity",
]
