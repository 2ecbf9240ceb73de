"""Sync engine reconciling Toggl time entries with Jira worklogs."""

import logging
import threading
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Iterable

from jira_toggl_sync.config import Config
from jira_toggl_sync.errors import FetchError, SyncCancelled
from jira_toggl_sync.sync.executor import OperationExecutor
from jira_toggl_sync.sync.fetcher import EntryFetcher, check_cancelled
from jira_toggl_sync.sync.models import (
    OperationKind,
    OperationResult,
    ReconciliationPlan,
    SyncWindow,
    TimeEntry,
)
from jira_toggl_sync.sync.planner import ReconciliationPlanner
from jira_toggl_sync.sync.ports import TimeEntrySource, WorklogRepository

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Phase of a run."""

    IDLE = "idle"
    FETCHING_SOURCE = "fetching_source"
    FETCHING_TARGET = "fetching_target"
    PLANNING = "planning"
    EXECUTING = "executing"
    REPORTING = "reporting"


class RunStatus(str, Enum):
    """Overall outcome of a run."""

    CONVERGED = "converged"
    CONVERGED_WITH_ERRORS = "converged_with_errors"
    FATAL = "fatal"

    @property
    def exit_code(self) -> int:
        return {
            RunStatus.CONVERGED: 0,
            RunStatus.CONVERGED_WITH_ERRORS: 1,
            RunStatus.FATAL: 2,
        }[self]


class SyncResult:
    """Results from a sync run."""

    def __init__(self, window: SyncWindow | None = None, dry_run: bool = False) -> None:
        """Initialize sync result.

        Args:
            window: Window that was reconciled.
            dry_run: Whether counts describe planned rather than applied changes.
        """
        self.window = window
        self.dry_run = dry_run
        self.plan: ReconciliationPlan | None = None
        self.entries_created = 0
        self.entries_updated = 0
        self.entries_deleted = 0
        self.entries_unchanged = 0
        self.failures: list[OperationResult] = []
        self.fatal_error: str | None = None

    @property
    def entries_failed(self) -> int:
        return len(self.failures)

    def add_plan(self, plan: ReconciliationPlan) -> None:
        """Record the plan; in dry-run mode its operations are counted as done."""
        self.plan = plan
        self.entries_unchanged = plan.unchanged
        if self.dry_run:
            counts = plan.counts()
            self.entries_created = counts[OperationKind.CREATE]
            self.entries_updated = counts[OperationKind.UPDATE]
            self.entries_deleted = counts[OperationKind.DELETE]

    def add_result(self, result: OperationResult) -> None:
        """Record the outcome of one operation."""
        if not result.is_success:
            self.failures.append(result)
        elif result.operation is OperationKind.CREATE:
            self.entries_created += 1
        elif result.operation is OperationKind.UPDATE:
            self.entries_updated += 1
        else:
            self.entries_deleted += 1

    def fail(self, message: str) -> None:
        """Record an error that stopped the run before any write."""
        self.fatal_error = message

    @property
    def status(self) -> RunStatus:
        if self.fatal_error is not None:
            return RunStatus.FATAL
        if self.failures:
            return RunStatus.CONVERGED_WITH_ERRORS
        return RunStatus.CONVERGED

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    def __str__(self) -> str:
        """String representation of results."""
        if self.fatal_error is not None:
            return f"Failed: {self.fatal_error}"
        return (
            f"Created: {self.entries_created}, "
            f"Updated: {self.entries_updated}, "
            f"Deleted: {self.entries_deleted}, "
            f"Unchanged: {self.entries_unchanged}, "
            f"Failed: {self.entries_failed}"
        )


class SyncEngine:
    """Drives one reconciliation run from fetching to reporting."""

    def __init__(
        self,
        config: Config,
        toggl_source: TimeEntrySource,
        jira_repository: WorklogRepository,
        planner: ReconciliationPlanner | None = None,
        executor: OperationExecutor | None = None,
        on_state_change: Callable[[SyncState], None] | None = None,
    ) -> None:
        """Initialize sync engine.

        Args:
            config: Application configuration.
            toggl_source: Toggl time entries, the originating side.
            jira_repository: Jira worklogs, the mirrored side.
            planner: Planner to use. Defaults to ReconciliationPlanner.
            executor: Executor to use. Defaults to one sized by config.max_workers.
            on_state_change: Called with each state the engine enters.
        """
        self.config = config
        self.toggl = toggl_source
        self.jira = jira_repository
        self.planner = planner or ReconciliationPlanner()
        self.executor = executor or OperationExecutor(max_workers=config.max_workers)
        self.on_state_change = on_state_change
        self.state = SyncState.IDLE
        self._lock = threading.Lock()

    def _enter(self, state: SyncState) -> None:
        logger.debug(f"Sync state: {self.state.value} -> {state.value}")
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    def sync(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        dry_run: bool = False,
        issue_keys: Iterable[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> SyncResult:
        """Reconcile Jira worklogs with Toggl entries for a window of days.

        Args:
            from_date: First day to sync. Defaults to config.days_back days ago.
            to_date: Last day to sync. Defaults to today.
            dry_run: If True, only log the planned changes.
            issue_keys: Extra issues to reconcile besides the configured ones.
            cancel_event: Set by the caller to stop the run at the next request.

        Returns:
            Sync results.

        Raises:
            ValueError: If from_date is after to_date.
            RuntimeError: If a run is already in progress on this engine.
        """
        if not self._lock.acquire(blocking=False):
            raise RuntimeError("A sync run is already in progress")
        try:
            return self._run(from_date, to_date, dry_run, issue_keys, cancel_event)
        finally:
            self._enter(SyncState.IDLE)
            self._lock.release()

    def _run(
        self,
        from_date: date | None,
        to_date: date | None,
        dry_run: bool,
        issue_keys: Iterable[str],
        cancel_event: threading.Event | None,
    ) -> SyncResult:
        if to_date is None:
            to_date = date.today()
        if from_date is None:
            from_date = to_date - timedelta(days=self.config.days_back)

        window = SyncWindow.from_dates(from_date, to_date, self.config.timezone)
        result = SyncResult(window=window, dry_run=dry_run)
        logger.info(f"Syncing work logs from {from_date} to {to_date}")

        try:
            self._enter(SyncState.FETCHING_SOURCE)
            source_entries = self._fetch_source(window, cancel_event)
            self._enter(SyncState.FETCHING_TARGET)
            target_entries = self._fetch_target(window, source_entries, issue_keys, cancel_event)
        except (FetchError, SyncCancelled) as e:
            logger.error(f"Sync aborted before any change: {e}")
            result.fail(str(e))
            return result

        self._enter(SyncState.PLANNING)
        in_window = [e for e in source_entries if window.contains(e.start_time, e.duration_seconds)]
        crossing = [e for e in source_entries if not window.contains(e.start_time, e.duration_seconds)]
        if crossing:
            logger.info(f"{len(crossing)} Toggl entries end after the window and are only updated")
        plan = self.planner.plan(in_window, target_entries, crossing)
        result.add_plan(plan)

        self._enter(SyncState.EXECUTING)
        if dry_run:
            for operation in plan.operations:
                logger.info(f"[DRY RUN] Would {operation.kind.value} {operation.entry}")
        else:
            for operation_result in self.executor.execute(plan, self.jira, cancel_event):
                result.add_result(operation_result)

        self._enter(SyncState.REPORTING)
        for failure in result.failures:
            logger.warning(f"Failed: {failure}")
        if not dry_run:
            self.config.storage.set_last_sync_date(datetime.now())

        logger.info(f"Sync complete: {result}")
        return result

    def _fetch_source(
        self, window: SyncWindow, cancel_event: threading.Event | None
    ) -> list[TimeEntry]:
        check_cancelled(cancel_event)
        try:
            entries = self.toggl.fetch_entries(window)
        except Exception as e:
            raise FetchError(None, f"could not read Toggl entries: {e}") from e
        logger.info(f"Found {len(entries)} Toggl time entries")
        return entries

    def _fetch_target(
        self,
        window: SyncWindow,
        source_entries: list[TimeEntry],
        issue_keys: Iterable[str],
        cancel_event: threading.Event | None,
    ) -> list[TimeEntry]:
        check_cancelled(cancel_event)
        try:
            identity = self.jira.current_user()
            discovered = self.jira.discover_containers(window, identity)
        except Exception as e:
            raise FetchError(None, f"could not query Jira: {e}") from e

        container_keys = self._container_keys(source_entries, issue_keys, discovered)
        fetcher = EntryFetcher(self.jira, identity, max_workers=self.config.max_workers)
        return fetcher.fetch_entries(window, container_keys, cancel_event)

    def _container_keys(
        self,
        source_entries: list[TimeEntry],
        issue_keys: Iterable[str],
        discovered: Iterable[str],
    ) -> list[str]:
        """Issues to look for synced worklogs in.

        Issues of the current Toggl entries alone would miss worklogs whose
        entry was deleted, hence the configured and discovered issues.
        """
        keys = {entry.container_key for entry in source_entries}
        keys.update(self.config.issue_keys)
        keys.update(issue_keys)
        keys.update(discovered)
        return sorted(keys)
