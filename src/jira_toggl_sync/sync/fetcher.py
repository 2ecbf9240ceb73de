"""Parallel retrieval of synced worklogs from the issue tracker."""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Sequence

from jira_toggl_sync.errors import FetchError, SyncCancelled
from jira_toggl_sync.sync import correlation
from jira_toggl_sync.sync.models import RawEntry, SyncWindow, TimeEntry, UserIdentity
from jira_toggl_sync.sync.ports import WorklogSource

logger = logging.getLogger(__name__)


def check_cancelled(cancel_event: threading.Event | None) -> None:
    """Raise SyncCancelled if the caller has asked to stop."""
    if cancel_event is not None and cancel_event.is_set():
        raise SyncCancelled("Synchronization cancelled")


class EntryFetcher:
    """Collects the worklogs of one account that carry a correlation marker."""

    def __init__(
        self,
        source: WorklogSource,
        identity: UserIdentity,
        max_workers: int = 4,
    ) -> None:
        """Initialize entry fetcher.

        Args:
            source: Issue tracker read side.
            identity: Account whose worklogs are collected.
            max_workers: Number of containers fetched at the same time.
        """
        self.source = source
        self.identity = identity
        self.max_workers = max_workers

    def fetch_entries(
        self,
        window: SyncWindow,
        container_keys: Sequence[str],
        cancel_event: threading.Event | None = None,
    ) -> list[TimeEntry]:
        """Fetch synced entries of the given containers that lie inside the window.

        The first container that fails aborts the whole fetch, so a plan is
        never built from partial data.

        Args:
            window: Time range to fetch.
            container_keys: Issue keys to look into.
            cancel_event: Set by the caller to stop issuing requests.

        Returns:
            Entries sorted by start time.

        Raises:
            FetchError: If a container could not be read.
            SyncCancelled: If cancel_event was set.
        """
        if not container_keys:
            return []

        check_cancelled(cancel_event)
        try:
            resolved = self.source.resolve_containers(sorted(set(container_keys)))
        except Exception as e:
            raise FetchError(None, f"could not resolve issues: {e}") from e

        missing = set(container_keys) - set(resolved)
        if missing:
            logger.warning(f"Ignoring unknown issues: {', '.join(sorted(missing))}")
        if not resolved:
            return []

        entries: list[TimeEntry] = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="fetch") as executor:
            futures: dict[Future[list[TimeEntry]], str] = {
                executor.submit(self._fetch_container, window, key, cancel_event): key
                for key in resolved
            }
            # Without a failure, every future is done when wait() returns.
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()

            for future in done:
                error = future.exception()
                if isinstance(error, (SyncCancelled, FetchError)):
                    raise error
                if error is not None:
                    raise FetchError(futures[future], str(error)) from error
                entries.extend(future.result())

        entries.sort(key=lambda e: (e.start_time, e.container_key, e.external_id or ""))
        logger.info(f"Found {len(entries)} synced worklogs in {len(resolved)} issues")
        return entries

    def _fetch_container(
        self,
        window: SyncWindow,
        container_key: str,
        cancel_event: threading.Event | None,
    ) -> list[TimeEntry]:
        check_cancelled(cancel_event)
        try:
            raw_entries = self.source.fetch_entries(window, container_key)
        except Exception as e:
            logger.error(f"Failed to fetch worklogs of {container_key}: {e}")
            raise FetchError(container_key, str(e)) from e

        entries = []
        for raw in raw_entries:
            entry = self._to_entry(window, raw)
            if entry is not None:
                entries.append(entry)

        logger.debug(f"{container_key}: {len(entries)} of {len(raw_entries)} worklogs are synced entries")
        return entries

    def _to_entry(self, window: SyncWindow, raw: RawEntry) -> TimeEntry | None:
        if not window.contains(raw.start_time, raw.duration_seconds):
            return None
        if not self.identity.matches(raw.author_name, raw.author_email, raw.author_account_id):
            return None

        correlation_id = correlation.decode(raw.comment)
        if correlation_id is None:
            return None

        return TimeEntry(
            container_key=raw.container_key,
            correlation_id=correlation_id,
            start_time=raw.start_time,
            duration_seconds=raw.duration_seconds,
            description=correlation.strip(raw.comment),
            external_id=raw.external_id,
        )
