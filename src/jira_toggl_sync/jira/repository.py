"""Jira worklogs seen through the reconciliation contracts."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Sequence

from jira_toggl_sync.jira.client import JiraClient
from jira_toggl_sync.sync import correlation
from jira_toggl_sync.sync.models import RawEntry, SyncWindow, TimeEntry, UserIdentity

logger = logging.getLogger(__name__)


class JiraWorklogRepository:
    """Reads and writes the worklogs mirrored from Toggl.

    Comments written here always carry the correlation marker of the entry.
    """

    def __init__(self, client: JiraClient, username: str | None = None, max_workers: int = 4) -> None:
        """Initialize repository.

        Args:
            client: Jira API client.
            username: Configured login, matched against worklog authors.
            max_workers: Number of issues checked at the same time.
        """
        self.client = client
        self.username = username
        self.max_workers = max_workers
        self._identity: UserIdentity | None = None
        self._identity_lock = threading.Lock()

    def current_user(self) -> UserIdentity:
        with self._identity_lock:
            if self._identity is None:
                me = self.client.get_myself()
                self._identity = UserIdentity(
                    username=self.username or me.name,
                    email=me.email_address,
                    account_id=me.account_id,
                )
                logger.debug(f"Authenticated to Jira as {me.display_name or self._identity.username}")
            return self._identity

    def resolve_containers(self, container_keys: Sequence[str]) -> list[str]:
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="resolve") as executor:
            exists = list(executor.map(self.client.issue_exists, container_keys))
        return [key for key, found in zip(container_keys, exists) if found]

    def discover_containers(self, window: SyncWindow, identity: UserIdentity) -> list[str]:
        author = f'"{identity.account_id}"' if identity.account_id else "currentUser()"
        last_day = (window.end - timedelta(seconds=1)).date()
        jql = (
            f"worklogAuthor = {author} "
            f'AND worklogDate >= "{window.start.date().isoformat()}" '
            f'AND worklogDate <= "{last_day.isoformat()}"'
        )
        keys = self.client.search_issue_keys(jql)
        logger.debug(f"Issues with worklogs in the window: {', '.join(keys) or 'none'}")
        return keys

    def fetch_entries(self, window: SyncWindow, container_key: str) -> list[RawEntry]:
        # startedAfter may be exclusive; the fetcher filters the exact bounds
        worklogs = self.client.get_worklogs(
            container_key,
            started_after=window.start - timedelta(milliseconds=1),
            started_before=window.end,
        )
        return [
            RawEntry(
                container_key=container_key,
                external_id=worklog.id,
                start_time=worklog.started,
                duration_seconds=worklog.time_spent_seconds,
                comment=worklog.comment or "",
                author_name=worklog.author.name if worklog.author else None,
                author_email=worklog.author.email_address if worklog.author else None,
                author_account_id=worklog.author.account_id if worklog.author else None,
            )
            for worklog in worklogs
        ]

    def create(self, entry: TimeEntry) -> str:
        worklog = self.client.add_worklog(
            entry.container_key,
            started=entry.start_time,
            time_spent_seconds=entry.duration_seconds,
            comment=self._comment(entry),
        )
        return worklog.id

    def update(self, entry: TimeEntry) -> None:
        self.client.update_worklog(
            entry.container_key,
            self._external_id(entry),
            started=entry.start_time,
            time_spent_seconds=entry.duration_seconds,
            comment=self._comment(entry),
        )

    def delete(self, entry: TimeEntry) -> None:
        self.client.delete_worklog(entry.container_key, self._external_id(entry))

    @staticmethod
    def _comment(entry: TimeEntry) -> str:
        if entry.correlation_id is None:
            raise ValueError(f"Entry has no correlation id: {entry}")
        return correlation.encode(entry.correlation_id, entry.description)

    @staticmethod
    def _external_id(entry: TimeEntry) -> str:
        if entry.external_id is None:
            raise ValueError(f"Entry has no worklog id: {entry}")
        return entry.external_id
