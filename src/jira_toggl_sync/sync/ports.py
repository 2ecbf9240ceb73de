"""Contracts the reconciliation components expect from the two remote systems."""

from typing import Protocol, Sequence

from jira_toggl_sync.sync.models import RawEntry, SyncWindow, TimeEntry, UserIdentity


class TimeEntrySource(Protocol):
    """Originating system: the time entries that should exist as worklogs."""

    def fetch_entries(self, window: SyncWindow) -> list[TimeEntry]:
        """Return entries starting inside the window, including those ending after it."""
        ...


class WorklogSource(Protocol):
    """Read side of the issue tracker, per container."""

    def current_user(self) -> UserIdentity: ...

    def resolve_containers(self, container_keys: Sequence[str]) -> list[str]:
        """Return the keys that exist, dropping unknown ones."""
        ...

    def fetch_entries(self, window: SyncWindow, container_key: str) -> list[RawEntry]: ...


class WorklogTarget(Protocol):
    """Write side of the issue tracker. Each call is atomic on the remote side."""

    def create(self, entry: TimeEntry) -> str:
        """Persist a new worklog and return its id."""
        ...

    def update(self, entry: TimeEntry) -> None: ...

    def delete(self, entry: TimeEntry) -> None: ...


class WorklogRepository(WorklogSource, WorklogTarget, Protocol):
    """Issue tracker seen as a whole."""

    def discover_containers(self, window: SyncWindow, identity: UserIdentity) -> list[str]:
        """Return keys of containers holding worklogs of the account in the window."""
        ...
