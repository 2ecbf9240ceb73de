"""Pytest configuration and fixtures."""

import itertools
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Sequence

import pytest

from jira_toggl_sync.config import Config
from jira_toggl_sync.sync import correlation
from jira_toggl_sync.sync.models import RawEntry, SyncWindow, TimeEntry, UserIdentity
from jira_toggl_sync.utils import StorageManager

DAY = datetime(2024, 1, 15, tzinfo=timezone.utc)


class FakeJira:
    """In-memory issue tracker implementing the worklog repository contracts."""

    def __init__(self, identity: UserIdentity, issues: Sequence[str] = ()) -> None:
        self.identity = identity
        self.issues = set(issues)
        self.worklogs: dict[str, dict[str, RawEntry]] = {key: {} for key in issues}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(1000)
        self._lock = threading.Lock()

    def add_raw(self, raw: RawEntry) -> None:
        self.issues.add(raw.container_key)
        self.worklogs.setdefault(raw.container_key, {})[raw.external_id] = raw

    def add_synced(self, entry: TimeEntry, author: UserIdentity | None = None) -> None:
        author = author or self.identity
        self.add_raw(
            RawEntry(
                container_key=entry.container_key,
                external_id=entry.external_id or str(next(self._ids)),
                start_time=entry.start_time,
                duration_seconds=entry.duration_seconds,
                comment=correlation.encode(entry.correlation_id, entry.description),
                author_name=author.username,
                author_account_id=author.account_id,
            )
        )

    def all_worklogs(self) -> list[RawEntry]:
        return [raw for logs in self.worklogs.values() for raw in logs.values()]

    # read side

    def current_user(self) -> UserIdentity:
        self.calls.append(("current_user", ""))
        return self.identity

    def resolve_containers(self, container_keys: Sequence[str]) -> list[str]:
        self.calls.append(("resolve_containers", ",".join(container_keys)))
        return [key for key in container_keys if key in self.issues]

    def discover_containers(self, window: SyncWindow, identity: UserIdentity) -> list[str]:
        self.calls.append(("discover_containers", ""))
        return sorted(
            key
            for key, logs in self.worklogs.items()
            if any(raw.author_account_id == identity.account_id for raw in logs.values())
        )

    def fetch_entries(self, window: SyncWindow, container_key: str) -> list[RawEntry]:
        with self._lock:
            self.calls.append(("fetch_entries", container_key))
        return list(self.worklogs.get(container_key, {}).values())

    # write side

    def _check(self, action: str, entry: TimeEntry) -> None:
        with self._lock:
            self.calls.append((action, entry.correlation_id or ""))
        if entry.correlation_id in self.failing:
            raise RuntimeError(f"Simulated failure for {entry.correlation_id}")

    def create(self, entry: TimeEntry) -> str:
        self._check("create", entry)
        with self._lock:
            external_id = str(next(self._ids))
        self.add_synced(entry.with_fields(external_id=external_id))
        return external_id

    def update(self, entry: TimeEntry) -> None:
        self._check("update", entry)
        if entry.external_id not in self.worklogs.get(entry.container_key, {}):
            raise KeyError(f"Worklog {entry.external_id} not found")
        self.add_synced(entry)

    def delete(self, entry: TimeEntry) -> None:
        self._check("delete", entry)
        with self._lock:
            del self.worklogs[entry.container_key][entry.external_id]

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("create", "update", "delete")]


@pytest.fixture
def temp_config_dir() -> Path:
    """Create a temporary configuration directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_manager(temp_config_dir: Path) -> StorageManager:
    """Create a storage manager with temporary directory."""
    return StorageManager(temp_config_dir)


@pytest.fixture
def config(temp_config_dir: Path) -> Config:
    """Create a config instance with temporary directory."""
    return Config(temp_config_dir)


@pytest.fixture
def window() -> SyncWindow:
    """A window covering 2024-01-15 in UTC."""
    return SyncWindow(start=DAY, end=DAY + timedelta(days=1))


@pytest.fixture
def identity() -> UserIdentity:
    """The configured account."""
    return UserIdentity(username="jane", email="jane@example.com", account_id="acc-jane")


@pytest.fixture
def fake_jira(identity: UserIdentity) -> FakeJira:
    """An empty in-memory issue tracker with two issues."""
    return FakeJira(identity, issues=["PROJ-1", "PROJ-2"])


@pytest.fixture
def make_entry() -> Callable[..., TimeEntry]:
    """Factory for entries on 2024-01-15 (UTC)."""

    def _make(
        correlation_id: str | None,
        hour: float,
        minutes: int = 60,
        description: str = "work",
        container_key: str = "PROJ-1",
        external_id: str | None = None,
    ) -> TimeEntry:
        return TimeEntry(
            container_key=container_key,
            correlation_id=correlation_id,
            start_time=DAY + timedelta(hours=hour),
            duration_seconds=minutes * 60,
            description=description,
            external_id=external_id,
        )

    return _make
