"""Tests for fetching synced worklogs."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from jira_toggl_sync.errors import FetchError, SyncCancelled
from jira_toggl_sync.sync.fetcher import EntryFetcher
from jira_toggl_sync.sync.models import RawEntry, SyncWindow, UserIdentity


def raw_entry(
    window: SyncWindow,
    external_id: str,
    hour: float,
    minutes: int = 60,
    comment: str = "work [[sync:1]]",
    container_key: str = "PROJ-1",
    author: str = "jane",
) -> RawEntry:
    return RawEntry(
        container_key=container_key,
        external_id=external_id,
        start_time=window.start + timedelta(hours=hour),
        duration_seconds=minutes * 60,
        comment=comment,
        author_name=author,
    )


class TestEntryFetcher:
    """Test EntryFetcher functionality."""

    def test_empty_container_keys_makes_no_calls(self, window: SyncWindow, identity: UserIdentity) -> None:
        """Test no repository call happens without containers."""
        source = MagicMock()
        fetcher = EntryFetcher(source, identity)

        assert fetcher.fetch_entries(window, []) == []
        assert source.mock_calls == []

    def test_decodes_synced_entries(self, window: SyncWindow, identity: UserIdentity, fake_jira) -> None:
        """Test comments are split into correlation id and description."""
        fake_jira.add_raw(raw_entry(window, "10001", 9, comment="Fixed login [[sync:42]]"))

        entries = EntryFetcher(fake_jira, identity).fetch_entries(window, ["PROJ-1"])

        assert len(entries) == 1
        assert entries[0].correlation_id == "42"
        assert entries[0].description == "Fixed login"
        assert entries[0].external_id == "10001"
        assert entries[0].container_key == "PROJ-1"

    def test_drops_entries_without_marker(self, window: SyncWindow, identity: UserIdentity, fake_jira) -> None:
        """Test worklogs not written by the synchronizer are ignored."""
        fake_jira.add_raw(raw_entry(window, "10001", 9, comment="Manual worklog"))
        fake_jira.add_raw(raw_entry(window, "10002", 10, comment="[[sync:7]]"))

        entries = EntryFetcher(fake_jira, identity).fetch_entries(window, ["PROJ-1"])

        assert [e.correlation_id for e in entries] == ["7"]

    def test_window_filtering(self, window: SyncWindow, identity: UserIdentity, fake_jira) -> None:
        """Test entries starting before or ending after the window are excluded."""
        fake_jira.add_raw(raw_entry(window, "before", -1, comment="[[sync:1]]"))
        fake_jira.add_raw(raw_entry(window, "inside", 0, comment="[[sync:2]]"))
        fake_jira.add_raw(raw_entry(window, "last", 23, comment="[[sync:3]]"))
        fake_jira.add_raw(raw_entry(window, "overlap", 23.5, comment="[[sync:4]]"))

        entries = EntryFetcher(fake_jira, identity).fetch_entries(window, ["PROJ-1"])

        assert [e.external_id for e in entries] == ["inside", "last"]

    def test_author_filtering(self, window: SyncWindow, identity: UserIdentity, fake_jira) -> None:
        """Test worklogs of other accounts are excluded even inside the window."""
        fake_jira.add_raw(raw_entry(window, "mine", 9, comment="[[sync:1]]"))
        fake_jira.add_raw(raw_entry(window, "theirs", 10, comment="[[sync:2]]", author="john"))

        entries = EntryFetcher(fake_jira, identity).fetch_entries(window, ["PROJ-1"])

        assert [e.external_id for e in entries] == ["mine"]

    def test_merges_containers_sorted_by_start(
        self, window: SyncWindow, identity: UserIdentity, fake_jira
    ) -> None:
        """Test results from all containers come back ordered by start time."""
        fake_jira.add_raw(raw_entry(window, "a", 11, comment="[[sync:3]]", container_key="PROJ-1"))
        fake_jira.add_raw(raw_entry(window, "b", 9, comment="[[sync:1]]", container_key="PROJ-2"))
        fake_jira.add_raw(raw_entry(window, "c", 10, comment="[[sync:2]]", container_key="PROJ-1"))

        entries = EntryFetcher(fake_jira, identity, max_workers=2).fetch_entries(
            window, ["PROJ-2", "PROJ-1"]
        )

        assert [e.correlation_id for e in entries] == ["1", "2", "3"]

    def test_unknown_containers_skipped(self, window: SyncWindow, identity: UserIdentity, fake_jira) -> None:
        """Test keys the repository does not know are not fetched."""
        EntryFetcher(fake_jira, identity).fetch_entries(window, ["PROJ-1", "GONE-9"])

        fetched = [arg for name, arg in fake_jira.calls if name == "fetch_entries"]
        assert fetched == ["PROJ-1"]

    def test_container_failure_raises_fetch_error(self, window: SyncWindow, identity: UserIdentity) -> None:
        """Test a failing container aborts the fetch and is named in the error."""
        source = MagicMock()
        source.resolve_containers.return_value = ["PROJ-1", "PROJ-2"]

        def fetch(_window, key):
            if key == "PROJ-2":
                raise ConnectionError("connection reset")
            return []

        source.fetch_entries.side_effect = fetch

        with pytest.raises(FetchError) as excinfo:
            EntryFetcher(source, identity).fetch_entries(window, ["PROJ-1", "PROJ-2"])

        assert excinfo.value.container_key == "PROJ-2"
        assert "connection reset" in str(excinfo.value)

    def test_resolve_failure_raises_fetch_error(self, window: SyncWindow, identity: UserIdentity) -> None:
        source = MagicMock()
        source.resolve_containers.side_effect = ConnectionError("offline")

        with pytest.raises(FetchError):
            EntryFetcher(source, identity).fetch_entries(window, ["PROJ-1"])

    def test_cancelled_before_start(self, window: SyncWindow, identity: UserIdentity) -> None:
        """Test a set cancel event stops the fetch before any call."""
        source = MagicMock()
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(SyncCancelled):
            EntryFetcher(source, identity).fetch_entries(window, ["PROJ-1"], cancel_event)

        source.resolve_containers.assert_not_called()
