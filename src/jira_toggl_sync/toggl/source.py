"""Toggl time entries as source entries for reconciliation."""

import logging
import re

from jira_toggl_sync.sync.models import SyncWindow, TimeEntry
from jira_toggl_sync.toggl.client import TogglClient
from jira_toggl_sync.toggl.models import TogglTimeEntry

logger = logging.getLogger(__name__)


def round_duration(seconds: int, minutes: int) -> int:
    """Round a duration to the nearest multiple of the given minutes, halves up."""
    unit = max(1, minutes) * 60
    return (seconds + unit // 2) // unit * unit


def split_issue_key(description: str, pattern: re.Pattern[str]) -> tuple[str | None, str]:
    """Separate the first issue key from the rest of a description.

    "PROJ-12: Fix login" gives ("PROJ-12", "Fix login").
    """
    match = pattern.search(description)
    if not match:
        return None, description.strip()

    before = description[: match.start()].rstrip(" :-\t")
    after = description[match.end():].lstrip(" :-\t")
    text = f"{before} {after}" if before and after else before or after
    return match.group(0), text.strip()


class TogglEntrySource:
    """Reads Toggl entries that name a Jira issue in their description."""

    def __init__(
        self,
        client: TogglClient,
        issue_key_pattern: str = r"[A-Z][A-Z0-9]+-\d+",
        rounding_minutes: int = 1,
    ) -> None:
        """Initialize entry source.

        Args:
            client: Toggl API client.
            issue_key_pattern: Regular expression matching an issue key.
            rounding_minutes: Durations are rounded to this many minutes.
        """
        self.client = client
        self.issue_key_pattern = re.compile(rf"\b(?:{issue_key_pattern})\b")
        self.rounding_minutes = rounding_minutes

    def fetch_entries(self, window: SyncWindow) -> list[TimeEntry]:
        """Get the finished entries started in the window that belong to an issue.

        Entries may end after the window; the engine decides what to do with them.

        Args:
            window: Time range to read.

        Returns:
            Entries sorted by start time, with the Toggl id as correlation id.

        Raises:
            httpx.HTTPError: If the Toggl request fails.
        """
        entries = []
        for toggl_entry in self.client.get_time_entries(window.start, window.end):
            entry = self._to_entry(toggl_entry, window)
            if entry is not None:
                entries.append(entry)

        entries.sort(key=lambda e: (e.start_time, e.correlation_id))
        return entries

    def _to_entry(self, toggl_entry: TogglTimeEntry, window: SyncWindow) -> TimeEntry | None:
        if toggl_entry.is_running:
            logger.debug(f"Skipping running entry {toggl_entry.id}")
            return None

        issue_key, description = split_issue_key(toggl_entry.description or "", self.issue_key_pattern)
        if issue_key is None:
            logger.debug(f"Skipping entry {toggl_entry.id} without issue key")
            return None

        duration = round_duration(toggl_entry.duration, self.rounding_minutes)
        if duration == 0:
            logger.debug(f"Skipping entry {toggl_entry.id} shorter than the rounding unit")
            return None

        start_time = toggl_entry.start.replace(microsecond=0)
        if not window.start <= start_time < window.end:
            logger.debug(f"Skipping entry {toggl_entry.id} starting outside the window")
            return None

        return TimeEntry(
            container_key=issue_key,
            correlation_id=str(toggl_entry.id),
            start_time=start_time,
            duration_seconds=duration,
            description=description,
        )
