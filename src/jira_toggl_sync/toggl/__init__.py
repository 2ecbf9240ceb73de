"""Toggl Track API integration."""

from jira_toggl_sync.toggl.client import TogglClient
from jira_toggl_sync.toggl.models import TogglTimeEntry, TogglUser
from jira_toggl_sync.toggl.source import TogglEntrySource

__all__ = [
    "TogglClient",
    "TogglEntrySource",
    "TogglTimeEntry",
    "TogglUser",
]
