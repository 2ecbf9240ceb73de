"""Jira API integration."""

from jira_toggl_sync.jira.client import JiraClient
from jira_toggl_sync.jira.models import JiraUser, JiraWorklog
from jira_toggl_sync.jira.repository import JiraWorklogRepository

__all__ = [
    "JiraClient",
    "JiraUser",
    "JiraWorklog",
    "JiraWorklogRepository",
]
