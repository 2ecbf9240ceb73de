"""Synchronize Toggl Track time entries to Jira worklogs."""

__version__ = "0.1.0"
