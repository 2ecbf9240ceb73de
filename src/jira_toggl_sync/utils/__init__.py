"""Utility modules for the synchronizer."""

from jira_toggl_sync.utils.logging import get_logger, setup_logging
from jira_toggl_sync.utils.storage import StorageManager

__all__ = ["get_logger", "setup_logging", "StorageManager"]
