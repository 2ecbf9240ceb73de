"""Toggl Track API client."""

import logging
from datetime import datetime
from typing import Any

import httpx

from jira_toggl_sync.toggl.models import TogglTimeEntry, TogglUser

logger = logging.getLogger(__name__)


class TogglClient:
    """Client for the Toggl Track API v9."""

    BASE_URL = "https://api.track.toggl.com/api/v9"

    def __init__(self, api_token: str, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize Toggl client.

        Args:
            api_token: Toggl API token, from the profile page.
            transport: Optional httpx transport.

        Raises:
            ValueError: If no API token is given.
        """
        if not api_token:
            raise ValueError("Toggl API token not provided")

        self.client = httpx.Client(
            base_url=self.BASE_URL,
            auth=(api_token, "api_token"),
            headers={"Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    def get_current_user(self) -> TogglUser:
        """Get current authenticated user.

        Returns:
            User information.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.get("/me")
        response.raise_for_status()
        return TogglUser(**response.json())

    def get_time_entries(self, start: datetime, end: datetime) -> list[TogglTimeEntry]:
        """Get time entries of the current user started in a range.

        Args:
            start: Start of the range (inclusive).
            end: End of the range (exclusive).

        Returns:
            List of time entries.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        params: dict[str, Any] = {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        response = self.client.get("/me/time_entries", params=params)
        response.raise_for_status()

        entries = [TogglTimeEntry(**item) for item in response.json() or []]
        logger.debug(f"Retrieved {len(entries)} Toggl entries between {start} and {end}")
        return entries

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "TogglClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
