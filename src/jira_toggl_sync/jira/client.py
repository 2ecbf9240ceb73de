"""Jira REST API client for worklogs."""

import logging
from datetime import datetime
from typing import Any, Iterator

import httpx

from jira_toggl_sync.jira.models import JiraUser, JiraWorklog, format_started

logger = logging.getLogger(__name__)


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class JiraClient:
    """Client for the Jira Cloud REST API v2."""

    API_PATH = "/rest/api/2"
    PAGE_SIZE = 100

    def __init__(
        self,
        base_url: str,
        username: str,
        api_token: str,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Jira client.

        Args:
            base_url: Jira site URL, e.g. https://mycompany.atlassian.net
            username: Login email of the account.
            api_token: Jira API token.
            transport: Optional httpx transport.

        Raises:
            ValueError: If a credential is missing.
        """
        if not base_url or not username or not api_token:
            raise ValueError("Jira URL, username and API token are required")

        self.client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}{self.API_PATH}",
            auth=(username, api_token),
            headers={"Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    def get_myself(self) -> JiraUser:
        """Get the authenticated user.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.get("/myself")
        response.raise_for_status()
        return JiraUser(**response.json())

    def issue_exists(self, issue_key: str) -> bool:
        """Check whether an issue exists and is visible to the account.

        Raises:
            httpx.HTTPError: If API request fails for another reason than 404.
        """
        response = self.client.get(f"/issue/{issue_key}", params={"fields": "key"})
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    def search_issue_keys(self, jql: str) -> list[str]:
        """Get keys of all issues matching a JQL query.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        keys = []
        params: dict[str, Any] = {"jql": jql, "fields": "key", "maxResults": self.PAGE_SIZE}
        while True:
            response = self.client.get("/search/jql", params=params)
            response.raise_for_status()
            data = response.json()
            keys.extend(issue["key"] for issue in data.get("issues", []))

            next_token = data.get("nextPageToken")
            if data.get("isLast", True) or not next_token:
                return keys
            params["nextPageToken"] = next_token

    def get_worklogs(
        self,
        issue_key: str,
        started_after: datetime | None = None,
        started_before: datetime | None = None,
    ) -> list[JiraWorklog]:
        """Get worklogs of an issue, optionally limited to a start range.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        return list(self._iter_worklogs(issue_key, started_after, started_before))

    def _iter_worklogs(
        self,
        issue_key: str,
        started_after: datetime | None,
        started_before: datetime | None,
    ) -> Iterator[JiraWorklog]:
        params: dict[str, Any] = {"startAt": 0, "maxResults": self.PAGE_SIZE}
        if started_after:
            params["startedAfter"] = _to_millis(started_after)
        if started_before:
            params["startedBefore"] = _to_millis(started_before)

        while True:
            response = self.client.get(f"/issue/{issue_key}/worklog", params=params)
            response.raise_for_status()
            data = response.json()
            worklogs = data.get("worklogs", [])
            for item in worklogs:
                yield JiraWorklog(**item)

            params["startAt"] += len(worklogs)
            if not worklogs or params["startAt"] >= data.get("total", 0):
                return

    def add_worklog(
        self,
        issue_key: str,
        started: datetime,
        time_spent_seconds: int,
        comment: str,
    ) -> JiraWorklog:
        """Create a worklog, leaving the remaining estimate untouched.

        Returns:
            Created worklog with its ID.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.post(
            f"/issue/{issue_key}/worklog",
            params={"adjustEstimate": "leave"},
            json=self._worklog_payload(started, time_spent_seconds, comment),
        )
        response.raise_for_status()
        return JiraWorklog(**response.json())

    def update_worklog(
        self,
        issue_key: str,
        worklog_id: str,
        started: datetime,
        time_spent_seconds: int,
        comment: str,
    ) -> None:
        """Replace start, duration and comment of a worklog.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.put(
            f"/issue/{issue_key}/worklog/{worklog_id}",
            params={"adjustEstimate": "leave"},
            json=self._worklog_payload(started, time_spent_seconds, comment),
        )
        response.raise_for_status()

    def delete_worklog(self, issue_key: str, worklog_id: str) -> None:
        """Delete a worklog.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.delete(
            f"/issue/{issue_key}/worklog/{worklog_id}",
            params={"adjustEstimate": "leave"},
        )
        response.raise_for_status()

    @staticmethod
    def _worklog_payload(started: datetime, time_spent_seconds: int, comment: str) -> dict[str, Any]:
        return {
            "comment": comment,
            "started": format_started(started),
            "timeSpentSeconds": time_spent_seconds,
        }

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "JiraClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
