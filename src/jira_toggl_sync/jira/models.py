"""Pydantic models for Jira REST API responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

STARTED_FORMAT = "%Y-%m-%dT%H:%M:%S.000%z"


def format_started(value: datetime) -> str:
    """Format a worklog start time the way Jira expects it."""
    return value.strftime(STARTED_FORMAT)


class JiraUser(BaseModel):
    """Jira user model.

    Jira Cloud identifies users by account id; Server and Data Center by name.
    """

    model_config = ConfigDict(populate_by_name=True)

    account_id: str | None = Field(default=None, alias="accountId")
    name: str | None = None
    email_address: str | None = Field(default=None, alias="emailAddress")
    display_name: str | None = Field(default=None, alias="displayName")


class JiraWorklog(BaseModel):
    """Jira worklog model."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    issue_id: str | None = Field(default=None, alias="issueId")
    author: JiraUser | None = None
    comment: str | None = None
    started: datetime
    time_spent_seconds: int = Field(alias="timeSpentSeconds")

    @field_validator("id", "issue_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("started", mode="before")
    @classmethod
    def _parse_started(cls, value: Any) -> Any:
        # Jira sends offsets without a colon, e.g. 2024-01-15T09:00:00.000+0100
        if isinstance(value, str):
            return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f%z")
        return value
