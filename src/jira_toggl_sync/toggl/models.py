"""Pydantic models for Toggl Track API responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TogglUser(BaseModel):
    """Toggl user model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    fullname: str = ""
    default_workspace_id: int | None = None
    timezone: str | None = None


class TogglTimeEntry(BaseModel):
    """Toggl time entry model.

    A running entry has no stop time and a negative duration.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    workspace_id: int = Field(alias="wid")
    project_id: int | None = Field(default=None, alias="pid")
    task_id: int | None = Field(default=None, alias="tid")
    user_id: int | None = Field(default=None, alias="uid")
    description: str | None = None
    start: datetime
    stop: datetime | None = None
    duration: int
    billable: bool = False
    tags: list[str] | None = None

    @property
    def is_running(self) -> bool:
        return self.duration < 0 or self.stop is None
