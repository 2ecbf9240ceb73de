"""Value objects shared by the reconciliation components."""

from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from jira_toggl_sync.sync.ports import WorklogTarget


class SyncWindow(BaseModel):
    """Time range reconciled in one run."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("window bounds must be timezone-aware")
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "SyncWindow":
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")
        return self

    @classmethod
    def from_dates(cls, from_date: date, to_date: date, tz: tzinfo | None = None) -> "SyncWindow":
        """Build a window covering whole days, both ends included.

        Args:
            from_date: First day of the window.
            to_date: Last day of the window.
            tz: Timezone of the days. Defaults to the local timezone.

        Returns:
            Window from midnight of from_date to the midnight after to_date.
        """
        tz = tz or datetime.now().astimezone().tzinfo
        return cls(
            start=datetime.combine(from_date, time.min, tzinfo=tz),
            end=datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=tz),
        )

    def contains(self, start_time: datetime, duration_seconds: int) -> bool:
        """Check that an interval lies fully inside the window."""
        return (
            start_time >= self.start
            and start_time + timedelta(seconds=duration_seconds) <= self.end
        )

    def __str__(self) -> str:
        return f"{self.start.isoformat()} .. {self.end.isoformat()}"


class UserIdentity(BaseModel):
    """Account whose entries are reconciled."""

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    email: str | None = None
    account_id: str | None = None

    def matches(
        self,
        name: str | None = None,
        email: str | None = None,
        account_id: str | None = None,
    ) -> bool:
        """Check whether an author refers to this account.

        An author matches if its username or account id is equal, or its
        email is equal ignoring case. The configured username may also be
        an email address, as Jira Cloud logins are.
        """
        if account_id and self.account_id and account_id == self.account_id:
            return True
        if name and self.username and name == self.username:
            return True
        if email:
            known = {e.lower() for e in (self.email, self.username) if e}
            return email.lower() in known
        return False


class RawEntry(BaseModel):
    """A worklog as read from the issue tracker, before its comment is decoded."""

    model_config = ConfigDict(frozen=True)

    container_key: str
    external_id: str
    start_time: datetime
    duration_seconds: int = Field(ge=0)
    comment: str = ""
    author_name: str | None = None
    author_email: str | None = None
    author_account_id: str | None = None


class TimeEntry(BaseModel):
    """One recorded interval of work.

    Entries are immutable; use with_fields to derive a changed copy.
    """

    model_config = ConfigDict(frozen=True)

    container_key: str
    correlation_id: str | None = None
    start_time: datetime
    duration_seconds: int = Field(ge=0)
    description: str = ""
    external_id: str | None = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration_seconds)

    def with_fields(self, **changes: Any) -> "TimeEntry":
        """Return a copy of this entry with the given fields replaced."""
        return self.model_copy(update=changes)

    def same_fields(self, other: "TimeEntry") -> bool:
        """Check whether start, duration and description agree with another entry."""
        return (
            self.start_time == other.start_time
            and self.duration_seconds == other.duration_seconds
            and self.description == other.description
        )

    def __str__(self) -> str:
        minutes = self.duration_seconds // 60
        return (
            f"{self.container_key} {self.start_time:%Y-%m-%d %H:%M} "
            f"{minutes}m {self.description!r} [{self.correlation_id}]"
        )


class OperationKind(str, Enum):
    """Kind of change applied to the issue tracker."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Tie-break for operations starting at the same instant.
_KIND_ORDER = {OperationKind.DELETE: 0, OperationKind.UPDATE: 1, OperationKind.CREATE: 2}


class PlannedOperation(BaseModel):
    """Base class of plan operations."""

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[OperationKind]

    entry: TimeEntry

    @property
    def correlation_id(self) -> str | None:
        return self.entry.correlation_id

    @property
    def start_time(self) -> datetime:
        return self.entry.start_time

    def sort_key(self) -> tuple[datetime, str, int]:
        return (self.entry.start_time, self.entry.correlation_id or "", _KIND_ORDER[self.kind])

    def apply(self, repository: "WorklogTarget") -> TimeEntry:
        """Apply this operation and return the entry as persisted."""
        raise NotImplementedError

    def __str__(self) -> str:
        return f"{self.kind.value.upper()} {self.entry}"


class CreateOperation(PlannedOperation):
    """Create a worklog for a source entry that has no counterpart."""

    kind: ClassVar[OperationKind] = OperationKind.CREATE

    def apply(self, repository: "WorklogTarget") -> TimeEntry:
        external_id = repository.create(self.entry)
        return self.entry.with_fields(external_id=external_id)


class UpdateOperation(PlannedOperation):
    """Rewrite an existing worklog; entry holds the target's ids with the source's fields.

    Worklogs cannot change issue, so a moved entry is deleted from the old
    issue and then created on the new one within this single operation.
    """

    kind: ClassVar[OperationKind] = OperationKind.UPDATE

    target: TimeEntry

    @property
    def is_move(self) -> bool:
        return self.target.container_key != self.entry.container_key

    def apply(self, repository: "WorklogTarget") -> TimeEntry:
        if not self.is_move:
            repository.update(self.entry)
            return self.entry

        repository.delete(self.target)
        external_id = repository.create(self.entry)
        return self.entry.with_fields(external_id=external_id)

    def __str__(self) -> str:
        if self.is_move:
            return f"MOVE {self.target.container_key} -> {self.entry}"
        return super().__str__()


class DeleteOperation(PlannedOperation):
    """Remove a synced worklog whose source entry is gone."""

    kind: ClassVar[OperationKind] = OperationKind.DELETE

    def apply(self, repository: "WorklogTarget") -> TimeEntry:
        repository.delete(self.entry)
        return self.entry


Operation = Union[CreateOperation, UpdateOperation, DeleteOperation]


class ReconciliationPlan(BaseModel):
    """Ordered operations converging the issue tracker to the source entries."""

    model_config = ConfigDict(frozen=True)

    operations: tuple[Operation, ...] = ()
    unchanged: int = 0

    def _of_kind(self, kind: OperationKind) -> list[Operation]:
        return [op for op in self.operations if op.kind is kind]

    @property
    def creates(self) -> list[Operation]:
        return self._of_kind(OperationKind.CREATE)

    @property
    def updates(self) -> list[Operation]:
        return self._of_kind(OperationKind.UPDATE)

    @property
    def deletes(self) -> list[Operation]:
        return self._of_kind(OperationKind.DELETE)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def counts(self) -> dict[OperationKind, int]:
        return {kind: len(self._of_kind(kind)) for kind in OperationKind}

    def __len__(self) -> int:
        return len(self.operations)


class ResultStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class OperationResult(BaseModel):
    """Outcome of one operation, carrying the entry it acted on."""

    model_config = ConfigDict(frozen=True)

    status: ResultStatus
    operation: OperationKind
    entry: TimeEntry
    message: str | None = None

    @classmethod
    def success(cls, operation: OperationKind, entry: TimeEntry) -> "OperationResult":
        return cls(status=ResultStatus.SUCCESS, operation=operation, entry=entry)

    @classmethod
    def error(cls, operation: OperationKind, message: str, entry: TimeEntry) -> "OperationResult":
        return cls(status=ResultStatus.ERROR, operation=operation, entry=entry, message=message)

    @property
    def is_success(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    def __str__(self) -> str:
        if self.is_success:
            return f"{self.operation.value} ok: {self.entry}"
        return f"{self.operation.value} failed: {self.entry}: {self.message}"
