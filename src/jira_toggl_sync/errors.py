"""Exceptions raised by the synchronizer."""


class SyncError(Exception):
    """Base class for synchronization errors."""


class FetchError(SyncError):
    """Reading entries from one side failed; the run must not write anything."""

    def __init__(self, container_key: str | None, message: str) -> None:
        """Initialize fetch error.

        Args:
            container_key: Issue key whose entries could not be read, if any.
            message: Underlying error message.
        """
        self.container_key = container_key
        self.message = message
        where = f" for {container_key}" if container_key else ""
        super().__init__(f"Failed to fetch entries{where}: {message}")


class SyncCancelled(SyncError):
    """The caller asked the run to stop."""
