"""Concurrent application of a reconciliation plan."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

from jira_toggl_sync.sync.models import (
    Operation,
    OperationKind,
    OperationResult,
    ReconciliationPlan,
)
from jira_toggl_sync.sync.ports import WorklogTarget

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled before execution"

_PAST_TENSE = {
    OperationKind.CREATE: "Created",
    OperationKind.UPDATE: "Updated",
    OperationKind.DELETE: "Deleted",
}


class OperationExecutor:
    """Applies plan operations on a bounded worker pool.

    A failing operation becomes an error result and never stops the others.
    Nothing is retried; failed operations are planned again on the next run.
    """

    def __init__(self, max_workers: int = 4) -> None:
        """Initialize executor.

        Args:
            max_workers: Maximum number of operations in flight.
        """
        self.max_workers = max_workers

    def execute(
        self,
        plan: ReconciliationPlan,
        repository: WorklogTarget,
        cancel_event: threading.Event | None = None,
    ) -> list[OperationResult]:
        """Apply every operation of the plan.

        Operations that have not started when cancel_event is set are
        reported as errors; started ones run to completion.

        Args:
            plan: Operations to apply.
            repository: Issue tracker write side.
            cancel_event: Set by the caller to stop starting operations.

        Returns:
            One result per operation, in plan order.
        """
        if plan.is_empty:
            return []

        results: list[tuple[tuple, OperationResult]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="sync") as executor:
            futures = {
                executor.submit(self._apply, operation, repository, cancel_event): operation
                for operation in plan.operations
            }
            for future in as_completed(futures):
                operation = futures[future]
                results.append((operation.sort_key(), future.result()))

        results.sort(key=lambda item: item[0])
        return [result for _, result in results]

    def _apply(
        self,
        operation: Operation,
        repository: WorklogTarget,
        cancel_event: threading.Event | None,
    ) -> OperationResult:
        if cancel_event is not None and cancel_event.is_set():
            return OperationResult.error(operation.kind, CANCELLED_MESSAGE, operation.entry)

        try:
            entry = operation.apply(repository)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Failed to {operation.kind.value} {operation.entry}: {message}")
            return OperationResult.error(operation.kind, message, operation.entry)

        logger.info(f"{_PAST_TENSE[operation.kind]} {entry}")
        return OperationResult.success(operation.kind, entry)
