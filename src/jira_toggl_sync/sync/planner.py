"""Diffing of Toggl entries against synced Jira worklogs."""

import logging
from typing import Iterable

from jira_toggl_sync.sync.models import (
    CreateOperation,
    DeleteOperation,
    Operation,
    ReconciliationPlan,
    TimeEntry,
    UpdateOperation,
)

logger = logging.getLogger(__name__)


class ReconciliationPlanner:
    """Computes the operations that make the worklogs mirror the source entries.

    Planning is pure: no I/O, and the same inputs always give the same plan.
    Both inputs must have been selected for the same window.
    """

    def plan(
        self,
        source_entries: Iterable[TimeEntry],
        target_entries: Iterable[TimeEntry],
        boundary_entries: Iterable[TimeEntry] = (),
    ) -> ReconciliationPlan:
        """Build the plan for one run.

        Boundary entries start inside the window but now end after it. They
        never create a worklog; they only keep an already synced one from
        being deleted and update it instead.

        Args:
            source_entries: Entries of the originating system, keyed by correlation id.
            target_entries: Worklogs previously synced, keyed by correlation id.
            boundary_entries: Source entries crossing the window end.

        Returns:
            Operations ordered by start time of the entry they concern.
        """
        sources = self._index_sources(source_entries)
        boundary = {
            entry.correlation_id: entry
            for entry in boundary_entries
            if entry.correlation_id is not None and entry.correlation_id not in sources
        }
        targets, duplicates = self._index_targets(target_entries)

        operations: list[Operation] = [DeleteOperation(entry=entry) for entry in duplicates]
        unchanged = 0

        for correlation_id, source in sources.items():
            target = targets.get(correlation_id)
            if target is None:
                operations.append(CreateOperation(entry=source))
                continue
            operation = self._reconcile(source, target)
            if operation is None:
                unchanged += 1
            else:
                operations.append(operation)

        for correlation_id, target in targets.items():
            if correlation_id in sources:
                continue
            if correlation_id not in boundary:
                operations.append(DeleteOperation(entry=target))
                continue
            operation = self._reconcile(boundary[correlation_id], target)
            if operation is None:
                unchanged += 1
            else:
                operations.append(operation)

        operations.sort(key=lambda op: op.sort_key())
        plan = ReconciliationPlan(operations=tuple(operations), unchanged=unchanged)
        logger.info(
            f"Planned {len(plan.creates)} creates, {len(plan.updates)} updates, "
            f"{len(plan.deletes)} deletes, {unchanged} unchanged"
        )
        return plan

    def _reconcile(self, source: TimeEntry, target: TimeEntry) -> Operation | None:
        """Operation bringing a matched worklog in line with its source, None if equal."""
        if target.container_key != source.container_key:
            logger.debug(
                f"Entry {source.correlation_id} moved from {target.container_key} "
                f"to {source.container_key}"
            )
            return UpdateOperation(target=target, entry=source.with_fields(external_id=None))
        if target.same_fields(source):
            return None
        projected = target.with_fields(
            start_time=source.start_time,
            duration_seconds=source.duration_seconds,
            description=source.description,
        )
        return UpdateOperation(target=target, entry=projected)

    def _index_sources(self, entries: Iterable[TimeEntry]) -> dict[str, TimeEntry]:
        index: dict[str, TimeEntry] = {}
        for entry in entries:
            if entry.correlation_id is None:
                logger.warning(f"Ignoring source entry without correlation id: {entry}")
                continue
            if entry.correlation_id in index:
                logger.warning(f"Duplicate source entry {entry.correlation_id}, keeping the later one")
            index[entry.correlation_id] = entry
        return index

    def _index_targets(
        self, entries: Iterable[TimeEntry]
    ) -> tuple[dict[str, TimeEntry], list[TimeEntry]]:
        """Index worklogs by correlation id.

        When several worklogs carry the same id, the earliest one is the
        match and the others are returned as duplicates to delete.
        """
        index: dict[str, TimeEntry] = {}
        duplicates: list[TimeEntry] = []
        ordered = sorted(
            (e for e in entries if e.correlation_id is not None),
            key=lambda e: (e.start_time, e.external_id or ""),
        )
        for entry in ordered:
            if entry.correlation_id in index:
                logger.warning(
                    f"Worklog {entry.external_id} duplicates entry {entry.correlation_id}"
                )
                duplicates.append(entry)
            else:
                index[entry.correlation_id] = entry
        return index, duplicates
