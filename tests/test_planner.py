"""Tests for reconciliation planning."""

from jira_toggl_sync.sync.models import OperationKind, UpdateOperation
from jira_toggl_sync.sync.planner import ReconciliationPlanner


class TestReconciliationPlanner:
    """Test ReconciliationPlanner functionality."""

    def test_scenario_create_and_delete(self, make_entry) -> None:
        """Test the unchanged entry is left alone, the new one created, the stale one deleted."""
        source = [
            make_entry("c1", 9, 60, "work"),
            make_entry("c2", 10, 120, "design"),
        ]
        target = [
            make_entry("c1", 9, 60, "work", external_id="w1"),
            make_entry("c3", 14, 60, "old", external_id="w3"),
        ]

        plan = ReconciliationPlanner().plan(source, target)

        assert [(op.kind, op.correlation_id) for op in plan.operations] == [
            (OperationKind.CREATE, "c2"),
            (OperationKind.DELETE, "c3"),
        ]
        assert plan.unchanged == 1
        assert plan.deletes[0].entry.external_id == "w3"

    def test_update_projects_source_fields_onto_target(self, make_entry) -> None:
        """Test an update keeps the worklog id and takes the source's fields."""
        source = [make_entry("c1", 9.5, 45, "new text")]
        target = [make_entry("c1", 9, 60, "old text", external_id="w1")]

        plan = ReconciliationPlanner().plan(source, target)

        assert len(plan) == 1
        update = plan.operations[0]
        assert isinstance(update, UpdateOperation)
        assert update.entry.external_id == "w1"
        assert update.entry.start_time == source[0].start_time
        assert update.entry.duration_seconds == 45 * 60
        assert update.entry.description == "new text"
        assert update.target == target[0]

    def test_each_differing_field_triggers_update(self, make_entry) -> None:
        target = make_entry("c1", 9, 60, "work", external_id="w1")
        planner = ReconciliationPlanner()

        for source in (
            target.with_fields(external_id=None, description="other"),
            target.with_fields(external_id=None, duration_seconds=1800),
            target.with_fields(external_id=None, start_time=target.start_time.replace(minute=5)),
        ):
            assert [op.kind for op in planner.plan([source], [target]).operations] == [
                OperationKind.UPDATE
            ]

    def test_convergence_counts(self, make_entry) -> None:
        """Test creates, updates and deletes match the set differences."""
        source = [make_entry(str(i), i) for i in range(6)]
        target = [
            make_entry("0", 0, external_id="w0"),
            make_entry("1", 1, external_id="w1"),
            make_entry("2", 2, minutes=30, external_id="w2"),
            make_entry("3", 3, description="changed", external_id="w3"),
            make_entry("7", 7, external_id="w7"),
            make_entry("8", 8, external_id="w8"),
            make_entry("9", 9, external_id="w9"),
        ]

        plan = ReconciliationPlanner().plan(source, target)

        assert len(plan.creates) == 2
        assert len(plan.updates) == 2
        assert len(plan.deletes) == 3
        assert plan.unchanged == 2

    def test_applied_plan_is_followed_by_empty_plan(self, make_entry) -> None:
        """Test planning again against the converged target yields nothing."""
        source = [make_entry("1", 9), make_entry("2", 10, description="design")]
        target = [make_entry("1", 9, description="stale", external_id="w1")]
        planner = ReconciliationPlanner()

        plan = planner.plan(source, target)
        converged = [op.entry.with_fields(external_id=op.entry.external_id or "new") for op in plan.operations]

        assert planner.plan(source, converged).is_empty

    def test_empty_inputs(self) -> None:
        assert ReconciliationPlanner().plan([], []).is_empty

    def test_operations_ordered_by_start_time(self, make_entry) -> None:
        """Test operations follow start time regardless of input order."""
        source = [make_entry("late", 15), make_entry("early", 8), make_entry("mid", 12, description="x")]
        target = [make_entry("mid", 12, external_id="w-mid"), make_entry("gone", 10, external_id="w-gone")]

        plan = ReconciliationPlanner().plan(source, target)

        assert [op.correlation_id for op in plan.operations] == ["early", "gone", "mid", "late"]

    def test_duplicate_source_last_one_wins(self, make_entry) -> None:
        """Test a repeated correlation id in the source keeps the later entry."""
        source = [make_entry("c1", 9, description="first"), make_entry("c1", 11, description="second")]

        plan = ReconciliationPlanner().plan(source, [])

        assert len(plan) == 1
        assert plan.operations[0].entry.description == "second"

    def test_duplicate_targets_are_deleted(self, make_entry) -> None:
        """Test extra worklogs carrying the same id are removed and the earliest kept."""
        source = [make_entry("c1", 9)]
        target = [
            make_entry("c1", 9, external_id="w-dup", description="work"),
            make_entry("c1", 9, external_id="w-a", description="work"),
        ]

        plan = ReconciliationPlanner().plan(source, target)

        assert [(op.kind, op.entry.external_id) for op in plan.operations] == [
            (OperationKind.DELETE, "w-dup")
        ]
        assert plan.unchanged == 1

    def test_moved_issue_is_one_operation(self, make_entry) -> None:
        """Test an entry now pointing at another issue gives a single move."""
        source = [make_entry("c1", 9, container_key="PROJ-2")]
        target = [make_entry("c1", 9, container_key="PROJ-1", external_id="w1")]

        plan = ReconciliationPlanner().plan(source, target)

        assert len(plan) == 1
        move = plan.operations[0]
        assert isinstance(move, UpdateOperation)
        assert move.is_move
        assert move.target.container_key == "PROJ-1"
        assert move.entry.container_key == "PROJ-2"
        assert move.entry.external_id is None

    def test_one_operation_per_correlation_id(self, make_entry) -> None:
        """Test no correlation id gets two operations apart from duplicate worklogs."""
        source = [make_entry(str(i), i, container_key="PROJ-2" if i % 2 else "PROJ-1") for i in range(6)]
        target = [make_entry(str(i), i, description="old", external_id=f"w{i}") for i in range(3, 9)]

        plan = ReconciliationPlanner().plan(source, target)

        ids = [op.correlation_id for op in plan.operations]
        assert len(ids) == len(set(ids))

    def test_update_outside_window_still_planned(self, make_entry) -> None:
        """Test an entry whose new end falls past the window is still updated."""
        source = [make_entry("c1", 23, minutes=120)]
        target = [make_entry("c1", 23, minutes=30, external_id="w1")]

        plan = ReconciliationPlanner().plan(source, target)

        assert [op.kind for op in plan.operations] == [OperationKind.UPDATE]

    def test_crossing_entry_updates_existing_worklog(self, make_entry) -> None:
        """Test an entry now ending after the window updates its worklog instead of deleting it."""
        target = [make_entry("c1", 23, minutes=30, external_id="w1")]
        crossing = [make_entry("c1", 23, minutes=120)]

        plan = ReconciliationPlanner().plan([], target, crossing)

        [update] = plan.operations
        assert isinstance(update, UpdateOperation)
        assert update.entry.external_id == "w1"
        assert update.entry.duration_seconds == 120 * 60

    def test_crossing_entry_never_created(self, make_entry) -> None:
        """Test an entry ending after the window without a worklog is left alone."""
        plan = ReconciliationPlanner().plan([], [], [make_entry("c1", 23, minutes=120)])

        assert plan.is_empty
