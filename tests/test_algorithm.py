"""
Unit tests for the distribution engine.

Run with: pytest tests/test_algorithm.py
"""

from collections import Counter

import pytest

from distributor.types import (
    AssignmentPlan, CapacityClass, DistributionPolicy, RoundingStrategy,
    UserType, WorkItem, Worker
)
from distributor.algorithm import (
    distribute,
    compute_base_shares,
    assign_proportional,
    assign_remainder_round_robin,
    assign_one,
    assign_many,
    calculate_distribution_metrics
)
from distributor.errors import (
    InvalidWorkerTypeError, ItemNotFoundError, NoEligibleWorkersError,
    WorkerNotFoundError
)


def make_items(count):
    return [WorkItem(f"item{i}") for i in range(count)]


def experienced(worker_id):
    return Worker(worker_id, capacity_class=CapacityClass.EXPERIENCED)


def fresher(worker_id):
    return Worker(worker_id, capacity_class=CapacityClass.FRESHER)


def ids(start, stop):
    return [f"item{i}" for i in range(start, stop)]


class TestBaseShares:
    """Test proportional share computation."""

    def test_experienced_gets_double_weight(self):
        """10 items over E+F: 6.67 rounds to 7, 3.33 rounds to 3."""
        shares = compute_base_shares(10, [experienced("E1"), fresher("F1")])

        assert shares == {"E1": 7, "F1": 3}

    def test_shares_sum_exactly(self):
        """7 items over E+E+F: 2.8, 2.8, 1.4."""
        shares = compute_base_shares(7, [experienced("E1"), experienced("E2"), fresher("F1")])

        assert shares == {"E1": 3, "E2": 3, "F1": 1}

    def test_half_rounds_up(self):
        """A share of exactly one half rounds up, not to even."""
        workers = [fresher(f"F{i}") for i in range(6)]

        shares = compute_base_shares(3, workers)

        assert all(share == 1 for share in shares.values())

    def test_floor_strategy(self):
        """Floor variant floors the unit share before weighting."""
        shares = compute_base_shares(
            10, [experienced("E1"), fresher("F1")], RoundingStrategy.FLOOR
        )

        assert shares == {"E1": 6, "F1": 3}

    def test_inert_worker_gets_zero(self):
        """Workers without a recognized class carry no weight."""
        shares = compute_base_shares(10, [Worker("X"), experienced("E1"), fresher("F1")])

        assert shares == {"X": 0, "E1": 7, "F1": 3}

    def test_zero_total_weight(self):
        """Zero total weight cannot produce shares."""
        with pytest.raises(NoEligibleWorkersError):
            compute_base_shares(5, [Worker("X")])


class TestProportionalPass:
    """Test the proportional phase."""

    def test_consumes_in_order(self):
        """Workers take contiguous runs from the front of the list."""
        items = make_items(5)
        workers = [fresher("F1"), fresher("F2")]

        assignments, consumed = assign_proportional(items, workers, {"F1": 2, "F2": 2})

        assert assignments == {"F1": ids(0, 2), "F2": ids(2, 4)}
        assert consumed == 4

    def test_stops_when_items_run_out(self):
        """Later workers get nothing once items are exhausted."""
        items = make_items(5)
        workers = [fresher("F1"), fresher("F2"), fresher("F3")]

        assignments, consumed = assign_proportional(
            items, workers, {"F1": 3, "F2": 3, "F3": 3}
        )

        assert assignments == {"F1": ids(0, 3), "F2": ids(3, 5), "F3": []}
        assert consumed == 5


class TestRemainderPass:
    """Test round-robin remainder assignment."""

    def test_appends_after_existing(self):
        """Leftovers go to the end of each worker's list."""
        assignments = {"F1": ["a"], "F2": ["b"]}

        assign_remainder_round_robin(
            [WorkItem("c"), WorkItem("d"), WorkItem("e")],
            [fresher("F1"), fresher("F2")],
            assignments
        )

        assert assignments == {"F1": ["a", "c", "e"], "F2": ["b", "d"]}

    def test_no_leftovers(self):
        """Nothing changes when there is nothing left."""
        assignments = {"F1": ["a"]}

        assign_remainder_round_robin([], [fresher("F1")], assignments)

        assert assignments == {"F1": ["a"]}


class TestDistribute:
    """Test the full distribution run."""

    def test_ten_items_experienced_and_fresher(self):
        """E1 takes the first seven items, F1 the last three."""
        plan = distribute(make_items(10), [experienced("E1"), fresher("F1")])

        assert plan.assignments == {"E1": ids(0, 7), "F1": ids(7, 10)}
        assert plan.remainder_count == 0

    def test_seven_items_no_remainder(self):
        """Shares that sum exactly skip the remainder phase."""
        workers = [experienced("E1"), experienced("E2"), fresher("F1")]

        plan = distribute(make_items(7), workers)

        assert [len(plan.assignments[w]) for w in ("E1", "E2", "F1")] == [3, 3, 1]
        assert plan.remainder_count == 0

    def test_single_item_goes_to_first_worker(self):
        """One item over E1+F1 lands on E1."""
        plan = distribute(make_items(1), [experienced("E1"), fresher("F1")])

        assert plan.assignments == {"E1": ["item0"], "F1": []}

    def test_undershoot_uses_round_robin(self):
        """Shares rounding down leave items for the remainder phase."""
        workers = [fresher("F1"), fresher("F2"), fresher("F3")]

        plan = distribute(make_items(4), workers)

        assert plan.assignments == {
            "F1": ["item0", "item3"],
            "F2": ["item1"],
            "F3": ["item2"],
        }
        assert plan.remainder_count == 1

    def test_all_shares_zero(self):
        """With more workers than items, round robin does all the work."""
        workers = [fresher(f"F{i}") for i in range(1, 6)]

        plan = distribute(make_items(2), workers)

        assert plan.assignments["F1"] == ["item0"]
        assert plan.assignments["F2"] == ["item1"]
        assert plan.remainder_count == 2

    def test_overshoot_truncates_last_worker(self):
        """Shares rounding up run out before the last worker is full."""
        plan = distribute(make_items(5), [fresher("F1"), fresher("F2")])

        assert plan.assignments == {"F1": ids(0, 3), "F2": ids(3, 5)}

    def test_worker_order_is_kept(self):
        """Workers are served in the order given, not by weight."""
        plan = distribute(make_items(10), [fresher("F1"), experienced("E1")])

        assert plan.assignments == {"F1": ids(0, 3), "E1": ids(3, 10)}

    def test_floor_policy(self):
        """Floor variant hands the leftover to the first worker."""
        policy = DistributionPolicy(rounding=RoundingStrategy.FLOOR)

        plan = distribute(make_items(10), [experienced("E1"), fresher("F1")], policy)

        assert plan.assignments == {"E1": ids(0, 6) + ["item9"], "F1": ids(6, 9)}
        assert plan.remainder_count == 1

    def test_inert_workers_skipped(self):
        """Unrecognized classes and non-telecallers receive nothing."""
        workers = [
            fresher("F1"),
            Worker("X"),
            Worker("A1", user_type=UserType.ADMIN, capacity_class=CapacityClass.EXPERIENCED),
            fresher("F2"),
            fresher("F3"),
        ]

        plan = distribute(make_items(4), workers)

        assert plan.assignments["X"] == []
        assert plan.assignments["A1"] == []
        assert plan.assignments["F1"] == ["item0", "item3"]

    def test_empty_items(self):
        """No items yields an empty plan, not an error."""
        assert distribute([], [experienced("E1")]) == AssignmentPlan()
        assert distribute([], []).is_empty

    def test_no_workers(self):
        """Items without workers cannot be distributed."""
        with pytest.raises(NoEligibleWorkersError):
            distribute(make_items(3), [])

    def test_only_unrecognized_classes(self):
        """Zero total weight fails."""
        with pytest.raises(NoEligibleWorkersError):
            distribute(make_items(3), [Worker("X"), Worker("Y")])

    def test_duplicate_worker_ids(self):
        """Duplicated workers are rejected."""
        with pytest.raises(ValueError):
            distribute(make_items(3), [fresher("F1"), fresher("F1")])

    def test_duplicate_item_ids(self):
        """Duplicated items are rejected."""
        with pytest.raises(ValueError):
            distribute([WorkItem("a"), WorkItem("a")], [fresher("F1")])

    @pytest.mark.parametrize("count", [1, 2, 3, 7, 10, 11, 29, 100, 257])
    def test_conservation(self, count):
        """Every item is assigned exactly once."""
        items = make_items(count)
        workers = [experienced("E1"), fresher("F1"), Worker("X"), fresher("F2"), experienced("E2")]

        plan = distribute(items, workers)

        assert plan.total_assigned == count
        assert Counter(plan.item_ids()) == Counter(i.item_id for i in items)

    def test_per_worker_order_matches_input(self):
        """Each worker's list is increasing in input position."""
        items = make_items(23)
        position = {item.item_id: n for n, item in enumerate(items)}

        plan = distribute(items, [fresher("F1"), fresher("F2"), fresher("F3"), fresher("F4")])

        for item_ids in plan.assignments.values():
            positions = [position[i] for i in item_ids]
            assert positions == sorted(positions)

    def test_deterministic(self):
        """Same inputs, same plan."""
        items = make_items(31)
        workers = [experienced("E1"), fresher("F1"), fresher("F2")]

        assert distribute(items, workers) == distribute(items, workers)

    def test_weight_fairness(self):
        """Experienced share is about twice the fresher share."""
        plan = distribute(make_items(301), [experienced("E1"), fresher("F1"), fresher("F2")])

        e_count = plan.count_for("E1")
        f_count = plan.count_for("F1")
        assert abs(e_count - 2 * f_count) <= 1


class TestManualAssignment:
    """Test manual assignment plans."""

    def setup_method(self):
        self.items = make_items(3)
        self.workers = [
            fresher("F1"),
            Worker("F9"),
            Worker("admin", user_type=UserType.ADMIN),
        ]

    def test_assign_one(self):
        """Produces a plan of size one."""
        plan = assign_one("item1", "F1", self.items, self.workers)

        assert plan.assignments == {"F1": ["item1"]}
        assert plan.total_assigned == 1

    def test_unclassified_telecaller_allowed(self):
        """Capacity class does not matter for manual assignment."""
        plan = assign_one("item0", "F9", self.items, self.workers)

        assert plan.count_for("F9") == 1

    def test_unknown_item(self):
        with pytest.raises(ItemNotFoundError):
            assign_one("missing", "F1", self.items, self.workers)

    def test_unknown_worker(self):
        with pytest.raises(WorkerNotFoundError):
            assign_one("item0", "nobody", self.items, self.workers)

    def test_non_telecaller(self):
        with pytest.raises(InvalidWorkerTypeError):
            assign_one("item0", "admin", self.items, self.workers)

    def test_assign_many_dedupes(self):
        """Repeated IDs are assigned once, first position wins."""
        plan = assign_many(["item2", "item0", "item2"], "F1", self.items, self.workers)

        assert plan.assignments == {"F1": ["item2", "item0"]}

    def test_assign_many_empty(self):
        with pytest.raises(ValueError):
            assign_many([], "F1", self.items, self.workers)


class TestMetrics:
    """Test distribution metrics calculation."""

    def test_basic_metrics(self):
        """Should summarize the plan per class."""
        workers = [experienced("E1"), fresher("F1"), fresher("F2")]
        plan = distribute(make_items(4), workers)

        metrics = calculate_distribution_metrics(plan, workers)

        assert metrics['items_distributed'] == 4
        assert metrics['experienced_items'] == 2
        assert metrics['fresher_items'] == 2
        assert metrics['workers_receiving'] == 3
        assert metrics['max_per_worker'] == 2
        assert metrics['min_per_worker'] == 1

    def test_empty_plan(self):
        metrics = calculate_distribution_metrics(AssignmentPlan(), [])

        assert metrics['items_distributed'] == 0
        assert metrics['max_per_worker'] == 0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
