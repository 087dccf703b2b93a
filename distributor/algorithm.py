"""
Core distribution algorithm.

This module implements the pure logic that splits a batch of unassigned
work items across telecallers in proportion to their capacity class.

The algorithm is deterministic: given the same inputs in the same order,
it will always produce the same plan. Nothing here touches storage.
"""

from itertools import cycle
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .errors import (
    InvalidWorkerTypeError,
    ItemNotFoundError,
    NoEligibleWorkersError,
    WorkerNotFoundError,
)
from .types import (
    AssignmentPlan,
    CapacityClass,
    DistributionPolicy,
    RoundingStrategy,
    WorkItem,
    Worker,
)


logger = logging.getLogger(__name__)


def distribute(
    items: Sequence[WorkItem],
    workers: Sequence[Worker],
    policy: Optional[DistributionPolicy] = None
) -> AssignmentPlan:
    """
    Distribute items across workers by capacity weight.

    Algorithm:
    1. Compute each worker's base share from the unit share
       (items / total weight) times the worker's weight
    2. Walk workers in the order given, each pulling up to its base
       share off the front of the item list
    3. Deal any leftover items round robin over eligible workers

    Args:
        items: Unassigned items, in the order they should be consumed
        workers: Candidate workers, in the order they should be served
        policy: Distribution policy (defaults to nearest rounding)

    Returns:
        Plan mapping each worker to the items it receives

    Raises:
        NoEligibleWorkersError: If items are present but no worker has weight
        ValueError: If worker or item IDs are duplicated
    """
    policy = policy or DistributionPolicy()

    if not items:
        return AssignmentPlan()

    _check_unique([w.worker_id for w in workers], "worker")
    _check_unique([i.item_id for i in items], "item")

    eligible = [w for w in workers if w.weight > 0]
    if not eligible:
        raise NoEligibleWorkersError(
            f"No eligible workers among {len(workers)} candidates"
        )

    for worker in workers:
        if worker.weight == 0:
            logger.warning(f"Worker {worker.worker_id} has no capacity weight; skipping")

    base_shares = compute_base_shares(len(items), workers, policy.rounding)
    assignments, consumed = assign_proportional(items, workers, base_shares)

    leftover = items[consumed:]
    assign_remainder_round_robin(leftover, eligible, assignments)

    plan = AssignmentPlan(
        assignments=assignments,
        base_shares=base_shares,
        remainder_count=len(leftover)
    )

    logger.debug(
        f"Distributed {plan.total_assigned} items over {len(eligible)} workers "
        f"({plan.remainder_count} by round robin)"
    )

    return plan


def compute_base_shares(
    item_count: int,
    workers: Sequence[Worker],
    rounding: RoundingStrategy = RoundingStrategy.NEAREST
) -> Dict[str, int]:
    """
    Compute the proportional share of each worker.

    With NEAREST, each share is item_count * weight / total_weight rounded
    half up, independently per worker, so the shares may over- or
    undershoot item_count. With FLOOR, the unit share is floored first
    and then multiplied by the weight.

    Integer arithmetic keeps halves exact.

    Args:
        item_count: Number of items to distribute
        workers: Workers, in serving order
        rounding: Rounding strategy

    Returns:
        Dictionary mapping worker_id to base share
    """
    total_weight = sum(w.weight for w in workers)
    if total_weight == 0:
        raise NoEligibleWorkersError("Total capacity weight is zero")

    shares = {}
    for worker in workers:
        if rounding == RoundingStrategy.FLOOR:
            shares[worker.worker_id] = (item_count // total_weight) * worker.weight
        else:
            # floor(n * w / T + 1/2)
            shares[worker.worker_id] = (
                (2 * item_count * worker.weight + total_weight) // (2 * total_weight)
            )
    return shares


def assign_proportional(
    items: Sequence[WorkItem],
    workers: Sequence[Worker],
    base_shares: Dict[str, int]
) -> Tuple[Dict[str, List[str]], int]:
    """
    Hand out base shares in worker order.

    Args:
        items: Items in consumption order
        workers: Workers in serving order
        base_shares: Share per worker_id

    Returns:
        Tuple of (assignments, number of items consumed)
    """
    assignments: Dict[str, List[str]] = {w.worker_id: [] for w in workers}
    index = 0

    for worker in workers:
        take = min(base_shares.get(worker.worker_id, 0), len(items) - index)
        if take <= 0:
            continue
        assignments[worker.worker_id].extend(
            item.item_id for item in items[index:index + take]
        )
        index += take

    return assignments, index


def assign_remainder_round_robin(
    items: Sequence[WorkItem],
    workers: Sequence[Worker],
    assignments: Dict[str, List[str]]
) -> None:
    """
    Append leftover items to workers in round-robin fashion.

    Args:
        items: Leftover items in consumption order
        workers: Eligible workers in serving order
        assignments: Plan under construction, updated in place
    """
    if not items:
        return

    worker_cycle = cycle(workers)

    for item in items:
        worker = next(worker_cycle)
        assignments.setdefault(worker.worker_id, []).append(item.item_id)


def assign_one(
    item_id: str,
    worker_id: str,
    items: Iterable[WorkItem],
    workers: Iterable[Worker]
) -> AssignmentPlan:
    """
    Build a plan assigning a single item to a chosen worker.

    Args:
        item_id: Item to assign
        worker_id: Receiving worker
        items: Known items
        workers: Known workers

    Returns:
        Plan of size one

    Raises:
        ItemNotFoundError: If the item is unknown
        WorkerNotFoundError: If the worker is unknown
        InvalidWorkerTypeError: If the account is not a telecaller
    """
    return assign_many([item_id], worker_id, items, workers)


def assign_many(
    item_ids: Sequence[str],
    worker_id: str,
    items: Iterable[WorkItem],
    workers: Iterable[Worker]
) -> AssignmentPlan:
    """
    Build a plan assigning several items to one chosen worker.

    Item order is preserved; repeated IDs are assigned once.

    Raises:
        ValueError: If item_ids is empty
        ItemNotFoundError: If any item is unknown
        WorkerNotFoundError: If the worker is unknown
        InvalidWorkerTypeError: If the account is not a telecaller
    """
    if not item_ids:
        raise ValueError("At least one item ID is required")

    known = {item.item_id for item in items}
    ordered = list(dict.fromkeys(item_ids))
    missing = [i for i in ordered if i not in known]
    if missing:
        raise ItemNotFoundError(f"Item not found: {', '.join(missing)}")

    worker = _find_worker(worker_id, workers)
    if not worker.is_telecaller:
        raise InvalidWorkerTypeError(
            f"Account {worker_id} is a {worker.user_type.value}, not a TeleCaller"
        )

    return AssignmentPlan(
        assignments={worker.worker_id: ordered},
        base_shares={worker.worker_id: len(ordered)}
    )


def calculate_distribution_metrics(
    plan: AssignmentPlan,
    workers: Sequence[Worker]
) -> dict:
    """
    Calculate metrics about a distribution plan.

    Args:
        plan: Plan produced by distribute() or assign_many()
        workers: Workers the plan was computed for

    Returns:
        Dictionary containing distribution metrics
    """
    by_class = {cls: 0 for cls in CapacityClass}
    for worker in workers:
        if worker.capacity_class is not None:
            by_class[worker.capacity_class] += plan.count_for(worker.worker_id)

    eligible_counts = [plan.count_for(w.worker_id) for w in workers if w.weight > 0]

    return {
        "items_distributed": plan.total_assigned,
        "workers_receiving": sum(1 for ids in plan.assignments.values() if ids),
        "remainder_items": plan.remainder_count,
        "experienced_items": by_class[CapacityClass.EXPERIENCED],
        "fresher_items": by_class[CapacityClass.FRESHER],
        "max_per_worker": max(eligible_counts) if eligible_counts else 0,
        "min_per_worker": min(eligible_counts) if eligible_counts else 0,
    }


def _find_worker(worker_id: str, workers: Iterable[Worker]) -> Worker:
    for worker in workers:
        if worker.worker_id == worker_id:
            return worker
    raise WorkerNotFoundError(f"Worker not found: {worker_id}")


def _check_unique(ids: List[str], kind: str) -> None:
    seen = set()
    for value in ids:
        if value in seen:
            raise ValueError(f"Duplicate {kind} ID: {value}")
        seen.add(value)
