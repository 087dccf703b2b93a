"""
In-memory assignment store.

Holds items and workers, hands out immutable snapshots for the engine,
and applies plans atomically. A commit is rejected when any targeted
item or worker changed since the snapshot the plan was computed from.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import threading

from .errors import CommitConflictError, ItemNotFoundError, WorkerNotFoundError
from .types import AssignmentPlan, WorkItem, Worker


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time view of the store.

    Attributes:
        items: Items in insertion order
        workers: Workers in insertion order
    """
    items: Tuple[WorkItem, ...]
    workers: Tuple[Worker, ...]

    @property
    def unassigned_items(self) -> List[WorkItem]:
        return [item for item in self.items if not item.is_assigned]

    @property
    def telecallers(self) -> List[Worker]:
        return [worker for worker in self.workers if worker.is_telecaller]


class AssignmentStore:
    """Thread-safe in-memory store for items and workers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, WorkItem] = {}
        self._workers: Dict[str, Worker] = {}

    def add_worker(self, worker: Worker) -> None:
        self.add_workers([worker])

    def add_workers(self, workers: Sequence[Worker]) -> None:
        """Add several workers; none are added if any ID is taken."""
        with self._lock:
            seen = set()
            for worker in workers:
                if worker.worker_id in self._workers or worker.worker_id in seen:
                    raise ValueError(f"Worker already exists: {worker.worker_id}")
                seen.add(worker.worker_id)
            for worker in workers:
                self._workers[worker.worker_id] = worker

    def add_item(self, item: WorkItem) -> None:
        self.add_items([item])

    def add_items(self, items: Sequence[WorkItem]) -> None:
        """Add several items; none are added if any is invalid."""
        with self._lock:
            seen = set()
            for item in items:
                if item.item_id in self._items or item.item_id in seen:
                    raise ValueError(f"Item already exists: {item.item_id}")
                if item.assigned_to is not None and item.assigned_to not in self._workers:
                    raise WorkerNotFoundError(f"Worker not found: {item.assigned_to}")
                seen.add(item.item_id)
            for item in items:
                self._items[item.item_id] = item

    def get_worker(self, worker_id: str) -> Optional[Worker]:
        with self._lock:
            return self._workers.get(worker_id)

    def get_item(self, item_id: str) -> Optional[WorkItem]:
        with self._lock:
            return self._items.get(item_id)

    def list_workers(self) -> List[Worker]:
        with self._lock:
            return list(self._workers.values())

    def list_items(self, assigned_to: Optional[str] = None) -> List[WorkItem]:
        """List items, optionally only those owned by one worker."""
        with self._lock:
            items = list(self._items.values())
        if assigned_to is not None:
            items = [item for item in items if item.assigned_to == assigned_to]
        return items

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                items=tuple(self._items.values()),
                workers=tuple(self._workers.values())
            )

    def commit(self, plan: AssignmentPlan, snapshot: Snapshot) -> int:
        """
        Apply a plan atomically.

        Args:
            plan: Plan computed from snapshot
            snapshot: Snapshot the plan was computed from

        Returns:
            Number of items written

        Raises:
            CommitConflictError: If a targeted item or worker moved since the snapshot
        """
        seen_items = {item.item_id: item for item in snapshot.items}
        seen_workers = {worker.worker_id: worker for worker in snapshot.workers}

        with self._lock:
            for worker_id, item_ids in plan.assignments.items():
                if not item_ids:
                    continue
                self._check_worker(worker_id, seen_workers.get(worker_id))
                for item_id in item_ids:
                    self._check_item(item_id, seen_items.get(item_id))

            for worker_id, item_ids in plan.assignments.items():
                if not item_ids:
                    continue
                for item_id in item_ids:
                    self._items[item_id] = replace(self._items[item_id], assigned_to=worker_id)
                worker = self._workers[worker_id]
                self._workers[worker_id] = replace(
                    worker, assigned_count=worker.assigned_count + len(item_ids)
                )

        written = plan.total_assigned
        logger.debug(f"Committed {written} assignments")
        return written

    def remove_worker(self, worker_id: str) -> List[str]:
        """
        Remove a worker account and release its items.

        Returns:
            IDs of items returned to the unassigned pool

        Raises:
            WorkerNotFoundError: If the worker is unknown
        """
        with self._lock:
            if worker_id not in self._workers:
                raise WorkerNotFoundError(f"Worker not found: {worker_id}")
            del self._workers[worker_id]

            released = []
            for item_id, item in self._items.items():
                if item.assigned_to == worker_id:
                    self._items[item_id] = replace(item, assigned_to=None)
                    released.append(item_id)

        logger.info(f"Removed worker {worker_id}, released {len(released)} items")
        return released

    def _check_worker(self, worker_id: str, seen: Optional[Worker]) -> None:
        current = self._workers.get(worker_id)
        if seen is None:
            raise WorkerNotFoundError(f"Worker not in snapshot: {worker_id}")
        if current is None or current.assigned_count != seen.assigned_count:
            raise CommitConflictError(f"Worker {worker_id} changed since snapshot")

    def _check_item(self, item_id: str, seen: Optional[WorkItem]) -> None:
        current = self._items.get(item_id)
        if seen is None:
            raise ItemNotFoundError(f"Item not in snapshot: {item_id}")
        if current is None or current.assigned_to != seen.assigned_to:
            raise CommitConflictError(f"Item {item_id} changed since snapshot")
