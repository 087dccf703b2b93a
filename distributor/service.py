"""
Administrative assignment operations.

Ties the pure engine to a store: take a snapshot, compute a plan,
commit it. On a commit conflict the plan is thrown away and recomputed
from a fresh snapshot, waiting between attempts per the backoff policy.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
import logging
import time

from .algorithm import assign_many, calculate_distribution_metrics, distribute
from .errors import CommitConflictError, EmptyInputError
from .store import AssignmentStore
from .types import AssignmentPlan, DistributionPolicy, calculate_backoff


logger = logging.getLogger(__name__)


@dataclass
class AssignmentOutcome:
    """
    Result of an administrative assignment operation.

    Attributes:
        assigned_count: Number of items assigned
        message: Human-readable summary
        plan: Committed plan (empty for a no-op)
        metrics: Distribution metrics for the committed plan
    """
    assigned_count: int
    message: str
    plan: AssignmentPlan = field(default_factory=AssignmentPlan)
    metrics: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'success': True,
            'assigned_count': self.assigned_count,
            'message': self.message,
            'data': self.plan.assignments,
            'metrics': self.metrics,
        }


class AssignmentService:
    """Runs automatic and manual assignments against a store."""

    def __init__(
        self,
        store: AssignmentStore,
        policy: Optional[DistributionPolicy] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.store = store
        self.policy = policy or DistributionPolicy()
        self._sleep = sleep

    def assign_automatically(self) -> AssignmentOutcome:
        """
        Distribute every unassigned item across telecallers.

        Returns:
            Outcome with the number of items assigned; zero when there
            was nothing to assign

        Raises:
            NoEligibleWorkersError: If no telecaller has a capacity class
            CommitConflictError: If every commit attempt conflicted
        """
        try:
            return self._with_retries(self._assign_automatically_once)
        except EmptyInputError as e:
            logger.info(str(e))
            return AssignmentOutcome(assigned_count=0, message=str(e))

    def assign_manually(self, item_ids: Sequence[str], worker_id: str) -> AssignmentOutcome:
        """
        Assign chosen items to one telecaller.

        Raises:
            ValueError: If item_ids is empty
            ItemNotFoundError: If an item is unknown
            WorkerNotFoundError: If the worker is unknown
            InvalidWorkerTypeError: If the account is not a telecaller
            CommitConflictError: If every commit attempt conflicted
        """
        return self._with_retries(lambda: self._assign_manually_once(item_ids, worker_id))

    def _assign_automatically_once(self) -> AssignmentOutcome:
        snapshot = self.store.snapshot()
        items = snapshot.unassigned_items
        if not items:
            raise EmptyInputError("No unassigned items found")

        workers = snapshot.telecallers
        plan = distribute(items, workers, self.policy)
        count = self.store.commit(plan, snapshot)
        metrics = calculate_distribution_metrics(plan, workers)

        logger.info(f"Assigned {count} items across {len(workers)} telecallers")
        logger.info(f"Metrics: {metrics}")

        return AssignmentOutcome(
            assigned_count=count,
            message=f"{count} items assigned automatically",
            plan=plan,
            metrics=metrics
        )

    def _assign_manually_once(self, item_ids: Sequence[str], worker_id: str) -> AssignmentOutcome:
        snapshot = self.store.snapshot()
        plan = assign_many(item_ids, worker_id, snapshot.items, snapshot.workers)
        count = self.store.commit(plan, snapshot)

        logger.info(f"Manually assigned {count} items to {worker_id}")

        return AssignmentOutcome(
            assigned_count=count,
            message=f"{count} items assigned to {worker_id}",
            plan=plan,
            metrics=calculate_distribution_metrics(plan, snapshot.workers)
        )

    def _with_retries(self, attempt: Callable[[], AssignmentOutcome]) -> AssignmentOutcome:
        attempts = self.policy.max_commit_attempts
        for retry in range(attempts):
            try:
                return attempt()
            except CommitConflictError as e:
                if retry + 1 >= attempts:
                    logger.error(f"Giving up after {attempts} commit attempts: {e}")
                    raise
                delay_ms = calculate_backoff(self.policy.backoff, retry)
                logger.warning(f"Commit conflict ({e}); recomputing in {delay_ms}ms")
                self._sleep(delay_ms / 1000.0)
