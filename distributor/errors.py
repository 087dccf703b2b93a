"""
Errors raised by the distributor.

Each error carries a stable ``code`` that the HTTP host returns to callers.
"""


class DistributionError(RuntimeError):
    """Base class for all distribution failures."""
    code = "distribution_error"
    retryable = False


class EmptyInputError(DistributionError):
    """Raised when there are no unassigned items to distribute.

    Benign: callers report it informationally and treat the run as a no-op.
    """
    code = "no_unassigned_items"


class NoEligibleWorkersError(DistributionError):
    """Raised when no worker carries a recognized capacity class."""
    code = "no_eligible_workers"


class WorkerNotFoundError(DistributionError):
    code = "worker_not_found"


class ItemNotFoundError(DistributionError):
    code = "item_not_found"


class InvalidWorkerTypeError(DistributionError):
    """Raised when a manual assignment targets an account that is not a telecaller."""
    code = "invalid_worker_type"


class CommitConflictError(DistributionError):
    """Raised when the data moved between snapshot and commit.

    The plan is stale; recompute it from a fresh snapshot instead of
    retrying it as is.
    """
    code = "commit_conflict"
    retryable = True
