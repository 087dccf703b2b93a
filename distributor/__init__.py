"""
Work Distributor Package

A deterministic distribution service that assigns unassigned work items
to telecallers in proportion to their capacity class.
"""

__version__ = '0.1.0'

from .types import (
    WorkItem,
    Worker,
    UserType,
    CapacityClass,
    CAPACITY_WEIGHTS,
    AssignmentPlan,
    DistributionPolicy,
    RoundingStrategy,
    BackoffConfig,
    BackoffStrategy,
    calculate_backoff
)

from .errors import (
    DistributionError,
    EmptyInputError,
    NoEligibleWorkersError,
    WorkerNotFoundError,
    ItemNotFoundError,
    InvalidWorkerTypeError,
    CommitConflictError
)

from .algorithm import (
    distribute,
    compute_base_shares,
    assign_proportional,
    assign_remainder_round_robin,
    assign_one,
    assign_many,
    calculate_distribution_metrics
)

from .store import AssignmentStore, Snapshot
from .service import AssignmentService, AssignmentOutcome
from .server import create_app, run_server

__all__ = [
    'WorkItem',
    'Worker',
    'UserType',
    'CapacityClass',
    'CAPACITY_WEIGHTS',
    'AssignmentPlan',
    'DistributionPolicy',
    'RoundingStrategy',
    'BackoffConfig',
    'BackoffStrategy',
    'calculate_backoff',
    'DistributionError',
    'EmptyInputError',
    'NoEligibleWorkersError',
    'WorkerNotFoundError',
    'ItemNotFoundError',
    'InvalidWorkerTypeError',
    'CommitConflictError',
    'distribute',
    'compute_base_shares',
    'assign_proportional',
    'assign_remainder_round_robin',
    'assign_one',
    'assign_many',
    'calculate_distribution_metrics',
    'AssignmentStore',
    'Snapshot',
    'AssignmentService',
    'AssignmentOutcome',
    'create_app',
    'run_server',
]
