"""
Data models for the work distributor.

This module defines the core data structures used in distribution:
- Work items waiting to be assigned
- Workers (telecaller accounts) that receive them
- Assignment plans produced by the engine
- Policy configuration for rounding and commit retries
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import logging


logger = logging.getLogger(__name__)


def _parse_enum(enum_cls, value):
    """Case-insensitive lookup of an enum member by value."""
    for member in enum_cls:
        if member.value == str(value).lower():
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


class UserType(Enum):
    """Account role. Only telecallers may receive work items."""
    ADMIN = "Admin"
    AGENT = "Agent"
    TELECALLER = "TeleCaller"

    @classmethod
    def from_value(cls, value: str) -> "UserType":
        """
        Parse a role string.

        Raises:
            ValueError: If the role is not one of Admin, Agent, TeleCaller
        """
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise ValueError(f"Unknown user type: {value!r}")


class CapacityClass(Enum):
    """Capacity class of a telecaller."""
    EXPERIENCED = "experienced"
    FRESHER = "fresher"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["CapacityClass"]:
        """
        Parse a capacity class string.

        Unknown classes map to None: such a worker carries no weight
        and is left out of automatic distribution.
        """
        if value is None:
            return None
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unrecognized capacity class {value!r}; worker will be inert")
            return None


class RoundingStrategy(Enum):
    """How a worker's base share is derived from the unit share."""
    NEAREST = "nearest"
    FLOOR = "floor"

    @classmethod
    def from_value(cls, value: str) -> "RoundingStrategy":
        return _parse_enum(cls, value)


class BackoffStrategy(Enum):
    """Strategy for retry backoff calculations."""
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    NONE = "none"

    @classmethod
    def from_value(cls, value: str) -> "BackoffStrategy":
        return _parse_enum(cls, value)


# Experienced workers receive twice the share of freshers.
CAPACITY_WEIGHTS: Dict[CapacityClass, int] = {
    CapacityClass.EXPERIENCED: 2,
    CapacityClass.FRESHER: 1,
}


@dataclass(frozen=True)
class WorkItem:
    """
    A unit of work to be distributed (a student record).

    Attributes:
        item_id: Unique identifier for the item
        assigned_to: ID of the owning worker, or None while unassigned
    """
    item_id: str
    assigned_to: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkItem":
        """
        Build an item from a loosely-typed record.

        Raises:
            KeyError: If item_id is missing
        """
        assigned_to = data.get('assigned_to')
        return cls(
            item_id=str(data['item_id']),
            assigned_to=str(assigned_to) if assigned_to is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'item_id': self.item_id, 'assigned_to': self.assigned_to}


@dataclass(frozen=True)
class Worker:
    """
    An account that may receive work items.

    Attributes:
        worker_id: Unique identifier for the worker
        user_type: Role of the account
        capacity_class: Capacity class, None if unrecognized
        assigned_count: Running total of items ever assigned to this worker
    """
    worker_id: str
    user_type: UserType = UserType.TELECALLER
    capacity_class: Optional[CapacityClass] = None
    assigned_count: int = 0

    def __post_init__(self):
        """Validate worker fields."""
        if self.assigned_count < 0:
            raise ValueError(f"Assigned count cannot be negative, got {self.assigned_count}")

    @property
    def is_telecaller(self) -> bool:
        return self.user_type is UserType.TELECALLER

    @property
    def weight(self) -> int:
        """Share weight; zero for non-telecallers and unrecognized classes."""
        if not self.is_telecaller or self.capacity_class is None:
            return 0
        return CAPACITY_WEIGHTS.get(self.capacity_class, 0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Worker":
        """
        Build a worker from a loosely-typed record.

        Raises:
            KeyError: If worker_id is missing
            ValueError: If user_type is unknown or assigned_count is negative
        """
        return cls(
            worker_id=str(data['worker_id']),
            user_type=UserType.from_value(data.get('user_type', UserType.TELECALLER.value)),
            capacity_class=CapacityClass.from_value(data.get('capacity_class')),
            assigned_count=int(data.get('assigned_count', 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'worker_id': self.worker_id,
            'user_type': self.user_type.value,
            'capacity_class': self.capacity_class.value if self.capacity_class else None,
            'assigned_count': self.assigned_count,
        }


@dataclass
class AssignmentPlan:
    """
    Output of a distribution run.

    Attributes:
        assignments: Worker ID to ordered item IDs assigned in this run
        base_shares: Worker ID to the share computed in the proportional phase
        remainder_count: Number of items handed out round robin
    """
    assignments: Dict[str, List[str]] = field(default_factory=dict)
    base_shares: Dict[str, int] = field(default_factory=dict)
    remainder_count: int = 0

    @property
    def total_assigned(self) -> int:
        return sum(len(item_ids) for item_ids in self.assignments.values())

    @property
    def is_empty(self) -> bool:
        return self.total_assigned == 0

    def count_for(self, worker_id: str) -> int:
        return len(self.assignments.get(worker_id, []))

    def item_ids(self) -> List[str]:
        """All assigned item IDs, grouped by worker in plan order."""
        return [item_id for ids in self.assignments.values() for item_id in ids]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'assignments': {w: list(ids) for w, ids in self.assignments.items()},
            'base_shares': dict(self.base_shares),
            'remainder_count': self.remainder_count,
        }


@dataclass
class BackoffConfig:
    """
    Configuration for the wait between commit attempts.

    Attributes:
        strategy: The backoff strategy to use
        initial_delay_ms: Initial delay in milliseconds
        max_delay_ms: Maximum delay in milliseconds
        linear_increment_ms: Increment for linear backoff
    """
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    initial_delay_ms: int = 50
    max_delay_ms: int = 1000
    linear_increment_ms: int = 50


@dataclass
class DistributionPolicy:
    """
    Policy configuration for distribution runs.

    Attributes:
        rounding: How base shares are rounded
        backoff: Backoff between commit attempts after a conflict
        max_commit_attempts: Snapshot/compute/commit cycles before giving up
    """
    rounding: RoundingStrategy = RoundingStrategy.NEAREST
    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    max_commit_attempts: int = 3

    def __post_init__(self):
        if self.max_commit_attempts < 1:
            raise ValueError(
                f"max_commit_attempts must be at least 1, got {self.max_commit_attempts}"
            )


def calculate_backoff(config: BackoffConfig, retry_count: int) -> int:
    """
    Calculate backoff delay for a given retry count.

    Args:
        config: Backoff configuration
        retry_count: Number of retries attempted

    Returns:
        Delay in milliseconds
    """
    if config.strategy == BackoffStrategy.NONE:
        return 0
    elif config.strategy == BackoffStrategy.LINEAR:
        return min(config.max_delay_ms,
                   config.linear_increment_ms * retry_count)
    else:  # EXPONENTIAL
        delay = config.initial_delay_ms * (2 ** retry_count)
        return min(config.max_delay_ms, delay)
