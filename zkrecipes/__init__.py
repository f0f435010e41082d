"""
Coordination Recipes

Primitives di atas coordination service (ZooKeeper-like):
- Fair distributed lock (ephemeral sequential nodes, predecessor watch)
- Bounded FIFO distributed queue (persistent sequential nodes, children watch)
"""

__version__ = "1.0.0"

from .exceptions import (
    CapacityInvariantViolated,
    CoordinationError,
    CoordinationUnavailable,
    LockTimeout,
    NodeVanished,
    QueueTimeout,
)
from .recipes import DistributedBoundedQueue, DistributedLock, LockState, QueueItem

__all__ = [
    'DistributedLock', 'LockState', 'DistributedBoundedQueue', 'QueueItem',
    'CoordinationError', 'CoordinationUnavailable', 'NodeVanished',
    'CapacityInvariantViolated', 'LockTimeout', 'QueueTimeout',
]
