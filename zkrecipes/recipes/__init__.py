"""Coordination recipes: distributed lock dan bounded queue"""

from .ranking import Rank, compute_rank, parse_sequence, sort_by_sequence
from .watch_bridge import OneShotSignal, WatchBridge
from .lock import DistributedLock, LockState
from .queue import DistributedBoundedQueue, QueueConsumer, QueueItem, QueueProducer

__all__ = [
    'Rank', 'compute_rank', 'parse_sequence', 'sort_by_sequence',
    'OneShotSignal', 'WatchBridge',
    'DistributedLock', 'LockState',
    'DistributedBoundedQueue', 'QueueItem', 'QueueProducer', 'QueueConsumer',
]
