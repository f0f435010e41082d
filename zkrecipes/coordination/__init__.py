"""Coordination service clients"""

from .client import CoordinationClient, EventType, NodeStat, WatchEvent, join_path, node_name
from .memory import InMemoryCoordinationService, InMemoryCoordinationClient

__all__ = [
    'CoordinationClient', 'EventType', 'NodeStat', 'WatchEvent', 'join_path', 'node_name',
    'InMemoryCoordinationService', 'InMemoryCoordinationClient',
]
