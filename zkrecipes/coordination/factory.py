"""Membuat CoordinationClient berdasarkan konfigurasi"""

import logging
from typing import Optional

from .client import CoordinationClient
from .kazoo_client import KazooCoordinationClient
from .memory import InMemoryCoordinationService
from ..utils.config import Config

logger = logging.getLogger(__name__)


def create_client(backend: Optional[str] = None,
                  service: Optional[InMemoryCoordinationService] = None) -> CoordinationClient:
    """
    Args:
        backend: 'memory' atau 'zookeeper' (default: Config.COORDINATION_BACKEND)
        service: Shared in-memory service. Semua client yang dibuat dari service
            yang sama melihat tree yang sama.
    """
    backend = (backend or Config.COORDINATION_BACKEND).lower()

    if backend == 'memory':
        service = service or InMemoryCoordinationService()
        return service.connect()
    if backend == 'zookeeper':
        return KazooCoordinationClient(
            hosts=Config.ZK_HOSTS,
            session_timeout=Config.ZK_SESSION_TIMEOUT,
            connect_timeout=Config.ZK_CONNECT_TIMEOUT
        )

    raise ValueError(f"Unknown coordination backend: {backend}")
