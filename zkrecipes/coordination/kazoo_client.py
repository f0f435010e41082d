"""
CoordinationClient untuk Apache ZooKeeper menggunakan kazoo.

Kazoo API bersifat blocking, jadi setiap call dijalankan di default executor
dari event loop. Watch callbacks dari kazoo datang di event thread milik kazoo
dan diteruskan apa adanya (sudah di-translate ke WatchEvent).
"""

import asyncio
import functools
import logging
from typing import List, Optional, Tuple

from kazoo.client import KazooClient
from kazoo.exceptions import (
    BadVersionError as KazooBadVersionError,
    KazooException,
    NodeExistsError as KazooNodeExistsError,
    NoNodeError as KazooNoNodeError,
    NotEmptyError as KazooNotEmptyError,
)
from kazoo.handlers.threading import KazooTimeoutError

from .client import CoordinationClient, EventType, NodeStat, WatchCallback, WatchEvent
from ..exceptions import (
    BadVersionError,
    CoordinationUnavailable,
    NodeExistsError,
    NoNodeError,
    NotEmptyError,
)

logger = logging.getLogger(__name__)


# Mapping kazoo exception -> exception kita. Semua yang lain jadi CoordinationUnavailable.
_ERROR_MAP = (
    (KazooNoNodeError, NoNodeError),
    (KazooNodeExistsError, NodeExistsError),
    (KazooBadVersionError, BadVersionError),
    (KazooNotEmptyError, NotEmptyError),
)

_EVENT_MAP = {
    'CREATED': EventType.CREATED,
    'DELETED': EventType.DELETED,
    'CHANGED': EventType.CHANGED,
    'CHILD': EventType.CHILD,
}


def translate_error(error: Exception, path: str = "") -> Exception:
    """Convert kazoo exception ke CoordinationError yang sesuai"""
    for kazoo_type, our_type in _ERROR_MAP:
        if isinstance(error, kazoo_type):
            return our_type(path or str(error))
    return CoordinationUnavailable(f"{type(error).__name__}: {error}")


def translate_event(event) -> WatchEvent:
    """Convert kazoo WatchedEvent ke WatchEvent"""
    event_type = _EVENT_MAP.get(str(event.type).upper(), EventType.SESSION)
    state = str(event.state).lower() if event.state is not None else "connected"
    return WatchEvent(type=event_type, path=event.path, state=state)


def _stat_from_kazoo(stat) -> NodeStat:
    owner = stat.ephemeralOwner or None
    return NodeStat(version=stat.version, num_children=stat.numChildren, ephemeral_owner=owner)


class KazooCoordinationClient(CoordinationClient):
    """
    Session ke ZooKeeper ensemble.

    Args:
        hosts: Comma separated "host:port" list
        session_timeout: ZooKeeper session timeout (seconds)
        connect_timeout: Waktu maksimum untuk start() (seconds)
        kazoo: Optional KazooClient yang sudah dibuat (untuk tests)
    """

    def __init__(self,
                 hosts: str = '127.0.0.1:2181',
                 session_timeout: float = 10.0,
                 connect_timeout: float = 15.0,
                 kazoo: Optional[KazooClient] = None):
        self.hosts = hosts
        self.connect_timeout = connect_timeout
        self.zk = kazoo or KazooClient(hosts=hosts, timeout=session_timeout)

    @property
    def session_id(self) -> Optional[int]:
        session = self.zk.client_id
        return session[0] if session else None

    async def _call(self, func, *args, path: str = "", **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
        except KazooTimeoutError as e:
            raise CoordinationUnavailable(f"Timed out talking to {self.hosts}") from e
        except KazooException as e:
            raise translate_error(e, path) from e

    @staticmethod
    def _wrap_watch(watch: Optional[WatchCallback]):
        if watch is None:
            return None

        def _on_event(event):
            watch(translate_event(event))

        return _on_event

    async def start(self):
        logger.info(f"Connecting to ZooKeeper at {self.hosts}")
        await self._call(self.zk.start, timeout=self.connect_timeout)
        logger.info(f"Connected to ZooKeeper, session {self.session_id}")

    async def stop(self):
        await self._call(self.zk.stop)
        await self._call(self.zk.close)
        logger.info(f"Disconnected from ZooKeeper at {self.hosts}")

    async def create(self, path: str, data: bytes = b"",
                     ephemeral: bool = False, sequential: bool = False) -> str:
        return await self._call(
            self.zk.create, path, value=data, ephemeral=ephemeral, sequence=sequential, path=path
        )

    async def delete(self, path: str, version: int = -1):
        await self._call(self.zk.delete, path, version=version, path=path)

    async def exists(self, path: str,
                     watch: Optional[WatchCallback] = None) -> Optional[NodeStat]:
        stat = await self._call(self.zk.exists, path, watch=self._wrap_watch(watch), path=path)
        return _stat_from_kazoo(stat) if stat is not None else None

    async def get_children(self, path: str,
                           watch: Optional[WatchCallback] = None) -> List[str]:
        return await self._call(self.zk.get_children, path, watch=self._wrap_watch(watch), path=path)

    async def get_data(self, path: str) -> Tuple[bytes, NodeStat]:
        data, stat = await self._call(self.zk.get, path, path=path)
        return data, _stat_from_kazoo(stat)

    async def ensure_path(self, path: str):
        await self._call(self.zk.ensure_path, path, path=path)
