"""
In-memory coordination service.

Implementasi ZooKeeper-like tree di dalam satu process:
- Sequential nodes dengan suffix 10 digit, monotonic per parent
- Ephemeral nodes yang terikat ke session
- One-shot data watches dan child watches
- Session expiry untuk simulasi crash / disconnect

Dipakai untuk tests dan untuk menjalankan demo nodes tanpa ZooKeeper ensemble.
"""

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .client import (
    SEQUENCE_DIGITS,
    CoordinationClient,
    EventType,
    NodeStat,
    WatchCallback,
    WatchEvent,
)
from ..exceptions import (
    BadVersionError,
    CoordinationUnavailable,
    NodeExistsError,
    NoNodeError,
    NotEmptyError,
)

logger = logging.getLogger(__name__)


@dataclass
class _ZNode:
    """Satu node dalam tree"""
    data: bytes
    ephemeral_owner: Optional[int] = None
    version: int = 0
    children: Set[str] = field(default_factory=set)
    next_sequence: int = 0

    def stat(self) -> NodeStat:
        return NodeStat(
            version=self.version,
            num_children=len(self.children),
            ephemeral_owner=self.ephemeral_owner
        )


def _parent_of(path: str) -> str:
    parent = path.rsplit('/', 1)[0]
    return parent or '/'


def _validate_path(path: str):
    if not path.startswith('/') or (len(path) > 1 and path.endswith('/')):
        raise ValueError(f"Invalid node path: {path!r}")


class InMemoryCoordinationService:
    """
    Shared state untuk semua sessions (pengganti ZooKeeper ensemble).

    Semua mutation dilakukan di bawah satu lock. Watch callbacks dipanggil
    setelah lock dilepas, sesuai urutan trigger, masing-masing tepat sekali.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._nodes: Dict[str, _ZNode] = {'/': _ZNode(data=b"")}

        # path -> list of (session_id, callback)
        self._data_watches: Dict[str, List[Tuple[int, WatchCallback]]] = {}
        self._child_watches: Dict[str, List[Tuple[int, WatchCallback]]] = {}

        self._session_ids = itertools.count(1)
        self._live_sessions: Set[int] = set()

        # Log semua watch yang sudah fire: (event type, watched path)
        self.fired_watches: List[Tuple[EventType, str]] = []

    def connect(self) -> 'InMemoryCoordinationClient':
        """Open session baru dan return client untuk session tersebut"""
        with self._lock:
            session_id = next(self._session_ids)
            self._live_sessions.add(session_id)
        logger.debug(f"Session {session_id} opened")
        return InMemoryCoordinationClient(self, session_id)

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def is_alive(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._live_sessions

    def close_session(self, session_id: int):
        """Close session secara normal: ephemeral nodes dihapus, pending watches di-drop"""
        self._end_session(session_id, expired=False)
        logger.debug(f"Session {session_id} closed")

    def expire_session(self, session_id: int):
        """
        Simulasi session expiry (crash / network partition).
        Pending watches milik session ini menerima SESSION event.
        """
        self._end_session(session_id, expired=True)
        logger.info(f"Session {session_id} expired")

    def _end_session(self, session_id: int, expired: bool):
        pending = []
        with self._lock:
            if session_id not in self._live_sessions:
                return
            self._live_sessions.discard(session_id)

            owned = [p for p, n in self._nodes.items() if n.ephemeral_owner == session_id]
            # Hapus yang paling dalam dulu
            for path in sorted(owned, key=len, reverse=True):
                pending.extend(self._remove_node(path))

            orphaned = []
            for watches in (self._data_watches, self._child_watches):
                for path in list(watches):
                    keep = []
                    for owner, callback in watches[path]:
                        if owner == session_id:
                            orphaned.append((path, callback))
                        else:
                            keep.append((owner, callback))
                    if keep:
                        watches[path] = keep
                    else:
                        del watches[path]

            if expired:
                for path, callback in orphaned:
                    pending.append((callback, WatchEvent(EventType.SESSION, path, state="expired")))

        self._fire(pending)

    def _check_session(self, session_id: int):
        if session_id not in self._live_sessions:
            raise CoordinationUnavailable(f"Session {session_id} is not connected")

    # ------------------------------------------------------------------
    # Operations (dipanggil oleh client)
    # ------------------------------------------------------------------

    def create(self, session_id: int, path: str, data: bytes,
               ephemeral: bool, sequential: bool) -> str:
        _validate_path(path)
        with self._lock:
            self._check_session(session_id)

            parent_path = _parent_of(path)
            parent = self._nodes.get(parent_path)
            if parent is None:
                raise NoNodeError(parent_path)
            if parent.ephemeral_owner is not None:
                raise CoordinationUnavailable(f"Ephemeral node {parent_path} cannot have children")

            if sequential:
                path = f"{path}{parent.next_sequence:0{SEQUENCE_DIGITS}d}"
                parent.next_sequence += 1
            if path in self._nodes:
                raise NodeExistsError(path)

            self._nodes[path] = _ZNode(
                data=bytes(data),
                ephemeral_owner=session_id if ephemeral else None
            )
            parent.children.add(path.rsplit('/', 1)[-1])

            pending = self._pop_watches(self._data_watches, path, EventType.CREATED)
            pending += self._pop_watches(self._child_watches, parent_path, EventType.CHILD)

        self._fire(pending)
        return path

    def delete(self, session_id: int, path: str, version: int = -1):
        _validate_path(path)
        with self._lock:
            self._check_session(session_id)

            node = self._nodes.get(path)
            if node is None or path == '/':
                raise NoNodeError(path)
            if version != -1 and version != node.version:
                raise BadVersionError(f"{path}: expected {version}, found {node.version}")
            if node.children:
                raise NotEmptyError(path)

            pending = self._remove_node(path)

        self._fire(pending)

    def exists(self, session_id: int, path: str,
               watch: Optional[WatchCallback]) -> Optional[NodeStat]:
        _validate_path(path)
        with self._lock:
            self._check_session(session_id)
            if watch is not None:
                self._data_watches.setdefault(path, []).append((session_id, watch))
            node = self._nodes.get(path)
            return node.stat() if node else None

    def get_children(self, session_id: int, path: str,
                     watch: Optional[WatchCallback]) -> List[str]:
        _validate_path(path)
        with self._lock:
            self._check_session(session_id)
            node = self._nodes.get(path)
            if node is None:
                raise NoNodeError(path)
            if watch is not None:
                self._child_watches.setdefault(path, []).append((session_id, watch))
            return list(node.children)

    def get_data(self, session_id: int, path: str) -> Tuple[bytes, NodeStat]:
        _validate_path(path)
        with self._lock:
            self._check_session(session_id)
            node = self._nodes.get(path)
            if node is None:
                raise NoNodeError(path)
            return node.data, node.stat()

    def remove_watch(self, session_id: int, path: str, watch: WatchCallback):
        """
        Hapus data watch yang belum fire.

        Sequential names tidak pernah dipakai ulang, jadi watch pada node yang
        sudah hilang tidak akan pernah fire dan harus dibuang eksplisit.
        """
        with self._lock:
            registered = self._data_watches.get(path)
            if not registered:
                return
            keep = [(owner, cb) for owner, cb in registered
                    if not (owner == session_id and cb == watch)]
            if keep:
                self._data_watches[path] = keep
            else:
                del self._data_watches[path]

    # ------------------------------------------------------------------
    # Introspection untuk tests
    # ------------------------------------------------------------------

    def watch_count(self, path: str) -> int:
        """Jumlah pending watches (data + child) pada path"""
        with self._lock:
            return len(self._data_watches.get(path, [])) + len(self._child_watches.get(path, []))

    def node_exists(self, path: str) -> bool:
        with self._lock:
            return path in self._nodes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _remove_node(self, path: str) -> list:
        """Remove node (lock harus sudah di-hold). Returns pending watch firings."""
        del self._nodes[path]
        parent_path = _parent_of(path)
        parent = self._nodes.get(parent_path)
        if parent is not None:
            parent.children.discard(path.rsplit('/', 1)[-1])

        pending = self._pop_watches(self._data_watches, path, EventType.DELETED)
        pending += self._pop_watches(self._child_watches, path, EventType.DELETED)
        pending += self._pop_watches(self._child_watches, parent_path, EventType.CHILD)
        return pending

    @staticmethod
    def _pop_watches(watches: Dict[str, List[Tuple[int, WatchCallback]]],
                     path: str, event_type: EventType) -> list:
        registered = watches.pop(path, [])
        event = WatchEvent(event_type, path)
        return [(callback, event) for _, callback in registered]

    def _fire(self, pending: list):
        for callback, event in pending:
            self.fired_watches.append((event.type, event.path))
            try:
                callback(event)
            except Exception:
                logger.exception(f"Watch callback failed for {event.type.value} on {event.path}")


class InMemoryCoordinationClient(CoordinationClient):
    """Client untuk satu session pada InMemoryCoordinationService"""

    def __init__(self, service: InMemoryCoordinationService, session_id: int):
        self.service = service
        self._session_id = session_id

    @property
    def session_id(self) -> Optional[int]:
        return self._session_id

    @property
    def connected(self) -> bool:
        return self.service.is_alive(self._session_id)

    async def stop(self):
        self.service.close_session(self._session_id)

    async def create(self, path: str, data: bytes = b"",
                     ephemeral: bool = False, sequential: bool = False) -> str:
        # Yield dulu supaya tasks lain bisa interleave seperti round trip sungguhan
        await asyncio.sleep(0)
        return self.service.create(self._session_id, path, data, ephemeral, sequential)

    async def delete(self, path: str, version: int = -1):
        await asyncio.sleep(0)
        self.service.delete(self._session_id, path, version)

    async def exists(self, path: str,
                     watch: Optional[WatchCallback] = None) -> Optional[NodeStat]:
        await asyncio.sleep(0)
        return self.service.exists(self._session_id, path, watch)

    async def get_children(self, path: str,
                           watch: Optional[WatchCallback] = None) -> List[str]:
        await asyncio.sleep(0)
        return self.service.get_children(self._session_id, path, watch)

    async def get_data(self, path: str) -> Tuple[bytes, NodeStat]:
        await asyncio.sleep(0)
        return self.service.get_data(self._session_id, path)

    async def remove_watch(self, path: str, watch: WatchCallback):
        self.service.remove_watch(self._session_id, path, watch)

    def __repr__(self):
        return f"InMemoryCoordinationClient(session={self._session_id})"
