"""
Capability interface untuk coordination service (ZooKeeper-like).

Recipes (lock, queue) hanya bicara lewat interface ini:
- create node (sequential / ephemeral)
- delete node
- exists dengan one-shot watch
- get_children dengan one-shot watch
"""

import abc
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..exceptions import NodeExistsError


# Sequence suffix yang di-assign service: 10 digit, zero padded
SEQUENCE_DIGITS = 10


class EventType(Enum):
    """Tipe event yang dikirim ke watch callback"""
    CREATED = "created"
    DELETED = "deleted"
    CHANGED = "changed"
    CHILD = "child"
    SESSION = "session"   # session expired / connection closed


@dataclass(frozen=True)
class WatchEvent:
    """Satu notifikasi dari one-shot watch"""
    type: EventType
    path: str
    state: str = "connected"


@dataclass(frozen=True)
class NodeStat:
    """Metadata node yang dipakai recipes"""
    version: int
    num_children: int
    ephemeral_owner: Optional[int] = None

    @property
    def is_ephemeral(self) -> bool:
        return self.ephemeral_owner is not None


WatchCallback = Callable[[WatchEvent], None]


def join_path(root: str, name: str) -> str:
    """Gabungkan root dan child name menjadi full path"""
    return root.rstrip('/') + '/' + name


def node_name(path: str) -> str:
    """Ambil child name (bagian terakhir) dari full path"""
    return path.rsplit('/', 1)[-1]


class CoordinationClient(abc.ABC):
    """
    Abstract client untuk satu session ke coordination service.

    Setiap recipe menerima instance ini lewat constructor. Watch callbacks
    bisa dipanggil dari thread lain (misalnya event thread kazoo), jadi
    callback tidak boleh menyentuh event loop secara langsung.
    """

    async def start(self):
        """Open session"""

    async def stop(self):
        """Close session. Ephemeral nodes milik session ini ikut hilang."""

    @property
    @abc.abstractmethod
    def session_id(self) -> Optional[int]:
        """ID session saat ini (None jika belum connect)"""

    @abc.abstractmethod
    async def create(self,
                     path: str,
                     data: bytes = b"",
                     ephemeral: bool = False,
                     sequential: bool = False) -> str:
        """
        Create node.

        Returns:
            Actual path. Untuk sequential node, path berisi suffix
            10 digit yang di-assign service.
        """

    @abc.abstractmethod
    async def delete(self, path: str, version: int = -1):
        """
        Delete node. version=-1 berarti tanpa version check.

        Raises:
            NoNodeError: node tidak ada
            BadVersionError: version tidak cocok
        """

    @abc.abstractmethod
    async def exists(self, path: str,
                     watch: Optional[WatchCallback] = None) -> Optional[NodeStat]:
        """
        Check-and-watch. Watch tetap di-register walaupun node tidak ada
        (akan fire saat node dibuat).
        """

    @abc.abstractmethod
    async def get_children(self, path: str,
                           watch: Optional[WatchCallback] = None) -> List[str]:
        """List child names (belum tentu sorted). Watch fire saat child bertambah/berkurang."""

    @abc.abstractmethod
    async def get_data(self, path: str) -> Tuple[bytes, NodeStat]:
        """Read payload dan stat node"""

    async def remove_watch(self, path: str, watch: WatchCallback):
        """
        Buang watch yang tidak akan ditunggu lagi.

        Default no-op: ZooKeeper server menyimpan watch sampai fire atau
        session berakhir.
        """

    async def ensure_path(self, path: str):
        """Create path beserta parent-nya jika belum ada (persistent)"""
        current = ""
        for part in [p for p in path.split('/') if p]:
            current += '/' + part
            if await self.exists(current) is None:
                try:
                    await self.create(current)
                except NodeExistsError:
                    pass
