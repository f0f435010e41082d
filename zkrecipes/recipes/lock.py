"""
Distributed Lock (fair, FIFO) di atas coordination service.

Protocol:
1. Create ephemeral sequential node di bawah lock root
2. List siblings, hitung rank
3. Rank 0 = lock held
4. Rank > 0 = watch predecessor saja (bukan semua node, untuk menghindari
   herd effect), tunggu, lalu ulangi dari langkah 2

Ephemeral node membuat lock otomatis lepas jika holder crash / session hilang.
"""

import asyncio
import logging
import os
import socket
import threading
import time
from enum import Enum
from typing import List, Optional

from .ranking import compute_rank, has_sequence, sort_by_sequence
from .watch_bridge import WatchBridge
from ..coordination.client import CoordinationClient, join_path, node_name
from ..exceptions import CoordinationError, LockTimeout, NodeVanished, NoNodeError
from ..utils.metrics import measure_time, metrics

logger = logging.getLogger(__name__)


class LockState(Enum):
    """
    State machine untuk satu participant:
    IDLE -> ACQUIRING -> HELD -> RELEASED
    """
    IDLE = "idle"
    ACQUIRING = "acquiring"
    HELD = "held"
    RELEASED = "released"


def default_participant_id() -> str:
    """Identity default: host, pid, dan nama thread/task"""
    name = threading.current_thread().name
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    if task is not None:
        name = task.get_name()
    return f"{socket.gethostname()}:{os.getpid()}:{name}"


class DistributedLock:
    """
    Fair mutual-exclusion lock.

    Satu instance mewakili satu participant. Lock handle (path node) dikembalikan
    oleh acquire() dan dipakai oleh release().

    Contoh:
        lock = DistributedLock(client, '/locks')
        async with lock:
            ...
    """

    def __init__(self,
                 client: CoordinationClient,
                 root: str = '/locks',
                 prefix: str = 'lock_',
                 participant_id: Optional[str] = None):
        """
        Args:
            client: Session ke coordination service
            root: Parent node untuk semua lock nodes
            prefix: Prefix nama lock node
            participant_id: Advisory identity, disimpan sebagai payload node
        """
        self.client = client
        self.root = root.rstrip('/') or '/'
        self.prefix = prefix
        self.participant_id = participant_id
        self.bridge = WatchBridge(client)

        self.state = LockState.IDLE
        self._handle: Optional[str] = None
        self._root_ready = False

    @property
    def handle(self) -> Optional[str]:
        """Path lock node saat lock di-hold"""
        return self._handle

    @property
    def is_held(self) -> bool:
        return self.state == LockState.HELD

    async def _ensure_root(self):
        if not self._root_ready:
            await self.client.ensure_path(self.root)
            self._root_ready = True

    def _lock_nodes(self, children: List[str]) -> List[str]:
        # Node asing tanpa sequence suffix tidak ikut antri
        return [name for name in children if name.startswith(self.prefix) and has_sequence(name)]

    async def acquire(self, participant_id: Optional[str] = None,
                      timeout: Optional[float] = None) -> str:
        """
        Acquire lock. Block sampai node milik kita menjadi rank 0.

        Args:
            participant_id: Override identity untuk acquisition ini
            timeout: Maximum wait (seconds). None = tunggu selamanya.

        Returns:
            Lock handle (full path node)

        Raises:
            LockTimeout: timeout habis sebelum lock didapat
            NodeVanished: node sendiri hilang saat menunggu
            CoordinationUnavailable: connectivity / session hilang
        """
        if self.state in (LockState.ACQUIRING, LockState.HELD):
            raise RuntimeError(f"Lock under {self.root} is already {self.state.value}")

        participant = participant_id or self.participant_id or default_participant_id()
        deadline = time.monotonic() + timeout if timeout is not None else None

        # State di-set sebelum await pertama supaya acquire() kedua langsung ditolak
        self.state = LockState.ACQUIRING
        with measure_time() as timer:
            try:
                await self._ensure_root()
                path = await self.client.create(
                    join_path(self.root, self.prefix),
                    participant.encode('utf-8'),
                    ephemeral=True,
                    sequential=True
                )
            except BaseException:
                self.state = LockState.IDLE
                raise

            logger.info(f"{participant} created lock node {path}")

            try:
                await self._wait_for_turn(path, deadline)
            except BaseException:
                # Termasuk cancellation: node harus dihapus supaya antrian tidak macet
                await self._abandon(path)
                raise

        self._handle = path
        self.state = LockState.HELD
        metrics.record_lock_acquired(self.root, timer.elapsed)
        logger.info(f"{participant} got lock, lock path: {path}")
        return path

    async def _wait_for_turn(self, path: str, deadline: Optional[float]):
        own_name = node_name(path)

        while True:
            siblings = self._lock_nodes(await self.client.get_children(self.root))
            try:
                rank = compute_rank(own_name, siblings)
            except NodeVanished:
                raise NodeVanished(own_name, self.root) from None

            if rank.is_first:
                return

            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise LockTimeout(f"Timed out waiting for lock under {self.root}")

            predecessor = join_path(self.root, rank.predecessor)
            logger.debug(f"{own_name} at rank {rank.position}, waiting for {rank.predecessor}")
            try:
                waited = await self.bridge.arm_and_wait_deleted(predecessor, timeout=remaining)
            except asyncio.TimeoutError:
                raise LockTimeout(f"Timed out waiting for lock under {self.root}") from None

            if not waited:
                logger.debug(f"Predecessor {rank.predecessor} already gone, re-checking rank")

    async def _abandon(self, path: str):
        """Hapus node sendiri setelah acquire gagal / dibatalkan"""
        self.state = LockState.IDLE
        try:
            await self.client.delete(path)
            logger.info(f"Abandoned lock node {path}")
        except NoNodeError:
            pass
        except CoordinationError as e:
            # Ephemeral node tetap akan dihapus service saat session berakhir
            logger.warning(f"Could not remove abandoned lock node {path}: {e}")

    async def release(self, handle: Optional[str] = None):
        """
        Release lock dengan menghapus lock node.

        Idempotent: node yang sudah tidak ada (release kedua kali, atau
        session hilang) dianggap sukses.
        """
        path = handle or self._handle
        if path is None:
            logger.debug(f"Nothing to release under {self.root}")
            return

        try:
            await self.client.delete(path)
        except NoNodeError:
            logger.debug(f"Lock node {path} already removed")
        else:
            metrics.record_lock_released(self.root)
            logger.info(f"Release lock, lock path is {path}")

        if path == self._handle:
            self._handle = None
            self.state = LockState.RELEASED

    async def contenders(self) -> List[str]:
        """Participant ids dari semua lock nodes, urut berdasarkan rank"""
        await self._ensure_root()
        names = sort_by_sequence(self._lock_nodes(await self.client.get_children(self.root)))

        participants = []
        for name in names:
            try:
                data, _ = await self.client.get_data(join_path(self.root, name))
            except NoNodeError:
                continue
            participants.append(data.decode('utf-8', errors='replace'))
        return participants

    async def __aenter__(self) -> 'DistributedLock':
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()
        return False

    def __repr__(self):
        return f"DistributedLock(root={self.root}, state={self.state.value}, handle={self._handle})"
