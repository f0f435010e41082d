"""
Distributed Bounded Queue (FIFO) di atas coordination service.

Setiap item adalah persistent sequential node di bawah queue root:
- Producer block saat jumlah children == capacity
- Consumer block saat jumlah children == 0
- Consumer selalu mengambil node dengan sequence terkecil (strict FIFO)

Producer dan consumer sama-sama watch perubahan children dari root. Wakeup
hanya berarti "ada perubahan", jadi kondisi selalu dicek ulang.
"""

import asyncio
import inspect
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from .lock import DistributedLock
from .ranking import has_sequence, parse_sequence, sort_by_sequence
from .watch_bridge import WatchBridge
from ..coordination.client import CoordinationClient, join_path
from ..exceptions import (
    BadVersionError,
    CapacityInvariantViolated,
    LockTimeout,
    NoNodeError,
    QueueTimeout,
)
from ..utils.metrics import metrics

logger = logging.getLogger(__name__)


Payload = Union[bytes, str]


@dataclass(frozen=True)
class QueueItem:
    """Item yang sudah di-dequeue"""
    path: str
    name: str
    sequence: int
    payload: bytes

    def text(self, encoding: str = 'utf-8') -> str:
        return self.payload.decode(encoding)


class DistributedBoundedQueue:
    """
    Bounded FIFO queue yang bisa dipakai oleh banyak process.

    Args:
        client: Session ke coordination service
        root: Parent node untuk semua items
        prefix: Prefix nama item node
        capacity: Jumlah item maksimum
        producer_lock: Optional DistributedLock untuk serialize producers.
            Dipakai sebagai template (root, prefix, participant id); setiap
            enqueue membuat participant sendiri. Tanpa lock ini, beberapa
            producer yang berjalan bersamaan bisa melewati capacity.
    """

    def __init__(self,
                 client: CoordinationClient,
                 root: str = '/mailBox',
                 prefix: str = 'letter_',
                 capacity: int = 10,
                 producer_lock: Optional[DistributedLock] = None):
        if capacity < 1:
            raise ValueError(f"Queue capacity must be at least 1, got {capacity}")
        if producer_lock is not None and producer_lock.root == root.rstrip('/'):
            raise ValueError("Producer lock nodes must live outside the queue root")

        self.client = client
        self.root = root.rstrip('/') or '/'
        self.prefix = prefix
        self.capacity = capacity
        self.producer_lock = producer_lock
        self.bridge = WatchBridge(client)
        self._root_ready = False

    async def _ensure_root(self):
        if not self._root_ready:
            await self.client.ensure_path(self.root)
            self._root_ready = True

    def _check_count(self, count: int) -> int:
        if count < 0 or count > self.capacity:
            logger.critical(f"Queue {self.root} holds {count} items, capacity is {self.capacity}")
            raise CapacityInvariantViolated(count, self.capacity)
        return count

    def _item_names(self, children: List[str]) -> List[str]:
        """Item names urut FIFO; node tanpa prefix / sequence suffix diabaikan"""
        return sort_by_sequence(
            name for name in children if name.startswith(self.prefix) and has_sequence(name)
        )

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise QueueTimeout("Timed out waiting on queue")
        return remaining

    async def size(self) -> int:
        """
        Jumlah item saat ini (child count dari root).

        Raises:
            CapacityInvariantViolated: count di luar [0, capacity]
        """
        await self._ensure_root()
        stat = await self.client.exists(self.root)
        if stat is None:
            raise NoNodeError(self.root)
        metrics.set_queue_size(self.root, stat.num_children)
        return self._check_count(stat.num_children)

    async def items(self) -> List[str]:
        """Nama semua item, urut FIFO"""
        await self._ensure_root()
        return self._item_names(await self.client.get_children(self.root))

    async def _wait_for_change(self, still_blocked: Callable[[List[str]], bool],
                               deadline: Optional[float]):
        try:
            await self.bridge.arm_and_wait_children(
                self.root, still_blocked, timeout=self._remaining(deadline)
            )
        except asyncio.TimeoutError:
            raise QueueTimeout(f"Timed out waiting on queue {self.root}") from None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def enqueue(self, payload: Payload, timeout: Optional[float] = None) -> str:
        """
        Tambah item ke queue. Block selama queue penuh.

        Returns:
            Path item yang dibuat

        Raises:
            QueueTimeout: queue tetap penuh sampai timeout habis
        """
        data = payload.encode('utf-8') if isinstance(payload, str) else bytes(payload)
        deadline = time.monotonic() + timeout if timeout is not None else None

        while True:
            if self.producer_lock is not None:
                path = await self._locked_offer(data, deadline)
            else:
                path = await self._offer(data)
            if path is not None:
                return path

            await self._wait_for_change(lambda children: len(children) >= self.capacity, deadline)

    async def _offer(self, data: bytes) -> Optional[str]:
        count = await self.size()
        if count >= self.capacity:
            logger.info(f"Queue {self.root} has been full ({count}/{self.capacity})")
            return None

        path = await self.client.create(join_path(self.root, self.prefix), data, sequential=True)
        metrics.record_enqueue(self.root)
        logger.info(f"A new item has been received: {path}")
        return path

    def _producer_participant(self) -> DistributedLock:
        # Satu participant per enqueue call: enqueue yang berjalan bersamaan
        # pada instance yang sama masing-masing antri di lock root
        template = self.producer_lock
        return DistributedLock(template.client, template.root, template.prefix, template.participant_id)

    async def _locked_offer(self, data: bytes, deadline: Optional[float]) -> Optional[str]:
        lock = self._producer_participant()
        try:
            await lock.acquire(timeout=self._remaining(deadline))
        except LockTimeout:
            raise QueueTimeout(f"Timed out waiting for producer lock on {self.root}") from None

        try:
            return await self._offer(data)
        finally:
            await lock.release()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def dequeue(self, timeout: Optional[float] = None) -> QueueItem:
        """
        Ambil item dengan sequence terkecil. Block selama queue kosong.

        Raises:
            QueueTimeout: queue tetap kosong sampai timeout habis
        """
        deadline = time.monotonic() + timeout if timeout is not None else None

        while True:
            item = await self.try_dequeue()
            if item is not None:
                return item

            logger.debug(f"Queue {self.root} has been empty")
            await self._wait_for_change(lambda children: not self._item_names(children), deadline)

    async def try_dequeue(self) -> Optional[QueueItem]:
        """Non-blocking dequeue. Returns None jika queue kosong."""
        while True:
            if await self.size() == 0:
                return None

            names = self._item_names(await self.client.get_children(self.root))
            if not names:
                return None
            head = names[0]
            path = join_path(self.root, head)

            try:
                data, stat = await self.client.get_data(path)
                await self.client.delete(path, version=stat.version)
            except (NoNodeError, BadVersionError):
                # Consumer lain lebih dulu mengambil item ini
                logger.debug(f"{head} was taken by another consumer, retrying")
                continue

            metrics.record_dequeue(self.root)
            logger.info(f"An item has been delivered: {head}")
            return QueueItem(path=path, name=head, sequence=parse_sequence(head), payload=data)

    def __repr__(self):
        return f"DistributedBoundedQueue(root={self.root}, capacity={self.capacity})"


class QueueProducer:
    """
    Producer loop: terus enqueue item sampai di-stop.

    Args:
        queue: Target queue
        payload_factory: Dipanggil dengan nomor urut item, return payload
        max_delay: Random delay maksimum sebelum setiap enqueue (seconds)
        limit: Jumlah item maksimum (None = tanpa batas)
    """

    def __init__(self, queue: DistributedBoundedQueue,
                 payload_factory: Callable[[int], Payload],
                 max_delay: float = 1.0,
                 limit: Optional[int] = None):
        self.queue = queue
        self.payload_factory = payload_factory
        self.max_delay = max_delay
        self.limit = limit
        self.produced = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self):
        self._running = False

    async def run(self):
        self._running = True
        try:
            while self._running and (self.limit is None or self.produced < self.limit):
                # Simulasi pekerjaan yang memakan waktu
                await asyncio.sleep(random.uniform(0, self.max_delay))
                await self.queue.enqueue(self.payload_factory(self.produced))
                self.produced += 1
        except Exception:
            logger.exception("Producer quit task because of exception")
            raise
        finally:
            self._running = False


class QueueConsumer:
    """
    Consumer loop: terus dequeue dan panggil handler sampai di-stop.

    Handler boleh berupa function biasa atau coroutine function.
    """

    def __init__(self, queue: DistributedBoundedQueue,
                 handler: Callable[[QueueItem], Any],
                 max_delay: float = 1.0,
                 limit: Optional[int] = None):
        self.queue = queue
        self.handler = handler
        self.max_delay = max_delay
        self.limit = limit
        self.consumed = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self):
        self._running = False

    async def run(self):
        self._running = True
        try:
            while self._running and (self.limit is None or self.consumed < self.limit):
                # Delay sebelum dequeue: item yang sudah dihapus harus langsung dikirim
                await asyncio.sleep(random.uniform(0, self.max_delay))
                item = await self.queue.dequeue()
                result = self.handler(item)
                if inspect.isawaitable(result):
                    await result
                self.consumed += 1
        except Exception:
            logger.exception("Consumer quit task because of exception")
            raise
        finally:
            self._running = False
