"""
Pool Node: beberapa worker mengosongkan satu shared pool secara bergantian.

Setiap worker:
1. Acquire distributed lock
2. Cek pool masih berisi, ambil satu item
3. Release lock

Pool disimpan di coordination service (persistent sequential nodes), bukan
di memory process, sehingga worker dari process lain bisa ikut mengambil.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Tuple

from .base_node import BaseNode
from ..coordination.client import CoordinationClient
from ..recipes.lock import DistributedLock
from ..recipes.queue import DistributedBoundedQueue

logger = logging.getLogger(__name__)


class PoolNode(BaseNode):
    """
    Node yang menjalankan N pool workers.

    Statistik `max_holders` mencatat jumlah worker maksimum yang pernah berada
    di dalam critical section bersamaan (harus selalu 1).
    """

    def __init__(self, node_id: int, host: str, port: int, client: CoordinationClient,
                 pool_root: str = '/msgPool',
                 capacity: int = 10,
                 lock_root: str = '/locks',
                 lock_prefix: str = 'lock_',
                 workers: int = 4,
                 hold_time: float = 1.0):
        super().__init__(node_id, host, port, client)

        self.pool = DistributedBoundedQueue(client, pool_root, prefix='msg_', capacity=capacity)
        self.lock_root = lock_root
        self.lock_prefix = lock_prefix
        self.workers = workers
        self.hold_time = hold_time

        # (worker index, payload) dalam urutan konsumsi
        self.consumed: List[Tuple[int, str]] = []

        self._holders = 0
        self.max_holders = 0
        self._worker_tasks: List[asyncio.Task] = []

    async def load(self, messages: Iterable[str]):
        """Isi pool dengan messages"""
        for message in messages:
            await self.pool.enqueue(message)

    async def _worker(self, index: int):
        lock = DistributedLock(
            self.client,
            self.lock_root,
            self.lock_prefix,
            participant_id=f"node{self.node_id}-worker{index}"
        )

        while True:
            async with lock:
                self._holders += 1
                self.max_holders = max(self.max_holders, self._holders)
                try:
                    item = await self.pool.try_dequeue()
                    if item is None:
                        return
                    logger.info(f"worker {index} consume msg: {item.text()}")
                    await asyncio.sleep(self.hold_time)
                    self.consumed.append((index, item.text()))
                finally:
                    self._holders -= 1

    async def drain(self) -> List[Tuple[int, str]]:
        """Jalankan semua workers sampai pool kosong"""
        self._worker_tasks = [
            asyncio.create_task(self._worker(i), name=f"pool-worker-{i}")
            for i in range(self.workers)
        ]
        try:
            await asyncio.gather(*self._worker_tasks)
        finally:
            self._worker_tasks = []
        logger.info(f"Pool drained, {len(self.consumed)} messages consumed")
        return self.consumed

    async def stop(self):
        for task in self._worker_tasks:
            task.cancel()
        if self._worker_tasks:
            await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        await super().stop()

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status['pool'] = {
            'root': self.pool.root,
            'workers': self.workers,
            'active_workers': len(self._worker_tasks),
            'consumed': len(self.consumed),
            'max_holders': self.max_holders,
        }
        return status
