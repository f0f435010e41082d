"""
Mailbox Node: satu producer dan satu consumer pada bounded queue.

Skenario:
- Mailbox punya kapasitas terbatas
- Pengirim (producer) berhenti saat mailbox penuh, lanjut saat tidak penuh
- Tukang pos (consumer) berhenti saat mailbox kosong, lanjut saat tidak kosong
- Letters dikirim sesuai urutan masuk (FIFO)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .base_node import BaseNode
from ..coordination.client import CoordinationClient
from ..recipes.queue import DistributedBoundedQueue, QueueConsumer, QueueItem, QueueProducer

logger = logging.getLogger(__name__)


class MailboxNode(BaseNode):
    """
    Node yang menjalankan QueueProducer dan QueueConsumer.

    Args:
        limit: Jumlah letter yang diproduksi / dikonsumsi (None = tanpa batas)
    """

    def __init__(self, node_id: int, host: str, port: int, client: CoordinationClient,
                 root: str = '/mailBox',
                 prefix: str = 'letter_',
                 capacity: int = 10,
                 producer_delay: float = 1.0,
                 consumer_delay: float = 1.0,
                 limit: Optional[int] = None):
        super().__init__(node_id, host, port, client)

        self.queue = DistributedBoundedQueue(client, root, prefix, capacity)
        self.producer = QueueProducer(self.queue, self._write_letter, producer_delay, limit)
        self.consumer = QueueConsumer(self.queue, self._deliver_letter, consumer_delay, limit)

        self.delivered: List[str] = []
        self._tasks: List[asyncio.Task] = []

    def _write_letter(self, number: int) -> str:
        return f"letter-{self.node_id}-{number}"

    def _deliver_letter(self, item: QueueItem):
        self.delivered.append(item.text())
        logger.info(f"A letter has been delivered: {item.name} ({item.text()})")

    async def start(self, serve_http: bool = True):
        await super().start(serve_http)

        self._tasks = [
            asyncio.create_task(self.producer.run(), name=f"mailbox-{self.node_id}-producer"),
            asyncio.create_task(self.consumer.run(), name=f"mailbox-{self.node_id}-consumer"),
        ]
        logger.info(f"MailboxNode {self.node_id} started")

    async def wait_finished(self):
        """Tunggu producer dan consumer selesai (hanya berguna jika limit di-set)"""
        await asyncio.gather(*self._tasks)

    async def stop(self):
        self.producer.stop()
        self.consumer.stop()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await super().stop()

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status['mailbox'] = {
            'root': self.queue.root,
            'capacity': self.queue.capacity,
            'produced': self.producer.produced,
            'consumed': self.consumer.consumed,
            'producer_running': self.producer.running,
            'consumer_running': self.consumer.running,
        }
        return status
