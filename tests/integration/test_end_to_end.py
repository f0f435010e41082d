"""
Integration tests: pool workers dengan distributed lock dan mailbox producer/consumer.
"""

import asyncio

import pytest

from zkrecipes.nodes.mailbox_node import MailboxNode
from zkrecipes.nodes.pool_node import PoolNode
from zkrecipes.recipes.queue import DistributedBoundedQueue


@pytest.mark.asyncio
async def test_pool_drained_by_locked_workers(service):
    """10 messages, 4 workers: setiap message dikonsumsi tepat sekali, tanpa deadlock"""
    node = PoolNode(1, 'localhost', 0, service.connect(), capacity=10, workers=4, hold_time=0.01)
    await node.start(serve_http=False)

    messages = [f"msg{i}" for i in range(10)]
    await node.load(messages)

    consumed = await asyncio.wait_for(node.drain(), timeout=10.0)

    assert sorted(payload for _, payload in consumed) == sorted(messages)
    assert node.max_holders == 1
    assert await node.pool.size() == 0
    # Semua lock nodes sudah dilepas
    assert await node.client.get_children('/locks') == []

    await node.stop()


@pytest.mark.asyncio
async def test_pool_shared_by_two_nodes(service):
    """Dua node (session berbeda) berbagi pool dan lock yang sama"""
    first = PoolNode(1, 'localhost', 0, service.connect(), capacity=12, workers=2, hold_time=0.005)
    second = PoolNode(2, 'localhost', 0, service.connect(), capacity=12, workers=2, hold_time=0.005)
    for node in (first, second):
        await node.start(serve_http=False)

    messages = [f"msg{i}" for i in range(12)]
    await first.load(messages)

    results = await asyncio.wait_for(asyncio.gather(first.drain(), second.drain()), timeout=10.0)

    payloads = [payload for consumed in results for _, payload in consumed]
    assert sorted(payloads) == sorted(messages)
    assert len(payloads) == len(set(payloads))

    for node in (first, second):
        await node.stop()


@pytest.mark.asyncio
async def test_mailbox_delivers_in_order(service):
    node = MailboxNode(
        1, 'localhost', 0, service.connect(),
        capacity=3, producer_delay=0, consumer_delay=0.001, limit=20
    )
    await node.start(serve_http=False)

    await asyncio.wait_for(node.wait_finished(), timeout=10.0)

    assert node.delivered == [f"letter-1-{i}" for i in range(20)]
    assert await node.queue.size() == 0

    await node.stop()


@pytest.mark.asyncio
async def test_mailbox_stop_while_blocked(service):
    """Stop saat consumer sedang menunggu queue kosong"""
    node = MailboxNode(1, 'localhost', 0, service.connect(), capacity=3, producer_delay=0, limit=2)
    node.consumer.limit = None
    await node.start(serve_http=False)
    await asyncio.sleep(0.05)

    await asyncio.wait_for(node.stop(), timeout=2.0)

    assert not node.running
    # Tidak ada letter yang hilang: terkirim atau masih di mailbox
    observer = DistributedBoundedQueue(service.connect(), '/mailBox', capacity=3)
    remaining = await observer.size()
    assert node.producer.produced == 2
    assert len(node.delivered) + remaining == node.producer.produced
