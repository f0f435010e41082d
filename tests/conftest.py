"""Shared fixtures untuk semua tests"""

import asyncio

import pytest

from zkrecipes.coordination.memory import InMemoryCoordinationService


@pytest.fixture
def service():
    """Fresh in-memory coordination service per test"""
    return InMemoryCoordinationService()


@pytest.fixture
def wait_for_children():
    """Poll sampai jumlah children di path mencapai count"""

    async def _wait(client, path, count, timeout=2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            children = await client.get_children(path)
            if len(children) == count:
                return children
            if loop.time() > deadline:
                raise AssertionError(f"{path} has {len(children)} children, expected {count}")
            await asyncio.sleep(0.005)

    return _wait
