"""
Unit tests untuk KazooCoordinationClient (tanpa ZooKeeper, KazooClient di-mock).
"""

from unittest import mock

import pytest
from kazoo.exceptions import ConnectionLoss, NoNodeError as KazooNoNodeError, SessionExpiredError
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.protocol.states import WatchedEvent

from zkrecipes.coordination.client import EventType, NodeStat, WatchEvent
from zkrecipes.coordination.kazoo_client import KazooCoordinationClient, translate_error
from zkrecipes.exceptions import CoordinationUnavailable, NoNodeError


@pytest.fixture
def zk():
    return mock.Mock()


@pytest.fixture
def client(zk):
    return KazooCoordinationClient(hosts='zk1:2181', kazoo=zk)


def test_translate_error():
    assert isinstance(translate_error(KazooNoNodeError(), '/x'), NoNodeError)
    assert isinstance(translate_error(ConnectionLoss()), CoordinationUnavailable)
    assert isinstance(translate_error(SessionExpiredError()), CoordinationUnavailable)


@pytest.mark.asyncio
async def test_create_passes_flags(client, zk):
    zk.create.return_value = '/locks/lock_0000000004'

    path = await client.create('/locks/lock_', b'p1', ephemeral=True, sequential=True)

    assert path == '/locks/lock_0000000004'
    zk.create.assert_called_once_with('/locks/lock_', value=b'p1', ephemeral=True, sequence=True)


@pytest.mark.asyncio
async def test_delete_missing_node(client, zk):
    zk.delete.side_effect = KazooNoNodeError()

    with pytest.raises(NoNodeError):
        await client.delete('/locks/lock_0000000001')


@pytest.mark.asyncio
async def test_connection_loss_is_unavailable(client, zk):
    zk.get_children.side_effect = ConnectionLoss()

    with pytest.raises(CoordinationUnavailable):
        await client.get_children('/locks')


@pytest.mark.asyncio
async def test_start_timeout_is_unavailable(client, zk):
    zk.start.side_effect = KazooTimeoutError("Connection time-out")

    with pytest.raises(CoordinationUnavailable):
        await client.start()


@pytest.mark.asyncio
async def test_exists_translates_stat(client, zk):
    zk.exists.return_value = mock.Mock(version=3, numChildren=2, ephemeralOwner=0)
    assert await client.exists('/mailBox') == NodeStat(version=3, num_children=2, ephemeral_owner=None)

    zk.exists.return_value = None
    assert await client.exists('/missing') is None


@pytest.mark.asyncio
async def test_watch_event_translation(client, zk):
    """Watch dari kazoo diteruskan sebagai WatchEvent"""
    zk.exists.return_value = mock.Mock(version=0, numChildren=0, ephemeralOwner=77)
    received = []

    stat = await client.exists('/locks/lock_0000000001', watch=received.append)
    assert stat.is_ephemeral

    kazoo_watch = zk.exists.call_args.kwargs['watch']
    kazoo_watch(WatchedEvent(type='DELETED', state='CONNECTED', path='/locks/lock_0000000001'))

    assert received == [WatchEvent(EventType.DELETED, '/locks/lock_0000000001', 'connected')]


def test_session_id(client, zk):
    zk.client_id = (1234, b'password')
    assert client.session_id == 1234

    zk.client_id = None
    assert client.session_id is None
