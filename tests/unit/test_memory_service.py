"""
Unit tests untuk in-memory coordination service.
"""

import pytest

from zkrecipes.coordination.client import EventType, WatchEvent
from zkrecipes.exceptions import (
    BadVersionError,
    CoordinationUnavailable,
    NodeExistsError,
    NoNodeError,
    NotEmptyError,
)


@pytest.mark.asyncio
async def test_sequential_names_are_monotonic(service):
    """Sequence tidak pernah dipakai ulang walaupun node dihapus"""
    client = service.connect()
    await client.ensure_path('/q')

    first = await client.create('/q/item_', sequential=True)
    second = await client.create('/q/item_', sequential=True)
    assert first == '/q/item_0000000000'
    assert second == '/q/item_0000000001'

    await client.delete(second)
    third = await client.create('/q/item_', sequential=True)
    assert third == '/q/item_0000000002'


@pytest.mark.asyncio
async def test_create_errors(service):
    client = service.connect()

    with pytest.raises(NoNodeError):
        await client.create('/missing/child')

    await client.create('/node')
    with pytest.raises(NodeExistsError):
        await client.create('/node')


@pytest.mark.asyncio
async def test_delete_errors(service):
    client = service.connect()

    with pytest.raises(NoNodeError):
        await client.delete('/nothing')

    await client.ensure_path('/parent/child')
    with pytest.raises(NotEmptyError):
        await client.delete('/parent')

    with pytest.raises(BadVersionError):
        await client.delete('/parent/child', version=5)
    await client.delete('/parent/child', version=0)


@pytest.mark.asyncio
async def test_get_data_and_stat(service):
    client = service.connect()
    await client.ensure_path('/data')
    await client.create('/data/a', b'payload')

    data, stat = await client.get_data('/data/a')
    assert data == b'payload'
    assert stat.version == 0
    assert not stat.is_ephemeral

    parent = await client.exists('/data')
    assert parent.num_children == 1


@pytest.mark.asyncio
async def test_exists_watch_fires_once(service):
    """Watch adalah one-shot: hanya fire untuk perubahan pertama"""
    client = service.connect()
    events = []

    await client.create('/watched')
    await client.exists('/watched', watch=events.append)

    await client.delete('/watched')
    await client.create('/watched')
    await client.delete('/watched')

    assert events == [WatchEvent(EventType.DELETED, '/watched')]


@pytest.mark.asyncio
async def test_exists_watch_on_missing_node_fires_on_create(service):
    client = service.connect()
    events = []

    assert await client.exists('/later', watch=events.append) is None
    await client.create('/later')

    assert [e.type for e in events] == [EventType.CREATED]


@pytest.mark.asyncio
async def test_child_watch(service):
    client = service.connect()
    events = []
    await client.ensure_path('/parent')

    assert await client.get_children('/parent', watch=events.append) == []
    await client.create('/parent/a')
    await client.create('/parent/b')

    assert events == [WatchEvent(EventType.CHILD, '/parent')]


@pytest.mark.asyncio
async def test_ephemeral_nodes_removed_on_session_end(service):
    """Ephemeral nodes hilang saat session berakhir, persistent nodes tetap ada"""
    owner = service.connect()
    observer = service.connect()
    await owner.ensure_path('/root')

    ephemeral = await owner.create('/root/e_', ephemeral=True, sequential=True)
    persistent = await owner.create('/root/p_', sequential=True)
    events = []
    await observer.exists(ephemeral, watch=events.append)

    service.expire_session(owner.session_id)

    assert not service.node_exists(ephemeral)
    assert service.node_exists(persistent)
    assert events == [WatchEvent(EventType.DELETED, ephemeral)]


@pytest.mark.asyncio
async def test_expired_session_is_unavailable(service):
    client = service.connect()
    events = []
    await client.exists('/anything', watch=events.append)

    service.expire_session(client.session_id)

    # Pending watch milik session yang expired menerima SESSION event
    assert [e.type for e in events] == [EventType.SESSION]
    assert events[0].state == 'expired'
    assert not client.connected

    with pytest.raises(CoordinationUnavailable):
        await client.get_children('/')


@pytest.mark.asyncio
async def test_closed_session_drops_watches(service):
    client = service.connect()
    await client.create('/n')
    await client.exists('/n', watch=lambda e: None)
    assert service.watch_count('/n') == 1

    await client.stop()

    assert service.watch_count('/n') == 0
    with pytest.raises(CoordinationUnavailable):
        await client.exists('/n')


@pytest.mark.asyncio
async def test_ephemeral_cannot_have_children(service):
    client = service.connect()
    await client.create('/eph', ephemeral=True)

    with pytest.raises(CoordinationUnavailable):
        await client.create('/eph/child')


@pytest.mark.asyncio
async def test_remove_watch_only_drops_matching_callback(service):
    first = service.connect()
    second = service.connect()
    fired = []

    def keep(event):
        fired.append(event)

    def drop(event):
        fired.append(event)

    await first.exists('/node', watch=keep)
    await second.exists('/node', watch=drop)
    await first.remove_watch('/node', drop)
    assert service.watch_count('/node') == 2

    await second.remove_watch('/node', drop)
    assert service.watch_count('/node') == 1

    await first.create('/node')
    assert [event.type for event in fired] == [EventType.CREATED]
