import asyncio

import pytest
from channels.layers import InMemoryChannelLayer

from ipd.realtime.events import NewMessage, client_frame, from_layer_message, to_layer_message
from ipd.realtime.rooms import RoomRegistry, group_name


async def _nothing_for(layer, channel, timeout=0.1):
    try:
        await asyncio.wait_for(layer.receive(channel), timeout)
    except asyncio.TimeoutError:
        return True
    return False


@pytest.fixture
def layer():
    return InMemoryChannelLayer()


@pytest.fixture
def registry(layer):
    return RoomRegistry(channel_layer=layer)


def test_group_names_are_layer_safe():
    name = group_name('Patient 42 / ICU')
    assert name.startswith('chat.')
    assert len(name) < 100
    assert name == group_name('Patient 42 / ICU')
    assert name != group_name('patient 42 / icu')


def test_event_round_trip_and_client_frame():
    event = NewMessage(room='ward', message={'id': 1, 'text': 'hi'})
    layer_msg = to_layer_message(event)
    assert layer_msg['type'] == 'chat.event'
    assert from_layer_message(layer_msg) == event
    assert client_frame(event) == {'type': 'newMessage', 'data': {'id': 1, 'text': 'hi'}}


def test_unknown_event_kind_is_refused():
    with pytest.raises(ValueError):
        from_layer_message({'type': 'chat.event', 'event': 'messageEdited', 'room': 'a', 'data': {}})


@pytest.mark.asyncio
async def test_broadcast_reaches_only_the_room(layer, registry):
    a = await layer.new_channel()
    b = await layer.new_channel()
    await registry.join(a, 'A')
    await registry.join(b, 'B')

    await registry.broadcast('A', NewMessage(room='A', message={'id': 1}))

    got = await asyncio.wait_for(layer.receive(a), 1)
    assert got['room'] == 'A'
    assert await _nothing_for(layer, b)


@pytest.mark.asyncio
async def test_join_is_idempotent(layer, registry):
    a = await layer.new_channel()
    assert await registry.join(a, 'A') is True
    assert await registry.join(a, 'A') is False
    assert registry.members('A') == frozenset({a})

    await registry.broadcast('A', NewMessage(room='A', message={'id': 1}))
    await asyncio.wait_for(layer.receive(a), 1)
    assert await _nothing_for(layer, a)


@pytest.mark.asyncio
async def test_leave_is_idempotent_and_stops_delivery(layer, registry):
    a = await layer.new_channel()
    await registry.join(a, 'A')
    assert await registry.leave(a, 'A') is True
    assert await registry.leave(a, 'A') is False
    assert await registry.leave(a, 'never-joined') is False
    assert registry.members('A') == frozenset()

    await registry.broadcast('A', NewMessage(room='A', message={'id': 1}))
    assert await _nothing_for(layer, a)


@pytest.mark.asyncio
async def test_disconnect_leaves_every_room(layer, registry):
    a = await layer.new_channel()
    b = await layer.new_channel()
    await registry.join(a, 'A')
    await registry.join(a, 'B')
    await registry.join(b, 'B')

    assert await registry.disconnect(a) == frozenset({'A', 'B'})
    assert registry.rooms_of(a) == frozenset()
    assert registry.members('A') == frozenset()
    assert registry.members('B') == frozenset({b})
    assert await registry.disconnect(a) == frozenset()


@pytest.mark.asyncio
async def test_broadcast_to_empty_room_is_a_no_op(registry):
    await registry.broadcast('empty', NewMessage(room='empty', message={'id': 1}))


@pytest.mark.asyncio
async def test_failed_group_add_rolls_back_membership(layer, registry, monkeypatch):
    async def boom(group, channel):
        raise RuntimeError('layer down')

    monkeypatch.setattr(layer, 'group_add', boom)
    with pytest.raises(RuntimeError):
        await registry.join('conn-1', 'A')
    assert registry.members('A') == frozenset()
    assert registry.rooms_of('conn-1') == frozenset()
