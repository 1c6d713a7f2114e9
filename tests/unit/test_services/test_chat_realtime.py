"""Tests for realtime chat delivery."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from reelhome.models.profile import Profile
from reelhome.services.chat_realtime import ChatSubscription, extract_inserted_row, subscribe_to_chat_room
from reelhome.services.supabase_client import GatewayResult
from tests.fixtures.realtime_payloads import insert_payload, legacy_insert_payload
from tests.utils.factories import create_message_row, create_profile_row
from tests.utils.helpers import patch_supabase

MODULE = "reelhome.services.chat_realtime"


def make_realtime_client():
    channel = MagicMock()
    channel.subscribe = AsyncMock(return_value=channel)
    client = MagicMock()
    client.channel.return_value = channel
    client.remove_channel = AsyncMock()
    return client, channel


def registered_callback(channel):
    return channel.on_postgres_changes.call_args.kwargs["callback"]


async def drain(subscription, expected):
    for _ in range(100):
        if subscription.delivered >= expected:
            return
        await asyncio.sleep(0)


@pytest.mark.unit
def test_extract_inserted_row_variants():
    row = create_message_row()
    assert extract_inserted_row(insert_payload(row)) == row
    assert extract_inserted_row(legacy_insert_payload(row)) == row
    assert extract_inserted_row({"data": {}}) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_subscribe_filters_on_room():
    client, channel = make_realtime_client()

    with patch_supabase(MODULE, client):
        subscription = await subscribe_to_chat_room("room-1", lambda m: None)

    client.channel.assert_called_once_with("chat_room:room-1")
    kwargs = channel.on_postgres_changes.call_args.kwargs
    assert channel.on_postgres_changes.call_args.args[0] == "INSERT"
    assert kwargs["table"] == "chat_messages"
    assert kwargs["filter"] == "room_id=eq.room-1"
    channel.subscribe.assert_awaited_once()
    await subscription.unsubscribe()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_messages_delivered_in_order_with_profiles():
    client, channel = make_realtime_client()
    profile_row = create_profile_row()
    lookup = AsyncMock(return_value=GatewayResult.success(Profile.model_validate(profile_row)))
    received = []
    rows = [create_message_row(room_id="room-1", sender_id=profile_row["id"]) for _ in range(3)]

    with patch_supabase(MODULE, client):
        subscription = await ChatSubscription("room-1", received.append, lookup).start()
        callback = registered_callback(channel)
        for row in rows:
            callback(insert_payload(row))
        await drain(subscription, 3)
        await subscription.unsubscribe()

    assert [m.id for m in received] == [r["id"] for r in rows]
    assert all(m.sender_profile.id == profile_row["id"] for m in received)
    client.remove_channel.assert_awaited_once_with(channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_profile_lookup_still_delivers():
    client, channel = make_realtime_client()
    received = []
    lookup = AsyncMock(side_effect=RuntimeError("profiles unavailable"))
    row = create_message_row(room_id="room-1")

    with patch_supabase(MODULE, client):
        subscription = await ChatSubscription("room-1", received.append, lookup).start()
        registered_callback(channel)(insert_payload(row))
        await drain(subscription, 1)
        await subscription.unsubscribe()

    assert len(received) == 1
    assert received[0].id == row["id"]
    assert received[0].sender_profile is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_async_listener_and_failing_listener():
    client, channel = make_realtime_client()
    lookup = AsyncMock(return_value=GatewayResult.failure("gone", None))
    received = []

    async def listener(message):
        if message.message == "boom":
            raise ValueError("listener bug")
        received.append(message)

    first = create_message_row(room_id="room-1", message="boom")
    second = create_message_row(room_id="room-1", message="hello")

    with patch_supabase(MODULE, client):
        async with ChatSubscription("room-1", listener, lookup) as subscription:
            callback = registered_callback(channel)
            callback(insert_payload(first))
            callback(insert_payload(second))
            await drain(subscription, 1)

    assert [m.message for m in received] == ["hello"]
    assert subscription.active is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_subscribe_failure_is_logged_not_raised():
    client, channel = make_realtime_client()
    channel.subscribe = AsyncMock(side_effect=RuntimeError("socket closed"))

    with patch_supabase(MODULE, client):
        subscription = await ChatSubscription("room-1", lambda m: None).start()

        assert subscription.active is False
        await subscription.unsubscribe()

    client.remove_channel.assert_awaited_once_with(channel)
