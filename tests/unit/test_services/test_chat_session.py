"""Tests for per-view chat room state."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from reelhome.models.chat import ChatMessage, ChatRoom
from reelhome.services.chat_session import ChatRoomSession, MessageLog
from reelhome.services.supabase_client import GatewayResult
from reelhome.utils.errors import ChatError
from tests.utils.factories import create_message_row, create_room_row

MODULE = "reelhome.services.chat_session"


def message(**overrides) -> ChatMessage:
    return ChatMessage.model_validate(create_message_row(**overrides))


@pytest.mark.unit
def test_message_log_keeps_arrival_order_and_dedupes():
    log = MessageLog()
    later = message(created_at="2024-12-09T12:05:00+00:00")
    earlier = message(created_at="2024-12-09T12:00:00+00:00")

    assert log.append(later)
    assert log.append(earlier)
    assert log.append(later) is False

    assert [m.id for m in log] == [later.id, earlier.id]


@pytest.mark.unit
def test_message_log_unread_from_others():
    log = MessageLog()
    log.replace([
        message(sender_id="me", is_read=False),
        message(sender_id="them", is_read=False),
        message(sender_id="them", is_read=True),
    ])
    assert [m.sender_id for m in log.unread_from_others("me")] == ["them"]


@pytest.fixture
def chat_api():
    room = ChatRoom.model_validate(create_room_row(id="room-1", buyer_id="buyer", agent_id="agent"))
    history = [message(room_id="room-1", sender_id="agent")]
    with patch(f"{MODULE}.chat") as api, patch(f"{MODULE}.ChatSubscription") as subscription_class:
        api.get_chat_room_by_id = AsyncMock(return_value=GatewayResult.success(room))
        api.get_chat_messages = AsyncMock(return_value=GatewayResult.success(history))
        api.mark_messages_as_read = AsyncMock(return_value=GatewayResult.success(True))
        api.send_message = AsyncMock()
        subscription = MagicMock()
        subscription.start = AsyncMock(return_value=subscription)
        subscription.unsubscribe = AsyncMock()
        subscription_class.return_value = subscription
        api.subscription = subscription
        api.subscription_class = subscription_class
        api.history = history
        yield api


@pytest.mark.unit
@pytest.mark.asyncio
async def test_open_loads_history_marks_read_and_subscribes(chat_api):
    session = ChatRoomSession("room-1", "buyer")

    await session.open()

    assert session.room.id == "room-1"
    assert [m.id for m in session.log] == [m.id for m in chat_api.history]
    chat_api.mark_messages_as_read.assert_awaited_once_with("room-1", "buyer")
    chat_api.subscription_class.assert_called_once_with("room-1", session._on_incoming)
    chat_api.subscription.start.assert_awaited_once()
    assert session.is_loading is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_incoming_from_other_marks_read(chat_api):
    seen = []
    session = ChatRoomSession("room-1", "buyer", on_change=seen.append)
    await session.open()
    chat_api.mark_messages_as_read.reset_mock()

    incoming = message(room_id="room-1", sender_id="agent")
    await session._on_incoming(incoming)

    chat_api.mark_messages_as_read.assert_awaited_once_with("room-1", "buyer")
    assert seen == [incoming]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_own_echo_not_duplicated(chat_api):
    session = ChatRoomSession("room-1", "buyer")
    await session.open()
    chat_api.mark_messages_as_read.reset_mock()
    sent = message(room_id="room-1", sender_id="buyer", message="hi")
    chat_api.send_message.return_value = GatewayResult.success(sent)

    await session.send("hi")
    await session._on_incoming(sent)

    assert [m.id for m in session.log].count(sent.id) == 1
    chat_api.mark_messages_as_read.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_rejects_blank_and_backend_failure(chat_api):
    session = ChatRoomSession("room-1", "buyer")

    with pytest.raises(ChatError):
        await session.send("   ")
    chat_api.send_message.assert_not_called()

    chat_api.send_message.return_value = GatewayResult.failure("offline", None)
    with pytest.raises(ChatError):
        await session.send("hello")
    assert session.is_sending is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_context_manager_unsubscribes(chat_api):
    async with ChatRoomSession("room-1", "buyer") as session:
        assert session.subscription is chat_api.subscription

    chat_api.subscription.unsubscribe.assert_awaited_once()
    assert session.subscription is None
