"""Realtime delivery of new chat messages for one open room.

The realtime transport invokes a plain callback from its own receive loop.
``ChatSubscription`` only enqueues rows there; a single consumer task
enriches each row with the sender's profile and hands it to the listener,
so delivery order is exactly the order the backend emitted inserts.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from reelhome.models.chat import ChatMessage
from reelhome.models.profile import Profile
from reelhome.services.chat import get_profile
from reelhome.services.supabase_client import GatewayResult, SupabaseClient, describe_error
from reelhome.utils.config import Settings
from reelhome.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

MessageListener = Callable[[ChatMessage], Union[None, Awaitable[None]]]
ProfileLookup = Callable[[str], Awaitable[GatewayResult[Optional[Profile]]]]

_STOP = object()


def extract_inserted_row(payload: dict[str, Any]) -> Optional[dict]:
    """Pull the inserted record out of a postgres_changes payload."""
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("record"), dict):
        return data["record"]
    for key in ("new", "record"):
        if isinstance(payload.get(key), dict):
            return payload[key]
    return None


class ChatSubscription:
    """Cancellable handle on one room's insert stream."""

    def __init__(
        self,
        room_id: str,
        on_message: MessageListener,
        profile_lookup: ProfileLookup = get_profile,
    ):
        self.room_id = room_id
        self.on_message = on_message
        self.profile_lookup = profile_lookup
        self.channel = None
        self._client = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self.delivered = 0

    @property
    def topic(self) -> str:
        return f"chat_room:{self.room_id}"

    @property
    def active(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> "ChatSubscription":
        async with SupabaseClient() as client:
            self._client = client
            self.channel = client.channel(self.topic)
            self.channel.on_postgres_changes(
                "INSERT",
                schema="public",
                table=Settings.CHAT_MESSAGES_TABLE,
                filter=f"room_id=eq.{self.room_id}",
                callback=self._on_insert,
            )
            try:
                await self.channel.subscribe()
            except Exception as e:
                logger.error("Realtime subscribe failed", room_id=self.room_id, topic=self.topic, **describe_error(e))
                return self
            self._consumer = asyncio.create_task(self._consume())
        logger.info("Subscribed to chat room", room_id=self.room_id, topic=self.topic)
        return self

    def _on_insert(self, payload: dict[str, Any]) -> None:
        row = extract_inserted_row(payload)
        if row is None:
            logger.warning("Realtime payload without record", room_id=self.room_id)
            return
        self._queue.put_nowait(row)

    async def _consume(self) -> None:
        while True:
            row = await self._queue.get()
            if row is _STOP:
                return
            try:
                await self._deliver(row)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # a failing listener must not stall the rest of the stream
                logger.error("Chat listener failed", room_id=self.room_id, error=str(e), exc_info=True)

    async def _deliver(self, row: dict) -> None:
        try:
            message = ChatMessage.model_validate(row)
        except ValidationError as e:
            logger.warning("Dropping malformed realtime row", room_id=self.room_id, error=str(e))
            return

        try:
            profile = await self.profile_lookup(message.sender_id)
            message.sender_profile = profile.data
        except Exception as e:
            logger.warning(
                "Sender profile lookup failed",
                room_id=self.room_id,
                sender_id=mask_user_id(message.sender_id),
                error=str(e)
            )

        result = self.on_message(message)
        if inspect.isawaitable(result):
            await result
        self.delivered += 1

    async def unsubscribe(self) -> None:
        """Stop delivery and release the realtime channel."""
        if self.channel is not None:
            try:
                await self._client.remove_channel(self.channel)
            except Exception as e:
                logger.warning("Failed to remove realtime channel", topic=self.topic, **describe_error(e))
            self.channel = None

        if self._consumer is not None:
            self._queue.put_nowait(_STOP)
            try:
                await asyncio.wait_for(self._consumer, timeout=5)
            except asyncio.TimeoutError:
                self._consumer.cancel()
            self._consumer = None
        logger.info("Unsubscribed from chat room", room_id=self.room_id)

    async def __aenter__(self) -> "ChatSubscription":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.unsubscribe()
        return False


async def subscribe_to_chat_room(
    room_id: str,
    on_message: MessageListener,
    profile_lookup: ProfileLookup = get_profile,
) -> ChatSubscription:
    """Start delivering inserts for room_id to on_message; call unsubscribe() when done."""
    return await ChatSubscription(room_id, on_message, profile_lookup).start()
