"""Per-view chat state for one open conversation."""

import asyncio
from typing import Callable, Optional

from reelhome.models.chat import ChatMessage, ChatRoom
from reelhome.services import chat
from reelhome.services.chat_realtime import ChatSubscription
from reelhome.utils.errors import ChatError
from reelhome.utils.logging import correlation_context, get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class MessageLog:
    """Messages in arrival order, each id kept once.

    A message the viewer sends comes back through the realtime channel as
    well; whichever copy lands first keeps its position.
    """

    def __init__(self):
        self._messages: list[ChatMessage] = []
        self._ids: set[str] = set()

    def append(self, message: ChatMessage) -> bool:
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        self._messages.append(message)
        return True

    def replace(self, messages: list[ChatMessage]) -> None:
        self._messages = []
        self._ids = set()
        for message in messages:
            self.append(message)

    def unread_from_others(self, user_id: str) -> list[ChatMessage]:
        return [m for m in self._messages if m.sender_id != user_id and not m.is_read]

    def __iter__(self):
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)


class ChatRoomSession:
    """Room, message log and realtime subscription for one viewer."""

    def __init__(
        self,
        room_id: str,
        user_id: str,
        on_change: Optional[Callable[[ChatMessage], None]] = None,
    ):
        self.room_id = room_id
        self.user_id = user_id
        self.on_change = on_change
        self.room: Optional[ChatRoom] = None
        self.log = MessageLog()
        self.is_loading = False
        self.is_sending = False
        self.subscription: Optional[ChatSubscription] = None
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        """Load room and history, mark the history read and start listening."""
        with correlation_context():
            self.is_loading = True
            try:
                room = await chat.get_chat_room_by_id(self.room_id)
                self.room = room.data
                history = await chat.get_chat_messages(self.room_id)
                async with self._lock:
                    self.log.replace(history.data)
                await chat.mark_messages_as_read(self.room_id, self.user_id)
            finally:
                self.is_loading = False
            
            self.subscription = ChatSubscription(self.room_id, self._on_incoming)
            await self.subscription.start()
            logger.info(
                "Chat room opened",
                room_id=self.room_id,
                user_id=mask_user_id(self.user_id),
                messages_loaded=len(self.log)
            )

    async def _on_incoming(self, message: ChatMessage) -> None:
        async with self._lock:
            added = self.log.append(message)
        if not added:
            return
        if message.sender_id != self.user_id:
            await chat.mark_messages_as_read(self.room_id, self.user_id)
        if self.on_change:
            self.on_change(message)

    async def send(self, text: str) -> ChatMessage:
        """Send a message; raises ChatError when blank, busy or rejected by the backend."""
        if not text.strip():
            raise ChatError("Message is empty")
        if self.is_sending:
            raise ChatError("A message is already being sent")
        
        self.is_sending = True
        try:
            result = await chat.send_message(self.room_id, self.user_id, text)
        finally:
            self.is_sending = False
        
        if not result.ok or result.data is None:
            raise ChatError("訊息發送失敗，請稍後再試")
        
        async with self._lock:
            added = self.log.append(result.data)
        if added and self.on_change:
            self.on_change(result.data)
        return result.data

    async def close(self) -> None:
        if self.subscription is not None:
            await self.subscription.unsubscribe()
            self.subscription = None

    async def __aenter__(self) -> "ChatRoomSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
