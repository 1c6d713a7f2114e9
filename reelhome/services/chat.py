"""Chat rooms and messages between buyers and agents."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from reelhome.models.chat import ChatMessage, ChatRoom
from reelhome.models.profile import Profile
from reelhome.services.supabase_client import (
    GatewayResult,
    SupabaseClient,
    describe_error,
    first_row,
)
from reelhome.utils.config import Settings
from reelhome.utils.logging import get_structured_logger, mask_user_id, sanitize_message_text

logger = get_structured_logger(__name__)

ROOM_SELECT = (
    "*, "
    "property:properties(*), "
    "buyer_profile:profiles!chat_rooms_buyer_id_fkey(*), "
    "agent_profile:profiles!chat_rooms_agent_id_fkey(*)"
)
MESSAGE_SELECT = "*, sender_profile:profiles(*)"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_rooms(rows: Optional[list[dict]]) -> list[ChatRoom]:
    rooms = []
    for row in rows or []:
        try:
            rooms.append(ChatRoom.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed chat room row", room_id=row.get("id"), error=str(e))
    return rooms


async def get_or_create_chat_room(
    property_id: str,
    buyer_id: str,
    agent_id: str,
) -> GatewayResult[Optional[ChatRoom]]:
    """Return the buyer's room for a listing, creating it if missing.

    Lookup-then-insert is not transactional: two concurrent first contacts
    can still create two rooms unless the table has a unique
    (property_id, buyer_id) constraint.
    """
    async with SupabaseClient() as client:
        try:
            existing = await (
                client.table(Settings.CHAT_ROOMS_TABLE)
                .select("*")
                .eq("property_id", property_id)
                .eq("buyer_id", buyer_id)
                .limit(1)
                .execute()
            )
            row = first_row(existing)
            if row:
                return GatewayResult.success(ChatRoom.model_validate(row))
            
            result = await client.table(Settings.CHAT_ROOMS_TABLE).insert({
                "property_id": property_id,
                "buyer_id": buyer_id,
                "agent_id": agent_id,
            }).execute()
            row = first_row(result)
            if row is None:
                return GatewayResult.failure("Failed to create chat room: no data returned", None)
            
            logger.info(
                "Chat room created",
                room_id=row.get("id"),
                property_id=property_id,
                buyer_id=mask_user_id(buyer_id)
            )
            return GatewayResult.success(ChatRoom.model_validate(row))
        except Exception as e:
            logger.error("Error getting or creating chat room", property_id=property_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to get or create chat room: {e}", None)


async def get_user_chat_rooms(user_id: str, with_summary: bool = True) -> GatewayResult[list[ChatRoom]]:
    """Rooms where the user is buyer or agent, most recently active first."""
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.CHAT_ROOMS_TABLE)
                .select(ROOM_SELECT)
                .or_(f"buyer_id.eq.{user_id},agent_id.eq.{user_id}")
                .order("updated_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("Error fetching chat rooms", user_id=mask_user_id(user_id), **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch chat rooms: {e}", [])
    
    rooms = _to_rooms(result.data)
    if with_summary:
        for room in rooms:
            last = await get_last_message(room.id)
            unread = await get_unread_count(room.id, user_id)
            room.last_message = last.data
            room.unread_count = unread.data
    return GatewayResult.success(rooms)


async def get_chat_room_by_id(room_id: str) -> GatewayResult[Optional[ChatRoom]]:
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.CHAT_ROOMS_TABLE)
                .select(ROOM_SELECT)
                .eq("id", room_id)
                .limit(1)
                .execute()
            )
            row = first_row(result)
            return GatewayResult.success(ChatRoom.model_validate(row) if row else None)
        except Exception as e:
            logger.error("Error fetching chat room", room_id=room_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch chat room {room_id}: {e}", None)


async def get_chat_messages(room_id: str) -> GatewayResult[list[ChatMessage]]:
    """All messages of a room, oldest first, with sender profiles."""
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.CHAT_MESSAGES_TABLE)
                .select(MESSAGE_SELECT)
                .eq("room_id", room_id)
                .order("created_at")
                .execute()
            )
            return GatewayResult.success([ChatMessage.model_validate(row) for row in result.data or []])
        except Exception as e:
            logger.error("Error fetching messages", room_id=room_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch messages: {e}", [])


async def get_last_message(room_id: str) -> GatewayResult[Optional[ChatMessage]]:
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.CHAT_MESSAGES_TABLE)
                .select("*")
                .eq("room_id", room_id)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            row = first_row(result)
            return GatewayResult.success(ChatMessage.model_validate(row) if row else None)
        except Exception as e:
            logger.error("Error fetching last message", room_id=room_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch last message: {e}", None)


async def get_unread_count(room_id: str, user_id: str) -> GatewayResult[int]:
    """Unread messages in a room that were sent by someone other than user_id."""
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.CHAT_MESSAGES_TABLE)
                .select("id", count="exact")
                .eq("room_id", room_id)
                .neq("sender_id", user_id)
                .eq("is_read", False)
                .execute()
            )
            count = result.count if result.count is not None else len(result.data or [])
            return GatewayResult.success(count)
        except Exception as e:
            logger.error("Error counting unread messages", room_id=room_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to count unread messages: {e}", 0)


async def get_profile(user_id: str) -> GatewayResult[Optional[Profile]]:
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.PROFILES_TABLE)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            row = first_row(result)
            return GatewayResult.success(Profile.model_validate(row) if row else None)
        except Exception as e:
            logger.error("Error fetching profile", user_id=mask_user_id(user_id), **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch profile: {e}", None)


async def send_message(room_id: str, sender_id: str, message: str) -> GatewayResult[Optional[ChatMessage]]:
    """Insert a message and bump the room's updated_at.

    Blank messages are refused without a backend call.
    """
    body = message.strip()
    if not body:
        return GatewayResult.failure("Message is empty", None)
    
    async with SupabaseClient() as client:
        try:
            result = await client.table(Settings.CHAT_MESSAGES_TABLE).insert({
                "room_id": room_id,
                "sender_id": sender_id,
                "message": body,
            }).execute()
            row = first_row(result)
            if row is None:
                return GatewayResult.failure("Failed to send message: no data returned", None)
            
            await (
                client.table(Settings.CHAT_ROOMS_TABLE)
                .update({"updated_at": _utcnow_iso()})
                .eq("id", room_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "Error sending message",
                room_id=room_id,
                sender_id=mask_user_id(sender_id),
                **describe_error(e)
            )
            return GatewayResult.failure(f"Failed to send message: {e}", None)
    
    sent = ChatMessage.model_validate(row)
    profile = await get_profile(sender_id)
    sent.sender_profile = profile.data
    logger.info(
        "Message sent",
        room_id=room_id,
        message_id=sent.id,
        sender_id=mask_user_id(sender_id),
        message_preview=sanitize_message_text(body, max_length=100)
    )
    return GatewayResult.success(sent)


async def mark_messages_as_read(room_id: str, user_id: str) -> GatewayResult[bool]:
    """Flag every unread message in the room not sent by user_id as read."""
    async with SupabaseClient() as client:
        try:
            await (
                client.table(Settings.CHAT_MESSAGES_TABLE)
                .update({"is_read": True})
                .eq("room_id", room_id)
                .neq("sender_id", user_id)
                .eq("is_read", False)
                .execute()
            )
            return GatewayResult.success(True)
        except Exception as e:
            logger.error("Error marking messages as read", room_id=room_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to mark messages as read: {e}", False)
