"""Chat models - buyer/agent conversations scoped to one listing."""

from typing import Optional
from pydantic import BaseModel, Field

from reelhome.models.listing import Listing
from reelhome.models.profile import Profile


class ChatMessage(BaseModel):
    """Single message in a chat room."""
    id: str = Field(..., description="Message ID (uuid)")
    room_id: str = Field(..., description="Chat room ID (FK)")
    sender_id: str = Field(..., description="Sender auth user ID")
    message: str = Field(..., description="Message body")
    is_read: bool = Field(default=False, description="Read by the other party")
    created_at: Optional[str] = None
    sender_profile: Optional[Profile] = None


class ChatRoom(BaseModel):
    """Conversation between a buyer and an agent about one listing."""
    id: str = Field(..., description="Chat room ID (uuid)")
    property_id: str = Field(..., description="Listing ID (FK)")
    buyer_id: str = Field(..., description="Buyer auth user ID")
    agent_id: str = Field(..., description="Agent auth user ID")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    property: Optional[Listing] = None
    buyer_profile: Optional[Profile] = None
    agent_profile: Optional[Profile] = None
    last_message: Optional[ChatMessage] = None
    unread_count: int = 0

    def counterpart_profile(self, user_id: str) -> Optional[Profile]:
        """Profile of the other participant from user_id's point of view."""
        if user_id == self.buyer_id:
            return self.agent_profile
        return self.buyer_profile
