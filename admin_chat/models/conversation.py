from datetime import datetime
from typing import List, Optional, Set
import enum

from pydantic import BaseModel, Field

from .message import Message


class ConversationType(str, enum.Enum):
    DIRECT = "direct"
    GROUP = "group"
    SUPPORT = "support"


class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    ARCHIVED = "archived"


class ConversationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ParticipantType(str, enum.Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    STAFF = "staff"


class Participant(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    type: ParticipantType = ParticipantType.CUSTOMER
    avatar: Optional[str] = None
    is_online: bool = False
    last_seen: Optional[datetime] = None
    role: Optional[str] = None
    department: Optional[str] = None


class Conversation(BaseModel):
    id: str
    participant_ids: Set[str] = set()
    participants: List[Participant] = []
    last_message: Optional[Message] = None
    unread_count: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime
    type: ConversationType = ConversationType.DIRECT
    status: ConversationStatus = ConversationStatus.ACTIVE
    priority: ConversationPriority = ConversationPriority.MEDIUM
    tags: Set[str] = set()
    assigned_to: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def matches_search(self, term: str) -> bool:
        """Case-insensitive substring match on participant name/email or last message."""
        if not term:
            return True
        needle = term.lower()
        for participant in self.participants:
            if needle in participant.name.lower() or needle in participant.email.lower():
                return True
        if self.last_message is not None and needle in self.last_message.content.lower():
            return True
        return False

    def other_participant(self, current_user_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id != current_user_id:
                return participant
        return None

    def display_title(self, current_user_id: str) -> str:
        if self.title:
            return self.title
        other = self.other_participant(current_user_id)
        return other.name if other and other.name else "Unknown"
