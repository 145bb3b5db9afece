# petora/models/group.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List


@dataclass
class CommunityGroup:
    """
    Firestore 'groups' collection document.
    ``member_count`` always equals ``len(member_ids)``; the owner is a member from creation.
    """
    group_id: str
    name: str
    description: str
    image_url: str
    owner_id: str
    member_count: int = 1
    member_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def has_member(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.member_ids


@dataclass
class ChatMessage:
    """'groups/{group_id}/messages' document. Append-only."""
    message_id: str
    sender_id: str
    sender_name: str
    avatar_url: str
    text: str
    created_at: Optional[datetime] = None
