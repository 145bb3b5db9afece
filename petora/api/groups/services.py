# petora/api/groups/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from petora.api.groups.schemas import GroupCreateSchema, MessageCreateSchema
from petora.core.context import Requester
from petora.core.errors import NotFoundError, ForbiddenError, MissingOwnerError, UpstreamError
from petora.models.group import CommunityGroup, ChatMessage
from petora.services.firestore_service import FirestoreService
from petora.services.realtime import ChangeSubscription
from petora.services.storage_service import StorageService

GROUPS = 'groups'
GROUP_FOLDER = 'groups'


def messages_path(group_id: str) -> str:
    return f"{GROUPS}/{group_id}/messages"


class CommunityService:
    """
    Community groups and their chat.

    ``member_ids`` starts as ``[owner_id]`` and only grows through ``join_group``,
    which adds the id and bumps ``member_count`` in one transaction. Only
    members (or the owner) may read or post messages.
    """

    def __init__(self, db: FirestoreService, storage: StorageService, placeholder_image_url: str):
        self.db = db
        self.storage = storage
        self.placeholder_image_url = placeholder_image_url

    def _to_group(self, data: Dict[str, Any]) -> CommunityGroup:
        return CommunityGroup(
            group_id=data['group_id'],
            name=data.get('name', ''),
            description=data.get('description', ''),
            image_url=data.get('image_url') or self.placeholder_image_url,
            owner_id=data.get('owner_id'),
            member_count=data.get('member_count', 0),
            member_ids=list(data.get('member_ids') or []),
            created_at=data.get('created_at'),
        )

    def get_group(self, group_id: str) -> CommunityGroup:
        data = self.db.get(GROUPS, group_id)
        if not data:
            raise NotFoundError("Group not found.")
        return self._to_group(data)

    def list_groups(self) -> List[CommunityGroup]:
        return [self._to_group(d) for d in self.db.query(GROUPS, order_by='created_at', descending=True)]

    def create_group(self, payload: Dict[str, Any], owner: Optional[Requester], image=None) -> CommunityGroup:
        if owner is None:
            raise MissingOwnerError()
        validated = GroupCreateSchema().load(payload)

        image_url = self.placeholder_image_url
        if image is not None and image.filename:
            image_url = self.storage.upload(image.stream, image.filename, image.mimetype, GROUP_FOLDER,
                                           owner_id=owner.user_id)

        group = CommunityGroup(
            group_id=str(uuid.uuid4()),
            name=validated['name'],
            description=validated['description'],
            image_url=image_url,
            owner_id=owner.user_id,
            member_count=1,
            member_ids=[owner.user_id],
        )
        document = asdict(group)
        document.pop('created_at')
        try:
            self.db.create(GROUPS, group.group_id, document)
        except UpstreamError:
            self.storage.delete_owned(image_url, owner.user_id)
            raise
        logging.info(f"Group created: {group.group_id} by {owner.user_id}")
        return self.get_group(group.group_id)

    def join_group(self, group_id: str, user_id: str) -> Dict[str, Any]:
        """
        Idempotent: joining again changes nothing.
        :return: ``joined`` (False when already a member) and the current group
        """
        joined = self.db.add_to_set(GROUPS, group_id, 'member_ids', user_id, counter_field='member_count')
        if joined:
            logging.info(f"User {user_id} joined group {group_id}")
        return {"joined": joined, "group": self.get_group(group_id)}

    def delete_group(self, group_id: str) -> None:
        """Administrator operation; removes the group, its messages and its stored image."""
        group = self.get_group(group_id)
        removed = self.db.delete_collection(messages_path(group_id))
        self.db.delete(GROUPS, group_id)
        self.storage.delete_owned(group.image_url, group.owner_id)
        logging.info(f"Group {group_id} deleted with {removed} messages")

    # --- chat ---

    def _require_member(self, group_id: str, user_id: Optional[str]) -> CommunityGroup:
        group = self.get_group(group_id)
        if not user_id or not group.has_member(user_id):
            logging.warning(f"Non-member {user_id} denied access to chat of group {group_id}")
            raise ForbiddenError("Only group members can use this chat.")
        return group

    def post_message(self, group_id: str, sender: Requester, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_member(group_id, sender.user_id)
        validated = MessageCreateSchema().load(payload)

        message = ChatMessage(
            message_id=str(uuid.uuid4()),
            sender_id=sender.user_id,
            sender_name=sender.display_name,
            avatar_url=sender.avatar_url,
            text=validated['text'],
        )
        document = asdict(message)
        document.pop('created_at')
        self.db.create(messages_path(group_id), message.message_id, document)
        return self.db.get(messages_path(group_id), message.message_id)

    def list_messages(self, group_id: str, requester_id: Optional[str]) -> List[Dict[str, Any]]:
        """Oldest first, ordered by the server-assigned timestamp."""
        self._require_member(group_id, requester_id)
        return self.db.query(messages_path(group_id), order_by='created_at')

    def subscribe_messages(self, group_id: str, requester_id: Optional[str]) -> ChangeSubscription:
        """Returns a not-yet-started subscription to the ordered message list."""
        self._require_member(group_id, requester_id)
        return ChangeSubscription(self.db, messages_path(group_id), order_by='created_at')
