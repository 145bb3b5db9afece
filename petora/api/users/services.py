# petora/api/users/services.py
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from petora.core.context import default_avatar
from petora.core.errors import NotFoundError
from petora.models.user import User
from petora.services.firestore_service import FirestoreService

USERS = 'users'


class UserService:
    """User profiles stored in the 'users' collection, keyed by identity provider uid."""

    def __init__(self, db: FirestoreService):
        self.db = db

    def get_user(self, uid: str) -> Optional[User]:
        if not uid:
            return None
        data = self.db.get(USERS, uid)
        if not data:
            return None
        return User(
            uid=data.get('uid', uid),
            display_name=data.get('display_name') or 'User',
            email=data.get('email'),
            photo_url=data.get('photo_url') or default_avatar(data.get('display_name')),
            is_admin=bool(data.get('is_admin', False)),
            created_at=data.get('created_at'),
        )

    def get_or_create_from_identity(self, identity: Dict[str, Any]) -> Tuple[User, bool]:
        """
        Returns the stored profile for a verified identity, creating it on first sign-in.

        :param identity: output of ``IdentityService.verify_id_token``
        :return: ``(user, is_new_user)``
        """
        uid = identity['uid']
        existing = self.get_user(uid)
        if existing:
            return existing, False

        display_name = identity.get('display_name') or (identity.get('email') or 'User').split('@')[0]
        new_user = User(
            uid=uid,
            display_name=display_name,
            email=identity.get('email'),
            photo_url=identity.get('photo_url') or default_avatar(display_name),
            is_admin=False,
        )
        document = asdict(new_user)
        document.pop('created_at')
        self.db.create(USERS, uid, document)
        logging.info(f"User profile created (uid: {uid})")
        return self.get_user(uid) or new_user, True

    def is_admin(self, uid: str) -> bool:
        user = self.get_user(uid)
        return bool(user and user.is_admin)

    def get_profile(self, uid: str) -> Dict[str, Any]:
        user = self.get_user(uid)
        if not user:
            raise NotFoundError("User not found.")
        return asdict(user)

    def list_users(self) -> List[Dict[str, Any]]:
        """Admin dashboard listing, newest accounts first."""
        return self.db.query(USERS, order_by='created_at', descending=True)

    def set_admin(self, uid: str, is_admin: bool) -> Dict[str, Any]:
        self.db.update(USERS, uid, {'is_admin': is_admin})
        logging.info(f"Admin flag of {uid} set to {is_admin}")
        return self.get_profile(uid)
