# petora/models/user.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class User:
    """
    Firestore 'users' collection document, keyed by the identity provider uid.
    """
    uid: str
    display_name: str
    email: Optional[str]
    photo_url: str
    is_admin: bool = False
    created_at: Optional[datetime] = None
