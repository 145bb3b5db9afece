# petora/core/context.py
"""
Explicit per-request identity.

Handlers build a ``Requester`` from the verified access token and hand it to
services as an argument; nothing about the caller is kept in module state.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from flask_jwt_extended import get_jwt, get_jwt_identity

from petora.core.errors import UnauthenticatedError

AVATAR_FALLBACK_URL = "https://api.dicebear.com/7.x/initials/svg?seed={seed}"


def default_avatar(display_name: Optional[str]) -> str:
    return AVATAR_FALLBACK_URL.format(seed=quote(display_name or "User"))


@dataclass(frozen=True)
class Requester:
    user_id: str
    display_name: str
    avatar_url: str
    email: Optional[str] = None

    @classmethod
    def from_claims(cls, user_id: str, claims: dict) -> "Requester":
        display_name = claims.get('display_name') or 'User'
        return cls(
            user_id=user_id,
            display_name=display_name,
            avatar_url=claims.get('photo_url') or default_avatar(display_name),
            email=claims.get('email'),
        )


def current_requester(optional: bool = False) -> Optional[Requester]:
    """
    Returns the identity attached to the current request.
    Must run after ``@jwt_required()`` (or ``@jwt_required(optional=True)``).
    """
    user_id = get_jwt_identity()
    if not user_id:
        if optional:
            return None
        raise UnauthenticatedError()
    return Requester.from_claims(user_id, get_jwt())
