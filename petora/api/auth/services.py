# petora/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from petora.models.user import User
from petora.services.firestore_service import FirestoreService

REVOKED_TOKENS = 'revoked_tokens'


class AuthService:
    """Token blocklist and the claims embedded in issued tokens."""

    def __init__(self, db: FirestoreService):
        self.db = db

    @staticmethod
    def claims_for(user: User) -> Dict[str, Any]:
        """Extra claims read back by ``Requester.from_claims``."""
        return {
            "display_name": user.display_name,
            "photo_url": user.photo_url,
            "email": user.email,
        }

    # --- blocklist ---

    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """Stores the jti together with its expiry so the entry can be purged later."""
        self.db.create(REVOKED_TOKENS, jti, {'expires_at': expires})

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        return self.db.get(REVOKED_TOKENS, jwt_payload['jti']) is not None

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Revokes both tokens of a session."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"User logged out. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")
