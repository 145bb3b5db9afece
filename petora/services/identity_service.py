# petora/services/identity_service.py
import logging
from typing import Any, Dict

from flask import Flask
from firebase_admin import auth as firebase_auth

from petora.core.errors import UnauthenticatedError, UpstreamError


class IdentityService:
    """
    Verifies ID tokens issued by Firebase Authentication.
    Sign-in itself (passwords, Google, ...) happens between the client and Firebase.
    """

    def __init__(self):
        self.check_revoked = False

    def init_app(self, app: Flask):
        self.check_revoked = not app.config.get('DEBUG', False)
        logging.info("IdentityService: Firebase Auth verification enabled.")

    def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        """
        :return: ``uid``, ``display_name``, ``email`` and ``photo_url`` of the signed-in user
        """
        try:
            decoded = firebase_auth.verify_id_token(id_token, check_revoked=self.check_revoked)
        except (firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError, firebase_auth.UserDisabledError) as e:
            logging.warning(f"ID token rejected: {e}")
            raise UnauthenticatedError("The sign-in session is invalid or has expired.") from e
        except firebase_auth.CertificateFetchError as e:
            logging.error(f"Could not fetch Firebase public keys: {e}", exc_info=True)
            raise UpstreamError() from e
        except ValueError as e:
            raise UnauthenticatedError("The sign-in session is invalid or has expired.") from e

        return {
            "uid": decoded["uid"],
            "display_name": decoded.get("name"),
            "email": decoded.get("email"),
            "photo_url": decoded.get("picture"),
        }
