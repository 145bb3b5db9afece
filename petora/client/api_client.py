# petora/client/api_client.py
import logging
from typing import Any, Dict, List, Optional

import requests
from marshmallow import ValidationError

from petora.core.errors import (
    PetoraError,
    NotFoundError,
    ForbiddenError,
    UnauthenticatedError,
    MissingOwnerError,
    UpstreamError,
)

ERROR_CLASSES = {
    cls.error_code: cls
    for cls in (NotFoundError, ForbiddenError, UnauthenticatedError, MissingOwnerError, UpstreamError)
}


class PetoraClient:
    """
    Thin HTTP client for the Petora API.

    4xx answers are raised as the matching domain error (``VALIDATION_ERROR``
    as marshmallow's ``ValidationError``); network failures and 5xx answers
    raise ``UpstreamError``.
    """

    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.refresh_token = None
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logging.error(f"{method} {url} failed: {e}")
            raise UpstreamError() from e

        if response.status_code == 204:
            return None
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 500:
            raise UpstreamError(body.get('message') if isinstance(body, dict) else None)
        if response.status_code >= 400:
            raise self._error_from(response.status_code, body if isinstance(body, dict) else {})
        return body

    @staticmethod
    def _error_from(status_code: int, body: Dict[str, Any]) -> Exception:
        error_code = body.get('error_code')
        if error_code == 'VALIDATION_ERROR':
            return ValidationError(body.get('details') or {})
        error_class = ERROR_CLASSES.get(error_code)
        if error_class is None:
            error_class = {401: UnauthenticatedError, 403: ForbiddenError, 404: NotFoundError}.get(status_code, PetoraError)
        return error_class(body.get('message'))

    # --- session ---

    def start_session(self, id_token: str) -> Dict[str, Any]:
        """Exchanges a Firebase ID token and keeps the returned tokens on the client."""
        result = self._request('POST', '/api/auth/session', json={"id_token": id_token})
        self.access_token = result['access_token']
        self.refresh_token = result['refresh_token']
        return result

    def logout(self) -> None:
        self._request('POST', '/api/auth/logout', json={
            "access_token": self.access_token, "refresh_token": self.refresh_token
        })
        self.access_token = self.refresh_token = None

    # --- listings ---

    def list_listings(self, q: Optional[str] = None, species: Optional[str] = None,
                      listing_type: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in (('q', q), ('type', species), ('listing_type', listing_type)) if v}
        return self._request('GET', '/api/pets', params=params)

    def get_listing(self, listing_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/pets/{listing_id}')

    def create_listing(self, fields: Dict[str, Any], image: Optional[tuple] = None) -> Dict[str, Any]:
        """
        :param image: optional ``(filename, fileobj, content_type)``; sends a multipart form when given
        """
        if image:
            return self._request('POST', '/api/pets', data=fields, files={'image': image})
        return self._request('POST', '/api/pets', json=fields)

    def update_listing(self, listing_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('PATCH', f'/api/pets/{listing_id}', json=changes)

    def delete_listing(self, listing_id: str) -> None:
        self._request('DELETE', f'/api/pets/{listing_id}')

    def list_strays(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/strays')

    def report_stray(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('POST', '/api/strays', json=fields)

    # --- community ---

    def list_groups(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/groups')

    def join_group(self, group_id: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/groups/{group_id}/join')

    def list_messages(self, group_id: str) -> List[Dict[str, Any]]:
        return self._request('GET', f'/api/groups/{group_id}/messages')

    def post_message(self, group_id: str, text: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/groups/{group_id}/messages', json={"text": text})

    def list_posts(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/posts')

    def toggle_like(self, post_id: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/posts/{post_id}/like')

    def add_comment(self, post_id: str, text: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/posts/{post_id}/comments', json={"text": text})

    # --- chatbot ---

    def ask_chatbot(self, question: str) -> str:
        return self._request('POST', '/api/chatbot', json={"question": question})['answer']
