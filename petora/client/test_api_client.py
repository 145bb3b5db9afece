# petora/client/test_api_client.py
from unittest.mock import MagicMock

import pytest
import requests
from marshmallow import ValidationError

from petora.client.api_client import PetoraClient
from petora.core.errors import ForbiddenError, NotFoundError, UpstreamError, PetoraError


def response(status_code, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    if body is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def api(session):
    return PetoraClient("http://petora.test/", access_token="token", session=session)


def test_sends_bearer_token(api, session):
    session.request.return_value = response(200, {"liked": True, "like_count": 1})

    assert api.toggle_like("p1") == {"liked": True, "like_count": 1}
    args, kwargs = session.request.call_args
    assert args == ("POST", "http://petora.test/api/posts/p1/like")
    assert kwargs["headers"] == {"Authorization": "Bearer token"}


@pytest.mark.parametrize("status,body,expected", [
    (403, {"error_code": "FORBIDDEN", "message": "no"}, ForbiddenError),
    (404, {"error_code": "NOT_FOUND"}, NotFoundError),
    (404, None, NotFoundError),
    (409, {"error_code": "CONFLICT"}, PetoraError),
    (502, {"error_code": "UPSTREAM_ERROR"}, UpstreamError),
    (500, None, UpstreamError),
])
def test_error_mapping(api, session, status, body, expected):
    session.request.return_value = response(status, body)
    with pytest.raises(expected):
        api.get_listing("x")


def test_validation_error_keeps_details(api, session):
    session.request.return_value = response(400, {"error_code": "VALIDATION_ERROR", "details": {"price": ["bad"]}})
    with pytest.raises(ValidationError) as exc_info:
        api.create_listing({"name": "Buddy"})
    assert exc_info.value.messages == {"price": ["bad"]}


def test_network_failure_is_upstream_error(api, session):
    session.request.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(UpstreamError):
        api.list_listings()


def test_start_session_stores_tokens(session):
    session.request.return_value = response(200, {"access_token": "a", "refresh_token": "r"})
    api = PetoraClient("http://petora.test", session=session)

    api.start_session("id-token")
    assert api.access_token == "a"
    assert api.refresh_token == "r"


def test_delete_returns_none_on_204(api, session):
    session.request.return_value = response(204)
    assert api.delete_listing("x") is None
