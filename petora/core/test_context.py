# petora/core/test_context.py
from petora.core.context import Requester, default_avatar


def test_requester_from_claims():
    requester = Requester.from_claims("alice", {"display_name": "Alice", "photo_url": "https://x/a.png",
                                                "email": "a@x.test"})
    assert requester.user_id == "alice"
    assert requester.avatar_url == "https://x/a.png"
    assert requester.email == "a@x.test"


def test_requester_falls_back_to_initials_avatar():
    requester = Requester.from_claims("bob", {})
    assert requester.display_name == "User"
    assert requester.avatar_url == default_avatar("User")
    assert default_avatar("Bob Smith").endswith("seed=Bob%20Smith")
