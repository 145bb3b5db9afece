# petora/client/view_state.py
"""
Local view state kept in step with the server.

Latency-sensitive actions (like, join) change the local state first and
then call the API. ``OptimisticAction`` runs that as a small two-phase
transaction: the inverse of the local change is captured together with the
forward change, and is applied if the remote call fails. Whatever happens,
the user gets exactly one notification.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from marshmallow import ValidationError

from petora.api.listings.filters import ListingFilter, filter_listings
from petora.core.errors import PetoraError


class Notifier:
    """Transient user notifications (toasts). Subclass to render them."""

    def success(self, message: str) -> None:
        logging.info(message)

    def failure(self, message: str) -> None:
        logging.warning(message)


class OptimisticAction:
    """
    :param apply: forward change to local state
    :param revert: exact inverse of ``apply``
    :param commit: the remote call
    """

    def __init__(self, apply: Callable[[], None], revert: Callable[[], None], commit: Callable[[], Any],
                 notifier: Notifier, success_message: str, failure_message: str):
        self.apply = apply
        self.revert = revert
        self.commit = commit
        self.notifier = notifier
        self.success_message = success_message
        self.failure_message = failure_message

    def run(self) -> bool:
        """True when the remote call succeeded. Errors are reported, never raised."""
        self.apply()
        try:
            self.commit()
        except Exception as e:
            # outermost boundary of a user action: nothing propagates past here
            expected = isinstance(e, (PetoraError, ValidationError))
            logging.log(logging.WARNING if expected else logging.ERROR,
                        f"Remote call failed, rolling back local change: {e}", exc_info=not expected)
            self.revert()
            self.notifier.failure(self.failure_message)
            return False
        self.notifier.success(self.success_message)
        return True


@dataclass
class LikeState:
    liked: bool
    like_count: int


class PostView:
    """One post in the feed, as seen by ``user_id``."""

    def __init__(self, post: Dict[str, Any], user_id: str, client, notifier: Notifier):
        self.post_id = post['id']
        self.user_id = user_id
        self.client = client
        self.notifier = notifier
        self.like = LikeState(liked=bool(post.get('is_liked')), like_count=post.get('like_count', 0))

    def toggle_like(self) -> bool:
        before = LikeState(self.like.liked, self.like.like_count)
        after = LikeState(not before.liked, before.like_count + (-1 if before.liked else 1))

        def apply():
            self.like = after

        def revert():
            self.like = before

        return OptimisticAction(
            apply, revert, lambda: self.client.toggle_like(self.post_id), self.notifier,
            success_message="Post unliked." if before.liked else "Post liked.",
            failure_message="Could not update the like. Please try again.",
        ).run()

    def reconcile(self, server_post: Dict[str, Any]) -> None:
        """Adopts the server's view of the post (change-notification push)."""
        likes = server_post.get('likes')
        if likes is not None:
            self.like = LikeState(liked=self.user_id in likes, like_count=len(likes))
        else:
            self.like = LikeState(liked=bool(server_post.get('is_liked')), like_count=server_post.get('like_count', 0))


class GroupView:
    """Group card with the join button."""

    def __init__(self, group: Dict[str, Any], user_id: str, client, notifier: Notifier):
        self.group_id = group['id']
        self.user_id = user_id
        self.client = client
        self.notifier = notifier
        self.reconcile(group)

    @property
    def is_member(self) -> bool:
        return self.user_id == self.owner_id or self.user_id in self.member_ids

    def join(self) -> bool:
        if self.is_member:
            self.notifier.success("You are already a member of this group.")
            return True

        def apply():
            self.member_ids = self.member_ids | {self.user_id}
            self.member_count += 1

        def revert():
            self.member_ids = self.member_ids - {self.user_id}
            self.member_count -= 1

        return OptimisticAction(
            apply, revert, lambda: self.client.join_group(self.group_id), self.notifier,
            success_message="You joined the group.",
            failure_message="Could not join the group. Please try again.",
        ).run()

    def reconcile(self, server_group: Dict[str, Any]) -> None:
        self.owner_id = server_group.get('owner_id')
        self.member_ids = frozenset(server_group.get('member_ids') or [])
        self.member_count = server_group.get('member_count', len(self.member_ids))


class ListingBrowser:
    """
    Holds the full listing set and recomputes the visible subset whenever a
    criterion changes. Filtering never touches the network.
    """

    def __init__(self, listings: Iterable[Dict[str, Any]] = ()):
        self._listings: List[Dict[str, Any]] = [self._listing_fields(listing) for listing in listings]
        self.criteria = ListingFilter()
        self.visible: List[Dict[str, Any]] = []
        self._recompute()

    def _recompute(self):
        self.visible = filter_listings(self._listings, self.criteria)

    def _listing_fields(self, listing: Dict[str, Any]) -> Dict[str, Any]:
        # API payloads call the species "type"
        if 'species' not in listing and 'type' in listing:
            return dict(listing, species=listing['type'])
        return listing

    def set_search(self, search: Optional[str]):
        self.criteria = ListingFilter(search, self.criteria.species, self.criteria.listing_type)
        self._recompute()

    def set_species(self, species: Optional[str]):
        self.criteria = ListingFilter(self.criteria.search, species, self.criteria.listing_type)
        self._recompute()

    def set_listing_type(self, listing_type: Optional[str]):
        self.criteria = ListingFilter(self.criteria.search, self.criteria.species, listing_type)
        self._recompute()

    def reconcile(self, server_listings: Iterable[Dict[str, Any]]):
        """Replaces the full set with the server's current one."""
        self._listings = [self._listing_fields(listing) for listing in server_listings]
        self._recompute()
