"""
Python client for the Petora API and the local view state a UI keeps on top of it.
"""

from .api_client import PetoraClient
from .view_state import Notifier, OptimisticAction, LikeState, PostView, GroupView, ListingBrowser

__all__ = [
    'PetoraClient',
    'Notifier', 'OptimisticAction', 'LikeState',
    'PostView', 'GroupView', 'ListingBrowser',
]
