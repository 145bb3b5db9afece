# petora/api/listings/filters.py
"""
Browse filtering for listings.

Pure and stateless: the same function backs the ``GET /api/pets`` query
parameters and the client-side ``ListingBrowser``, which re-runs it over its
full in-memory set on every criteria change.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

ALL = 'all'


@dataclass(frozen=True)
class ListingFilter:
    search: Optional[str] = None
    species: Optional[str] = None
    listing_type: Optional[str] = None

    def matches(self, listing: Dict[str, Any]) -> bool:
        if self.search:
            term = self.search.strip().lower()
            name = (listing.get('name') or '').lower()
            breed = (listing.get('breed') or '').lower()
            if term and term not in name and term not in breed:
                return False
        if self.species and self.species != ALL and listing.get('species') != self.species:
            return False
        if self.listing_type and self.listing_type != ALL and listing.get('listing_type') != self.listing_type:
            return False
        return True


def filter_listings(listings: Iterable[Dict[str, Any]], listing_filter: ListingFilter) -> List[Dict[str, Any]]:
    """Returns a new list; the input order is preserved."""
    return [listing for listing in listings if listing_filter.matches(listing)]
