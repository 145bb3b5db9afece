# petora/api/listings/services.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from marshmallow import ValidationError

from petora.api.listings.filters import ListingFilter, filter_listings
from petora.api.listings.schemas import (
    ListingCreateSchema,
    ListingUpdateSchema,
    StrayReportSchema,
    split_cleared_fields,
    validate_price_coupling,
)
from petora.api.users.services import UserService
from petora.core.context import Requester
from petora.core.errors import NotFoundError, ForbiddenError, MissingOwnerError, UpstreamError
from petora.models.listing import Listing, ListingPatch, ListingType, STRAY_DEFAULTS
from petora.services.firestore_service import FirestoreService
from petora.services.storage_service import StorageService

LISTINGS = 'pets'
LISTING_FOLDER = 'listings'
STRAY_FOLDER = 'strays'


class ListingService:
    """
    Create/read/update/delete contract of pet listings.

    Owner listings (Adoption, Sale, Foster) may only be changed or removed by
    the user stored as ``owner_id``. Stray listings come exclusively from the
    public report path and have no owner, so nobody can edit them; an
    administrator can remove them through ``remove_stray``.
    """

    def __init__(self, db: FirestoreService, storage: StorageService, users: UserService,
                 placeholder_image_url: str):
        self.db = db
        self.storage = storage
        self.users = users
        self.placeholder_image_url = placeholder_image_url

    # --- helpers ---

    def _load(self, listing_id: str) -> Dict[str, Any]:
        data = self.db.get(LISTINGS, listing_id)
        if not data:
            raise NotFoundError("Listing not found.")
        return data

    def _load_owned(self, listing_id: str, requester_id: Optional[str]) -> Dict[str, Any]:
        data = self._load(listing_id)
        if not requester_id or data.get('owner_id') != requester_id:
            logging.warning(f"Listing ownership check failed (listing: {listing_id}, requester: {requester_id})")
            raise ForbiddenError("Only the owner can change this listing.")
        return data

    def _store_image(self, image, folder: str, owner_id: Optional[str] = None) -> str:
        if image is None or not getattr(image, 'filename', None):
            return self.placeholder_image_url
        return self.storage.upload(image.stream, image.filename, image.mimetype, folder, owner_id=owner_id)

    def _create(self, listing: Listing) -> None:
        try:
            self.db.create(LISTINGS, listing.listing_id, listing.to_document())
        except UpstreamError:
            self.storage.delete_owned(listing.image_url, listing.owner_id)
            raise

    # --- create ---

    def create_listing(self, payload: Dict[str, Any], owner: Optional[Requester], image=None) -> Dict[str, Any]:
        """
        :param payload: raw request fields (``type`` carries the species)
        :param owner: the authenticated requester; required
        :param image: optional uploaded file (``stream``, ``filename``, ``mimetype``)
        :return: the stored listing
        """
        if owner is None:
            raise MissingOwnerError()

        validated = ListingCreateSchema().load(payload)
        image_url = self._store_image(image, LISTING_FOLDER, owner.user_id)

        listing = Listing(
            listing_id=str(uuid.uuid4()),
            image_url=image_url,
            owner_id=owner.user_id,
            **validated,
        )
        self._create(listing)
        logging.info(f"Listing created: {listing.listing_id} ({listing.listing_type}) by {owner.user_id}")
        return self._load(listing.listing_id)

    def report_stray(self, payload: Dict[str, Any], image=None, reporter: Optional[Requester] = None) -> Dict[str, Any]:
        """Anonymous stray report. Always stored as an ownerless Stray listing without a price."""
        validated = StrayReportSchema().load(payload)
        fields = dict(STRAY_DEFAULTS)
        if validated.get('species'):
            fields['species'] = validated['species']

        listing = Listing(
            listing_id=str(uuid.uuid4()),
            location=validated['location'],
            description=validated['description'],
            listing_type=ListingType.STRAY.value,
            image_url=self._store_image(image, STRAY_FOLDER),
            reporter_contact=validated.get('reporter_contact'),
            **fields,
        )
        self._create(listing)
        logging.info(f"Stray reported: {listing.listing_id} (reporter: {reporter.user_id if reporter else 'anonymous'})")
        return self._load(listing.listing_id)

    # --- update ---

    def build_patch(self, payload: Dict[str, Any]) -> ListingPatch:
        """Turns a raw update body into a ``ListingPatch``; blank required fields become ``ignored_fields``."""
        kept, ignored = split_cleared_fields(payload or {})
        validated = ListingUpdateSchema().load(kept)
        return ListingPatch.from_dict(validated, ignored_fields=ignored)

    def update_listing(self, listing_id: str, requester_id: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Applies the supplied fields of a raw update body to an owned listing.
        Ownership is settled before the body is validated.

        The merged result is checked against the Sale/price rule before
        anything is written, so switching away from Sale requires ``price: null``
        in the same request.
        """
        current = self._load_owned(listing_id, requester_id)
        patch = self.build_patch(payload)

        if patch.ignored_fields:
            logging.warning(f"Listing {listing_id}: blank values kept unchanged for {patch.ignored_fields}")

        changes = patch.changes()
        if not changes and not patch.ignored_fields:
            raise ValidationError({"_schema": ["No fields to update were provided."]})

        merged = {**current, **changes}
        validate_price_coupling(merged.get('listing_type'), merged.get('price'))

        if changes:
            old_image = current.get('image_url')
            self.db.update(LISTINGS, listing_id, changes)
            if 'image_url' in changes and changes['image_url'] != old_image:
                self.storage.delete_owned(old_image, requester_id)
            logging.info(f"Listing {listing_id} updated: {sorted(changes)}")

        view = self.get_listing(listing_id)
        view['ignored_fields'] = list(patch.ignored_fields)
        return view

    # --- delete ---

    def delete_listing(self, listing_id: str, requester_id: Optional[str]) -> None:
        """Physical removal. A second delete of the same id raises NotFoundError."""
        current = self._load_owned(listing_id, requester_id)
        if not self.db.delete(LISTINGS, listing_id):
            raise NotFoundError("Listing not found.")
        self.storage.delete_owned(current.get('image_url'), current.get('owner_id'))
        logging.info(f"Listing {listing_id} deleted by {requester_id}")

    def remove_stray(self, listing_id: str, admin_id: str) -> None:
        """Moderation removal of an ownerless listing. Owned listings stay owner-only."""
        current = self._load(listing_id)
        if current.get('owner_id'):
            logging.warning(f"Admin {admin_id} tried to remove owned listing {listing_id}")
            raise ForbiddenError("Only the owner can remove this listing.")
        if not self.db.delete(LISTINGS, listing_id):
            raise NotFoundError("Listing not found.")
        self.storage.delete_owned(current.get('image_url'), None)
        logging.info(f"Stray listing {listing_id} removed by admin {admin_id}")

    # --- read ---

    def get_listing(self, listing_id: str) -> Dict[str, Any]:
        """The listing plus owner contact; contact fields are None when the owner cannot be resolved."""
        data = self._load(listing_id)
        owner = self.users.get_user(data.get('owner_id'))
        data['owner_email'] = owner.email if owner else None
        data['owner_name'] = owner.display_name if owner else None
        return data

    def list_listings(self, listing_type: Optional[str] = None,
                      listing_filter: Optional[ListingFilter] = None) -> List[Dict[str, Any]]:
        """
        All listings, newest first. ``listing_type`` is applied as a database
        query (the stray view); ``listing_filter`` is the browse filter.
        """
        filters = [('listing_type', '==', listing_type)] if listing_type else []
        listings = self.db.query(LISTINGS, filters=filters, order_by='created_at', descending=True)
        if listing_filter:
            listings = filter_listings(listings, listing_filter)
        return listings

    def list_strays(self) -> List[Dict[str, Any]]:
        return self.list_listings(listing_type=ListingType.STRAY.value)

    def list_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        return self.db.query(LISTINGS, filters=[('owner_id', '==', owner_id)], order_by='created_at', descending=True)
