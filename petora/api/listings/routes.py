# petora/api/listings/routes.py
from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petora.api.listings.filters import ListingFilter
from petora.api.listings.schemas import (
    ListingResponseSchema,
    ListingDetailResponseSchema,
    ListingFilterSchema,
    drop_blank_form_values,
)
from petora.core.context import current_requester

listings_bp = Blueprint('listings_bp', __name__)


def read_listing_payload():
    """Returns ``(fields, image)`` from a multipart form or a JSON body."""
    if request.mimetype == 'multipart/form-data':
        return drop_blank_form_values(request.form.to_dict()), request.files.get('image')
    return request.get_json(silent=True) or {}, None


@listings_bp.route('', methods=['GET'])
def list_listings():
    """Browse listings, optionally filtered by ``q``, ``type`` and ``listing_type``."""
    try:
        args = ListingFilterSchema().load(request.args.to_dict())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    listing_filter = ListingFilter(search=args['q'], species=args['species'], listing_type=args['listing_type'])
    listings = current_app.services['listings'].list_listings(listing_filter=listing_filter)
    return jsonify(ListingResponseSchema(many=True).dump(listings)), 200


@listings_bp.route('', methods=['POST'])
@jwt_required(optional=True)
def create_listing():
    """Creates a listing owned by the requester. Accepts multipart (with ``image``) or JSON."""
    payload, image = read_listing_payload()
    try:
        listing = current_app.services['listings'].create_listing(payload, current_requester(optional=True), image)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(ListingResponseSchema().dump(listing)), 201


@listings_bp.route('/mine', methods=['GET'])
@jwt_required()
def list_my_listings():
    listings = current_app.services['listings'].list_by_owner(get_jwt_identity())
    return jsonify(ListingResponseSchema(many=True).dump(listings)), 200


@listings_bp.route('/<string:listing_id>', methods=['GET'])
def get_listing(listing_id: str):
    listing = current_app.services['listings'].get_listing(listing_id)
    return jsonify(ListingDetailResponseSchema().dump(listing)), 200


@listings_bp.route('/<string:listing_id>', methods=['PUT', 'PATCH'])
@jwt_required()
def update_listing(listing_id: str):
    """[owner only] Partial update. Blank required fields are left unchanged and listed in ``ignored_fields``."""
    listing_service = current_app.services['listings']
    try:
        listing = listing_service.update_listing(listing_id, get_jwt_identity(), request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(ListingDetailResponseSchema().dump(listing)), 200


@listings_bp.route('/<string:listing_id>', methods=['DELETE'])
@jwt_required()
def delete_listing(listing_id: str):
    """[owner only] Removes the listing and its stored image."""
    current_app.services['listings'].delete_listing(listing_id, get_jwt_identity())
    return Response(status=204)
