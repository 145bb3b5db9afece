# petora/api/strays/routes.py
from flask import Blueprint, jsonify, current_app, Response
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petora.api.listings.routes import read_listing_payload
from petora.api.listings.schemas import ListingResponseSchema
from petora.core.context import current_requester
from petora.core.security import admin_required

strays_bp = Blueprint('strays_bp', __name__)


@strays_bp.route('', methods=['GET'])
def list_strays():
    strays = current_app.services['listings'].list_strays()
    return jsonify(ListingResponseSchema(many=True).dump(strays)), 200


@strays_bp.route('', methods=['POST'])
@jwt_required(optional=True)
def report_stray():
    """Public stray report; signing in is not required."""
    payload, image = read_listing_payload()
    try:
        listing = current_app.services['listings'].report_stray(payload, image, current_requester(optional=True))
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(ListingResponseSchema().dump(listing)), 201


@strays_bp.route('/<string:listing_id>', methods=['DELETE'])
@admin_required
def remove_stray(listing_id: str):
    """[admin] Removes a stray report and its image."""
    current_app.services['listings'].remove_stray(listing_id, get_jwt_identity())
    return Response(status=204)
