# petora/api/users/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petora.api.users.schemas import UserPublicResponseSchema, UserPrivateResponseSchema, AdminFlagSchema
from petora.core.security import admin_required

users_bp = Blueprint('users_bp', __name__)
admin_bp = Blueprint('admin_bp', __name__)


@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    user_service = current_app.services['users']
    profile = user_service.get_profile(get_jwt_identity())
    return jsonify(UserPrivateResponseSchema().dump(profile)), 200


@users_bp.route('/<string:uid>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(uid: str):
    """Public profile of any user."""
    user_service = current_app.services['users']
    profile = user_service.get_profile(uid)
    return jsonify(UserPublicResponseSchema().dump(profile)), 200


@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    user_service = current_app.services['users']
    users = user_service.list_users()
    return jsonify(UserPrivateResponseSchema(many=True).dump(users)), 200


@admin_bp.route('/users/<string:uid>', methods=['PATCH'])
@admin_required
def set_admin_flag(uid: str):
    user_service = current_app.services['users']
    try:
        data = AdminFlagSchema().load(request.get_json() or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    profile = user_service.set_admin(uid, data['is_admin'])
    return jsonify(UserPrivateResponseSchema().dump(profile)), 200
