# petora/api/auth/routes.py
import logging

import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    get_jwt,
)
from marshmallow import ValidationError

from petora.api.auth.schemas import SessionRequestSchema, LogoutRequestSchema
from petora.api.users.schemas import UserPrivateResponseSchema

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/session', methods=['POST'])
def create_session():
    """Exchanges a Firebase ID token for an app token pair, creating the profile on first sign-in."""
    try:
        data = SessionRequestSchema().load(request.get_json() or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    identity = current_app.services['identity'].verify_id_token(data['id_token'])
    user, is_new_user = current_app.services['users'].get_or_create_from_identity(identity)

    claims = current_app.services['auth'].claims_for(user)
    access_token = create_access_token(identity=user.uid, additional_claims=claims)
    refresh_token = create_refresh_token(identity=user.uid, additional_claims=claims)

    return jsonify({
        "access_token": access_token,
        "refresh_token": refresh_token,
        "is_new_user": is_new_user,
        "user": UserPrivateResponseSchema().dump(user),
    }), 200


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """Issues a new access token from a valid, non-revoked refresh token."""
    claims = get_jwt()
    additional = {k: claims.get(k) for k in ('display_name', 'photo_url', 'email')}
    new_access_token = create_access_token(identity=get_jwt_identity(), additional_claims=additional)
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Adds the access and refresh token of the session to the blocklist."""
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    secret_key = current_app.config['JWT_SECRET_KEY']
    algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')
    try:
        # expired tokens are still revoked
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
    except jwt.PyJWTError as e:
        logging.warning(f"Logout with an undecodable token: {e}")
        return jsonify({"error_code": "INVALID_TOKEN", "message": "The supplied token is not valid."}), 422

    current_app.services['auth'].logout_user(
        decoded_access['jti'], decoded_access['exp'],
        decoded_refresh['jti'], decoded_refresh['exp'],
    )
    return jsonify({"message": "Logged out."}), 200
