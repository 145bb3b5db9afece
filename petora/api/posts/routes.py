# petora/api/posts/routes.py
from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petora.api.posts.schemas import PostResponseSchema, CommentResponseSchema
from petora.core.context import current_requester

posts_bp = Blueprint('posts_bp', __name__)


@posts_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def list_posts():
    limit = request.args.get('limit', type=int)
    posts = current_app.services['posts'].list_posts(get_jwt_identity(), limit=limit)
    return jsonify(PostResponseSchema(many=True).dump(posts)), 200


@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    if request.mimetype == 'multipart/form-data':
        payload, image = request.form.to_dict(), request.files.get('image')
    else:
        payload, image = request.get_json(silent=True) or {}, None
    try:
        post = current_app.services['posts'].create_post(current_requester(), payload, image)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(PostResponseSchema().dump(post)), 201


@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    post = current_app.services['posts'].get_post(post_id, get_jwt_identity())
    return jsonify(PostResponseSchema().dump(post)), 200


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """[author only]"""
    current_app.services['posts'].delete_post(post_id, get_jwt_identity())
    return Response(status=204)


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_like(post_id: str):
    result = current_app.services['posts'].toggle_like(post_id, get_jwt_identity())
    return jsonify(result), 200


@posts_bp.route('/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def add_comment(post_id: str):
    try:
        comment = current_app.services['posts'].add_comment(
            post_id, current_requester(), request.get_json(silent=True) or {}
        )
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(CommentResponseSchema().dump(comment)), 201
