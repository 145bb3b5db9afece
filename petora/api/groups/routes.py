# petora/api/groups/routes.py
from flask import Blueprint, request, jsonify, current_app, Response, stream_with_context
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petora.api.groups.schemas import GroupResponseSchema, MessageResponseSchema
from petora.core.context import current_requester
from petora.core.security import admin_required

groups_bp = Blueprint('groups_bp', __name__)


@groups_bp.route('', methods=['GET'])
def list_groups():
    groups = current_app.services['community'].list_groups()
    return jsonify(GroupResponseSchema(many=True).dump(groups)), 200


@groups_bp.route('', methods=['POST'])
@jwt_required()
def create_group():
    if request.mimetype == 'multipart/form-data':
        payload, image = request.form.to_dict(), request.files.get('image')
    else:
        payload, image = request.get_json(silent=True) or {}, None
    try:
        group = current_app.services['community'].create_group(payload, current_requester(), image)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(GroupResponseSchema().dump(group)), 201


@groups_bp.route('/<string:group_id>', methods=['GET'])
def get_group(group_id: str):
    group = current_app.services['community'].get_group(group_id)
    return jsonify(GroupResponseSchema().dump(group)), 200


@groups_bp.route('/<string:group_id>/join', methods=['POST'])
@jwt_required()
def join_group(group_id: str):
    result = current_app.services['community'].join_group(group_id, get_jwt_identity())
    return jsonify({
        "joined": result['joined'],
        "group": GroupResponseSchema().dump(result['group']),
    }), 200


@groups_bp.route('/<string:group_id>', methods=['DELETE'])
@admin_required
def delete_group(group_id: str):
    current_app.services['community'].delete_group(group_id)
    return Response(status=204)


@groups_bp.route('/<string:group_id>/messages', methods=['GET'])
@jwt_required()
def list_messages(group_id: str):
    messages = current_app.services['community'].list_messages(group_id, get_jwt_identity())
    return jsonify(MessageResponseSchema(many=True).dump(messages)), 200


@groups_bp.route('/<string:group_id>/messages', methods=['POST'])
@jwt_required()
def post_message(group_id: str):
    try:
        message = current_app.services['community'].post_message(
            group_id, current_requester(), request.get_json(silent=True) or {}
        )
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(MessageResponseSchema().dump(message)), 201


@groups_bp.route('/<string:group_id>/messages/stream', methods=['GET'])
@jwt_required()
def stream_messages(group_id: str):
    """
    Server-Sent Events. Each ``snapshot`` event carries the full, ordered message list.
    Browsers pass the access token as ``?jwt=``.
    """
    subscription = current_app.services['community'].subscribe_messages(group_id, get_jwt_identity())
    heartbeat = current_app.config.get('STREAM_HEARTBEAT_SECONDS', 15)
    schema = MessageResponseSchema(many=True)

    def generate():
        subscription.start()
        yield from subscription.server_sent_events(heartbeat, transform=schema.dump)

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
