# petora/api/uploads/routes.py
from flask import request, jsonify, Blueprint, current_app, Response
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate, ValidationError
from werkzeug.utils import secure_filename

uploads_bp = Blueprint('uploads_bp', __name__)
images_bp = Blueprint('images_bp', __name__)

# generic uploads land here unless a folder is requested
DEFAULT_UPLOAD_FOLDER = 'uploads'


class UploadUrlRequestSchema(Schema):
    """POST /api/uploads/url"""
    upload_type = fields.Str(required=True)
    filename = fields.Str(required=True, validate=validate.Length(min=1))
    content_type = fields.Str(required=True)


class UploadFormSchema(Schema):
    folder = fields.Str(load_default=DEFAULT_UPLOAD_FOLDER,
                        validate=validate.OneOf([DEFAULT_UPLOAD_FOLDER, 'listings', 'groups', 'posts', 'strays']))


@uploads_bp.route('', methods=['POST'])
@jwt_required(optional=True)
def upload_file():
    """
    Pass-through upload: the ``file`` part is copied into the blob store as-is.
    Returns the URL under which the file is served back.
    """
    storage_service = current_app.services['storage']
    try:
        form = UploadFormSchema().load(request.form.to_dict())
        file = request.files.get('file')
        if file is None or not file.filename:
            raise ValidationError({"file": ["No file was uploaded."]})
        url = storage_service.upload(file.stream, file.filename, file.mimetype, form['folder'],
                                     owner_id=get_jwt_identity())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify({"success": True, "url": url}), 201


@uploads_bp.route('/url', methods=['POST'])
@jwt_required()
def get_upload_url():
    """Pre-signed URL for a direct client-to-bucket upload (valid 15 minutes)."""
    storage_service = current_app.services['storage']
    try:
        data = UploadUrlRequestSchema().load(request.get_json(silent=True) or {})
        url_info = storage_service.generate_upload_url(
            get_jwt_identity(), data['upload_type'], data['filename'], data['content_type']
        )
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    return jsonify(url_info), 200


@images_bp.route('/<path:blob_name>', methods=['GET'])
def serve_image(blob_name: str):
    """Streams a stored blob back with its content type."""
    content, content_type = current_app.services['storage'].open(blob_name)
    download_name = secure_filename(blob_name.rsplit('/', 1)[-1]) or 'image'
    return Response(
        content,
        mimetype=content_type,
        headers={
            'Content-Disposition': f'inline; filename="{download_name}"',
            'Cache-Control': 'public, max-age=86400',
        },
    )
