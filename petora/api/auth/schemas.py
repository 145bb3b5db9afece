# petora/api/auth/schemas.py
from marshmallow import Schema, fields, validate


class SessionRequestSchema(Schema):
    """POST /api/auth/session"""
    id_token = fields.Str(
        required=True,
        validate=validate.Length(min=1),
        metadata={"description": "Firebase Authentication ID token obtained by the client"}
    )


class LogoutRequestSchema(Schema):
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)
