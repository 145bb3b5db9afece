# petora/api/users/schemas.py
from marshmallow import Schema, fields


class UserPublicResponseSchema(Schema):
    """
    GET /api/users/{uid}
    Public profile; the email is left out.
    """
    uid = fields.Str(required=True, dump_only=True)
    display_name = fields.Str(required=True)
    photo_url = fields.Str(allow_none=True)


class UserPrivateResponseSchema(UserPublicResponseSchema):
    """GET /api/users/me and the admin user list."""
    email = fields.Str(allow_none=True)
    is_admin = fields.Bool()
    created_at = fields.DateTime(allow_none=True)


class AdminFlagSchema(Schema):
    is_admin = fields.Bool(required=True)
