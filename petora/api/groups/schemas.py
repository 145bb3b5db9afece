# petora/api/groups/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE


class GroupCreateSchema(Schema):
    """POST /api/groups (multipart form with optional ``image``, or JSON)."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True, validate=validate.Length(min=3, max=80, error="Group name must be 3-80 characters."))
    description = fields.Str(required=True, validate=validate.Length(min=10, max=500, error="Description must be 10-500 characters."))

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


class MessageCreateSchema(Schema):
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="Message must be 1-1000 characters."))

    @pre_load
    def strip_text(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('text'), str):
            data = dict(data, text=data['text'].strip())
        return data


class GroupResponseSchema(Schema):
    group_id = fields.Str(data_key="id")
    name = fields.Str()
    description = fields.Str()
    image_url = fields.Str()
    owner_id = fields.Str()
    member_count = fields.Int()
    member_ids = fields.List(fields.Str())
    created_at = fields.DateTime(allow_none=True)


class MessageResponseSchema(Schema):
    message_id = fields.Str(data_key="id")
    sender_id = fields.Str()
    sender_name = fields.Str()
    avatar_url = fields.Str()
    text = fields.Str()
    created_at = fields.DateTime(allow_none=True)
