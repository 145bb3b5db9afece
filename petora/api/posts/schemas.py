# petora/api/posts/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE


class _StripText(Schema):
    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


class PostCreateSchema(_StripText):
    class Meta:
        unknown = EXCLUDE

    content = fields.Str(required=True, validate=validate.Length(min=1, max=2000, error="Post must be 1-2000 characters."))
    image_url = fields.Str(allow_none=True, validate=validate.Length(max=500))


class CommentCreateSchema(_StripText):
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="Comment must be 1-1000 characters."))


class CommentResponseSchema(Schema):
    comment_id = fields.Str(data_key="id")
    author_id = fields.Str()
    author_name = fields.Str()
    avatar_url = fields.Str()
    text = fields.Str()
    created_at = fields.DateTime(allow_none=True)


class PostResponseSchema(Schema):
    post_id = fields.Str(data_key="id")
    author_id = fields.Str()
    author_name = fields.Str()
    author_avatar = fields.Str()
    content = fields.Str()
    image_url = fields.Str(allow_none=True)
    like_count = fields.Method("get_like_count")
    is_liked = fields.Bool()
    comments = fields.List(fields.Nested(CommentResponseSchema))
    created_at = fields.DateTime(allow_none=True)

    def get_like_count(self, obj):
        return len(obj.get('likes') or [])
