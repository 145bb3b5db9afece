# petora/api/chatbot/schemas.py
from marshmallow import Schema, fields, validate, pre_load


class ChatbotQuestionSchema(Schema):
    question = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=2000, error="Question must be 1-2000 characters.")
    )

    @pre_load
    def strip_question(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("question"), str):
            data = dict(data, question=data["question"].strip())
        return data


class ChatbotAnswerSchema(Schema):
    answer = fields.Str(required=True)
