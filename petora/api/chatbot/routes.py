# petora/api/chatbot/routes.py
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError

from petora.api.chatbot.schemas import ChatbotQuestionSchema, ChatbotAnswerSchema

chatbot_bp = Blueprint('chatbot_bp', __name__)


@chatbot_bp.route('', methods=['POST'])
def ask_chatbot():
    """Single question, single answer. Off-topic questions are declined by the model prompt."""
    try:
        data = ChatbotQuestionSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    result = current_app.services['openai'].answer_pet_care_question(data['question'])
    return jsonify(ChatbotAnswerSchema().dump(result)), 200
