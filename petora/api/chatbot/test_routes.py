# petora/api/chatbot/test_routes.py
from petora.core.errors import UpstreamError


def test_chatbot_answers(client, openai_service):
    response = client.post('/api/chatbot', json={"question": "  How often should I feed my puppy?  "})

    assert response.status_code == 200
    assert response.get_json() == {"answer": "Feed your dog twice a day."}
    openai_service.answer_pet_care_question.assert_called_once_with("How often should I feed my puppy?")


def test_chatbot_requires_question(client, openai_service):
    assert client.post('/api/chatbot', json={"question": "   "}).status_code == 400
    assert client.post('/api/chatbot', json={}).status_code == 400
    openai_service.answer_pet_care_question.assert_not_called()


def test_chatbot_upstream_failure_is_generic(client, openai_service):
    openai_service.answer_pet_care_question.side_effect = UpstreamError()

    response = client.post('/api/chatbot', json={"question": "Is chocolate bad for dogs?"})
    assert response.status_code == 502
    assert response.get_json()["error_code"] == "UPSTREAM_ERROR"


def test_chatbot_rejects_non_object_body(client, openai_service):
    response = client.post('/api/chatbot', json=["How often should I feed my puppy?"])

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "VALIDATION_ERROR"
    openai_service.answer_pet_care_question.assert_not_called()
