# petora/services/test_openai_service.py
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from petora.core.errors import UpstreamError
from petora.services.openai_service import OpenAIService, PET_CARE_SYSTEM_PROMPT


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def service():
    service = OpenAIService()
    service.client = MagicMock()
    return service


def test_answer_uses_pet_care_prompt(service):
    service.client.chat.completions.create.return_value = completion(" Brush weekly. ")

    assert service.answer_pet_care_question("How do I groom a cat?") == {"answer": "Brush weekly."}
    messages = service.client.chat.completions.create.call_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": PET_CARE_SYSTEM_PROMPT}
    assert messages[1] == {"role": "user", "content": "How do I groom a cat?"}


def test_api_failure_is_upstream_error(service):
    service.client.chat.completions.create.side_effect = OpenAIError("quota")
    with pytest.raises(UpstreamError):
        service.answer_pet_care_question("hi")


def test_empty_answer_is_upstream_error(service):
    service.client.chat.completions.create.return_value = completion(None)
    with pytest.raises(UpstreamError):
        service.answer_pet_care_question("hi")
