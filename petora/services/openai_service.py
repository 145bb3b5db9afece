# petora/services/openai_service.py
import logging
from typing import Dict

from flask import Flask
from openai import OpenAI, OpenAIError

from petora.core.errors import UpstreamError

PET_CARE_SYSTEM_PROMPT = """You are a specialized AI chatbot focused exclusively on providing helpful advice about pet care. Your role is to answer questions related to animal health, nutrition, behavior, grooming, and general well-being for common household pets like dogs, cats, birds, and rabbits.

Strictly adhere to the following rules:
1. Only answer questions that are directly related to pet care.
2. If a user asks a question that is NOT about pet care (e.g., about math, history, coding, or any other off-topic subject), you MUST politely decline to answer.
3. When declining, state that your purpose is limited to pet care questions. Do not attempt to answer the off-topic question."""


class OpenAIService:
    """
    Generative AI gateway used by the pet-care chatbot.
    One question in, one answer out; no conversation memory is kept.
    """

    def __init__(self):
        self.client = None
        self.model = "gpt-4o-mini"

    def init_app(self, app: Flask):
        api_key = app.config.get('OPENAI_API_KEY')
        if not api_key:
            raise ValueError("OPENAI_API_KEY must be set in .env.")

        self.client = OpenAI(api_key=api_key)
        self.model = app.config.get('OPENAI_CHAT_MODEL', self.model)
        logging.info("OpenAIService: OpenAI client initialised.")

    def answer_pet_care_question(self, question: str) -> Dict[str, str]:
        """
        :param question: free-text question from the user
        :return: ``{"answer": str}``
        """
        if not self.client:
            raise RuntimeError("OpenAIService is not initialised. Call init_app first.")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": PET_CARE_SYSTEM_PROMPT},
                    {"role": "user", "content": question},
                ],
                max_tokens=600,
            )
        except OpenAIError as e:
            logging.error(f"Pet-care chatbot request failed: {e}", exc_info=True)
            raise UpstreamError("The pet-care assistant is unavailable right now.") from e

        answer = (response.choices[0].message.content or "").strip()
        if not answer:
            logging.error("Pet-care chatbot returned an empty answer.")
            raise UpstreamError("The pet-care assistant is unavailable right now.")
        return {"answer": answer}
