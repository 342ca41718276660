import logging

from core.errors import BadRequestError, ExternalServiceError
from core.settings import settings
from fintechs.text_generation import GroqTextClient
from services.reservation_service import GATEWAY_ERRORS

logger = logging.getLogger(__name__)

FAQ_ROLES = ("user", "assistant")
MAX_FAQ_TURNS = 20


def company_prompt() -> dict:
    return {
        "role": "system",
        "content": (
            f"You are a helpful real estate assistant for {settings.COMPANY_NAME}, "
            "a property platform in Nigeria.\n\n"
            "WHAT WE OFFER:\n"
            "- Rental homes with quick access\n"
            "- Property buying and reselling at fair prices\n"
            "- Verified listings with real photos and transparent pricing, "
            "no hidden fees\n"
            "- A paid reservation that holds a property for you for 7 days while "
            "you talk to an assigned agent\n\n"
            "YOUR ROLE:\n"
            "- Help users find properties and answer questions about buying, "
            "renting, reserving and listing\n"
            "- Be friendly, professional and concise (2-3 sentences unless asked "
            "for details)\n"
            "- Use Nigerian context (Naira ₦, local terminology)\n"
            "- If asked about specific listings, point users to search or the "
            "homepage\n"
            "- Never make up property listings or prices"
        ),
    }


class FaqChatService:
    """General platform questions answered by the text generation service."""

    def __init__(self, text_generator=None):
        self.text_generator = text_generator or GroqTextClient()

    @staticmethod
    def _clean(messages) -> list[dict]:
        if not isinstance(messages, list) or not messages:
            raise BadRequestError("Invalid messages format")

        cleaned = []
        for msg in messages:
            if not isinstance(msg, dict):
                raise BadRequestError("Invalid messages format")
            role = msg.get("role")
            content = msg.get("content")
            if role not in FAQ_ROLES or not isinstance(content, str) or not content.strip():
                raise BadRequestError("Invalid messages format")
            cleaned.append({"role": role, "content": content.strip()})

        if cleaned[-1]["role"] != "user":
            raise BadRequestError("The last message must come from the user")
        return cleaned[-MAX_FAQ_TURNS:]

    async def send_message(self, messages) -> dict:
        conversation = self._clean(messages)

        try:
            result = await self.text_generator.complete([company_prompt(), *conversation])
        except GATEWAY_ERRORS as e:
            logger.error(f"FAQ chat failed: {e}")
            raise ExternalServiceError("Failed to process chat request")

        text = (result or {}).get("text")
        if not text:
            raise ExternalServiceError("Failed to process chat request")
        return {"message": text, "role": "assistant"}
