import logging

import httpx

from core.breaker import text_generation_breaker
from core.settings import settings

logger = logging.getLogger(__name__)


class GroqTextClient:
    """OpenAI-compatible chat completion endpoint used for assistant replies."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = 30,
    ):
        self.base_url = (base_url or settings.GROQ_BASE_URL).rstrip("/")
        self.model = model or settings.GROQ_MODEL
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {api_key or settings.GROQ_API_KEY}",
            "Content-Type": "application/json",
        }

    async def complete(self, messages: list[dict]) -> dict:
        return await text_generation_breaker.call(self._complete, messages)

    async def _complete(self, messages: list[dict]) -> dict:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.4,
            "max_tokens": 400,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            res = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self.headers,
                json=payload,
            )

        res.raise_for_status()
        data = res.json()

        choices = data.get("choices") or []
        if not choices:
            raise RuntimeError("Text generation returned no choices")

        text = (choices[0].get("message") or {}).get("content") or ""
        return {"text": text.strip()}
