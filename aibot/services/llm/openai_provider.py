from typing import List, Optional

import httpx

from aibot.config import Settings
from aibot.exceptions import ProviderError
from aibot.logging_config import get_logger
from aibot.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions and embeddings over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        embedding_model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.embedding_model = embedding_model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}")

        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )

        if not response.is_success:
            logger.error(f"OpenAI chat error: {response.status_code} - {response.text[:500]}")
            raise ProviderError("OpenAI", response.status_code, response.text)

        data = response.json()
        content = ""
        choices = data.get("choices") or []
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(content=content, model=data.get("model", model), usage=data.get("usage"))

    async def embed(self, text: str) -> List[float]:
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/embeddings",
                headers=self._headers(),
                json={"model": self.embedding_model, "input": text},
            )

        if not response.is_success:
            logger.error(f"OpenAI embeddings error: {response.status_code} - {response.text[:500]}")
            raise ProviderError("OpenAI", response.status_code, response.text)

        data = response.json()
        return data["data"][0]["embedding"]


def build_openai_provider(api_key: str, settings: Settings) -> OpenAIProvider:
    return OpenAIProvider(
        api_key=api_key,
        embedding_model=settings.embedding_model,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )
