from aibot.services.llm.base import LLMProvider, LLMResponse
from aibot.services.llm.openai_provider import OpenAIProvider, build_openai_provider

__all__ = ["LLMProvider", "LLMResponse", "OpenAIProvider", "build_openai_provider"]
