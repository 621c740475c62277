import uuid
from unittest.mock import AsyncMock, Mock

import pytest

from aibot.config import Settings
from aibot.models import Bot, BotCalendarSettings, BotWebhook
from aibot.repositories import ScoredChunk
from aibot.services.llm import LLMProvider, LLMResponse


@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-global", _env_file=None)


@pytest.fixture
def make_bot():
    def _make_bot(**overrides):
        fields = {"id": uuid.uuid4(), "allowed_domains": []}
        fields.update(overrides)
        return Bot(**fields)

    return _make_bot


@pytest.fixture
def make_webhook():
    def _make_webhook(**overrides):
        fields = {
            "id": uuid.uuid4(),
            "bot_id": uuid.uuid4(),
            "name": "crm",
            "url": "https://hooks.example.com/1",
            "events": ["chat.message"],
            "is_active": True,
            "secret_key": None,
            "headers": None,
        }
        fields.update(overrides)
        return BotWebhook(**fields)

    return _make_webhook


@pytest.fixture
def calendar_settings():
    return BotCalendarSettings(
        enabled=True,
        booking_link="https://cal.example.com/book",
        booking_instruction=None,
        trigger_keywords=["book", "appointment"],
    )


@pytest.fixture
def provider():
    """LLM provider double; embed and generate are AsyncMocks."""
    mock = Mock(spec=LLMProvider)
    mock.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    mock.generate = AsyncMock(return_value=LLMResponse(content="Generated answer", model="gpt-4o-mini"))
    return mock


@pytest.fixture
def chunk():
    def _chunk(text, similarity):
        return ScoredChunk(chunk_text=text, similarity=similarity)

    return _chunk
