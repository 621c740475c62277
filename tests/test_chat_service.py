import asyncio
from unittest.mock import patch

import pytest

from aibot.config import Settings
from aibot.exceptions import BotNotFoundError, MissingApiKeyError, MissingFieldsError, OriginNotAllowedError
from aibot.models.bot import DEFAULT_FALLBACK_MESSAGE
from aibot.models.calendar_settings import DEFAULT_BOOKING_INSTRUCTION
from aibot.schemas.chat import ChatRequest
from aibot.services.answer_engine import AnswerState
from aibot.services.chat_service import ChatPipeline, build_turn_events, schedule_turn_side_effects
from aibot.services.llm import LLMResponse
from tests.fakes import FakeBotStore, FakeCalendarStore, FakeKnowledgeStore


def make_pipeline(settings, provider, bot=None, chunks=None, calendar=None, search_error=None):
    bots = FakeBotStore(bots={"b1": bot} if bot is not None else {})
    knowledge = FakeKnowledgeStore(chunks=chunks, error=search_error)
    calendars = FakeCalendarStore({"b1": calendar} if calendar is not None else {})
    pipeline = ChatPipeline(bots, knowledge, calendars, settings, provider_factory=lambda api_key: provider)
    return pipeline, knowledge


def run(pipeline, origin=None, **fields):
    fields.setdefault("bot_id", "b1")
    return asyncio.run(pipeline.run(ChatRequest(**fields), origin=origin))


class TestGreetingPath:
    def test_greeting_skips_retrieval(self, settings, provider, make_bot):
        provider.generate.return_value = LLMResponse(content="Hi! How can I help?", model="m")
        pipeline, knowledge = make_pipeline(settings, provider, bot=make_bot())

        outcome = run(pipeline, message="hello")

        assert outcome.state == AnswerState.GREETING
        assert outcome.response == "Hi! How can I help?"
        assert outcome.chunks_used == 0
        provider.embed.assert_not_awaited()
        assert knowledge.calls == []

        body = outcome.to_response()
        assert body["is_greeting"] is True
        assert body["chunks_used"] == 0
        assert body["top_similarity"] == 0.0
        assert "is_fallback" not in body

    def test_greeting_failure_falls_through_to_retrieval(self, settings, provider, make_bot, chunk):
        provider.generate.side_effect = [RuntimeError("model down"), LLMResponse(content="From docs", model="m")]
        pipeline, knowledge = make_pipeline(settings, provider, bot=make_bot(), chunks=[chunk("Doc", 0.9)])

        outcome = run(pipeline, message="hello")

        assert outcome.state == AnswerState.GROUNDED
        assert outcome.response == "From docs"
        provider.embed.assert_awaited_once()


class TestFallbackPath:
    def test_low_similarity_returns_fallback_verbatim(self, settings, provider, make_bot, chunk):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), chunks=[chunk("Unrelated text", 0.1)])

        outcome = run(pipeline, message="What is the refund policy?")

        assert outcome.state == AnswerState.FALLBACK
        assert outcome.response == DEFAULT_FALLBACK_MESSAGE
        assert outcome.chunks_used == 0
        provider.generate.assert_not_awaited()

        body = outcome.to_response()
        assert body["is_fallback"] is True
        assert body["top_similarity"] == 0.1
        assert body["similarity_threshold"] == 0.30
        assert body["retrieval_count"] == 5
        assert body["chunk_count"] == 1
        assert body["top_chunk_preview"] == "Unrelated text..."

    def test_custom_fallback_message(self, settings, provider, make_bot):
        bot = make_bot(fallback_message="Please email us.")
        pipeline, _ = make_pipeline(settings, provider, bot=bot)

        outcome = run(pipeline, message="Anything about pricing?")

        assert outcome.response == "Please email us."

    def test_search_failure_degrades_to_fallback(self, settings, provider, make_bot):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), search_error=RuntimeError("no such function"))

        outcome = run(pipeline, message="Where are you located?")

        assert outcome.state == AnswerState.FALLBACK

    def test_bot_threshold_override(self, settings, provider, make_bot, chunk):
        bot = make_bot(similarity_threshold=0.9)
        pipeline, _ = make_pipeline(settings, provider, bot=bot, chunks=[chunk("Close but not enough", 0.8)])

        outcome = run(pipeline, message="Tell me about delivery")

        assert outcome.state == AnswerState.FALLBACK
        assert outcome.to_response()["similarity_threshold"] == 0.9


class TestGroundedPath:
    def test_answer_uses_retrieved_chunks(self, settings, provider, make_bot, chunk):
        pipeline, knowledge = make_pipeline(
            settings, provider, bot=make_bot(), chunks=[chunk("We are open 9am to 5pm.", 0.65)]
        )

        outcome = run(pipeline, message="When are you open?", session_id="s1")

        assert outcome.state == AnswerState.GROUNDED
        assert outcome.response == "Generated answer"
        assert outcome.chunks_used == 1
        messages = provider.generate.await_args.args[0]
        assert "We are open 9am to 5pm." in messages[-1]["content"]
        assert knowledge.calls[0][2] == 5

        body = outcome.to_response()
        assert body["is_fallback"] is False
        assert body["top_similarity"] == 0.65
        assert body["session_id"] == "s1"
        assert body["calendar_triggered"] is False

    def test_history_goes_between_system_and_question(self, settings, provider, make_bot, chunk):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), chunks=[chunk("Fact", 0.9)])
        history = [{"role": "user", "content": "Do you ship?"}, {"role": "assistant", "content": "Yes."}]

        run(pipeline, message="To Canada?", conversation_history=history)

        messages = provider.generate.await_args.args[0]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[1]["content"] == "Do you ship?"


class TestCalendar:
    def test_booking_instruction_appended(self, settings, provider, make_bot, chunk, calendar_settings):
        pipeline, _ = make_pipeline(
            settings, provider, bot=make_bot(), chunks=[chunk("Consultations take 30 minutes", 0.7)],
            calendar=calendar_settings,
        )

        outcome = run(pipeline, message="I'd like to BOOK an appointment")

        assert outcome.response.endswith("\n\n" + DEFAULT_BOOKING_INSTRUCTION)
        assert outcome.response.count(DEFAULT_BOOKING_INSTRUCTION) == 1
        body = outcome.to_response()
        assert body["calendar_triggered"] is True
        assert body["booking_link"] == "https://cal.example.com/book"
        assert body["triggered_keyword"] == "book"

    def test_booking_instruction_on_fallback(self, settings, provider, make_bot, calendar_settings):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), calendar=calendar_settings)

        outcome = run(pipeline, message="Can I book?")

        assert outcome.state == AnswerState.FALLBACK
        assert outcome.response == DEFAULT_FALLBACK_MESSAGE + "\n\n" + DEFAULT_BOOKING_INSTRUCTION
        assert outcome.to_response()["calendar_triggered"] is True


class TestPipelineErrors:
    def test_missing_fields(self, settings, provider):
        pipeline, _ = make_pipeline(settings, provider)
        with pytest.raises(MissingFieldsError):
            run(pipeline, message=None)

    def test_unknown_bot(self, settings, provider):
        pipeline, _ = make_pipeline(settings, provider)
        with pytest.raises(BotNotFoundError):
            run(pipeline, message="hi")

    def test_origin_rejected_before_any_provider_call(self, settings, provider, make_bot):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(allowed_domains=["example.com"]))
        with pytest.raises(OriginNotAllowedError):
            run(pipeline, message="hello", origin="https://example.com.evil.com")
        provider.generate.assert_not_awaited()
        provider.embed.assert_not_awaited()

    def test_subdomain_origin_accepted(self, settings, provider, make_bot):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(allowed_domains=["example.com"]))
        outcome = run(pipeline, message="hello", origin="https://shop.example.com")
        assert outcome.state == AnswerState.GREETING

    def test_missing_api_key(self, provider, make_bot):
        settings = Settings(openai_api_key=None, _env_file=None)
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot())
        with pytest.raises(MissingApiKeyError):
            run(pipeline, message="hello")


class TestTurnEvents:
    def test_new_session_fires_started_and_message(self, settings, provider, make_bot):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot())

        outcome = run(pipeline, message="hello", lead_id="lead-1")

        names = [name for name, _ in outcome.events]
        assert names == ["chat.started", "chat.message"]
        started = outcome.events[0][1]
        assert started == {"session_id": outcome.session_id, "first_message": "hello", "lead_id": "lead-1"}
        message = outcome.events[1][1]
        assert message["is_greeting"] is True
        assert message["is_fallback"] is False

    def test_generated_session_id(self, settings, provider, make_bot):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot())
        outcome = run(pipeline, message="hello")
        assert len(outcome.session_id) == 36

    def test_continuing_session_with_calendar(self, settings, provider, make_bot, calendar_settings):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), calendar=calendar_settings)

        outcome = run(
            pipeline,
            message="book please",
            session_id="s1",
            conversation_history=[{"role": "user", "content": "hi"}],
        )

        events = build_turn_events(outcome, new_session=False)
        assert [name for name, _ in events] == ["chat.message", "appointment.interest"]
        assert events[1][1]["triggered_keyword"] == "book"


class TestScheduleTurnSideEffects:
    def test_spawns_log_appointment_and_webhooks(self, settings, provider, make_bot, calendar_settings):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), calendar=calendar_settings)
        outcome = run(pipeline, message="book please", session_id="s1")

        with patch("aibot.services.chat_service.spawn_background") as mock_spawn:
            schedule_turn_side_effects(outcome, settings)

        names = [call.kwargs["name"] for call in mock_spawn.call_args_list]
        assert names == [
            "chat-log:s1",
            "appointment:s1",
            "webhook:chat.started:s1",
            "webhook:chat.message:s1",
            "webhook:appointment.interest:s1",
        ]
        for call in mock_spawn.call_args_list:
            call.args[0].close()

    def test_chat_turn_record(self, settings, provider, make_bot, chunk):
        pipeline, _ = make_pipeline(settings, provider, bot=make_bot(), chunks=[chunk("x", 0.1)])
        outcome = run(pipeline, message="question?", session_id="s1")

        record = outcome.to_chat_turn()

        assert record.used_fallback is True
        assert record.chunks_retrieved == 1
        assert record.top_similarity == 0.1
        assert record.bot_response == DEFAULT_FALLBACK_MESSAGE
