"""The chat turn pipeline.

One call to ``ChatPipeline.run`` answers one user message:

    origin check -> credential -> intent -> retrieval -> answer -> calendar

and returns a ``ChatTurnOutcome`` describing the reply plus the side effects
(chat log row, appointment record, webhook events) that the caller schedules
as detached work once the response is ready.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from aibot.config import Settings
from aibot.exceptions import BotNotFoundError, MissingFieldsError, OriginNotAllowedError
from aibot.logging_config import get_logger, turn_logger
from aibot.models import Bot
from aibot.repositories import BotConfigStore, CalendarSettingsStore, KnowledgeStore
from aibot.schemas.chat import ChatRequest, ChatResponse
from aibot.services.answer_engine import (
    AnswerState,
    build_grounded_messages,
    decide_answer_state,
    generate_greeting_reply,
    generate_grounded_reply,
)
from aibot.services.background import spawn_background
from aibot.services.calendar_service import CalendarTrigger, append_booking_instruction, detect_calendar_trigger
from aibot.services.chat_log_service import ChatTurnRecord, log_chat_turn, record_appointment_interest
from aibot.services.credential_service import resolve_api_key
from aibot.services.intent_service import is_greeting
from aibot.services.knowledge_service import RetrievalResult, retrieve_knowledge
from aibot.services.llm import LLMProvider, build_openai_provider
from aibot.services.origin_guard import is_origin_allowed
from aibot.services.webhook_service import (
    EVENT_APPOINTMENT_INTEREST,
    EVENT_CHAT_MESSAGE,
    EVENT_CHAT_STARTED,
    fire_event,
)

logger = get_logger("chat_service")

ProviderFactory = Callable[[str], LLMProvider]


@dataclass
class ChatTurnOutcome:
    state: AnswerState
    bot_id: str
    session_id: str
    lead_id: Optional[str]
    user_message: str
    response: str
    chunks_used: int
    retrieval: RetrievalResult
    similarity_threshold: float
    retrieval_count: int
    calendar: Optional[CalendarTrigger] = None
    response_time_ms: int = 0
    events: List[Tuple[str, dict[str, Any]]] = field(default_factory=list)

    @property
    def top_similarity(self) -> float:
        return self.retrieval.top_similarity

    def to_response(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "response": self.response,
            "chunks_used": self.chunks_used,
            "session_id": self.session_id,
            "top_similarity": self.top_similarity,
        }
        if self.state == AnswerState.GREETING:
            fields["is_greeting"] = True
        elif self.state == AnswerState.FALLBACK:
            fields.update(
                is_fallback=True,
                similarity_threshold=self.similarity_threshold,
                retrieval_count=self.retrieval_count,
                chunk_count=self.retrieval.chunk_count,
                top_chunk_preview=self.retrieval.top_chunk_preview,
            )
        else:
            fields.update(
                is_fallback=False,
                chunk_count=self.retrieval.chunk_count,
                top_chunk_preview=self.retrieval.top_chunk_preview,
            )

        if self.state == AnswerState.GROUNDED or self.calendar is not None:
            fields.update(
                calendar_triggered=self.calendar is not None,
                booking_link=self.calendar.booking_link if self.calendar else None,
                triggered_keyword=self.calendar.keyword if self.calendar else None,
            )
        return ChatResponse(**fields).model_dump(exclude_unset=True)

    def to_chat_turn(self) -> ChatTurnRecord:
        return ChatTurnRecord(
            bot_id=self.bot_id,
            session_id=self.session_id,
            user_message=self.user_message,
            bot_response=self.response,
            chunks_retrieved=0 if self.state == AnswerState.GREETING else self.retrieval.chunk_count,
            top_similarity=self.top_similarity,
            used_fallback=self.state == AnswerState.FALLBACK,
            response_time_ms=self.response_time_ms,
        )


class ChatPipeline:
    def __init__(
        self,
        bots: BotConfigStore,
        knowledge: KnowledgeStore,
        calendars: CalendarSettingsStore,
        settings: Settings,
        provider_factory: Optional[ProviderFactory] = None,
    ):
        self.bots = bots
        self.knowledge = knowledge
        self.calendars = calendars
        self.settings = settings
        self.provider_factory = provider_factory or (lambda api_key: build_openai_provider(api_key, settings))

    def load_bot(self, bot_id: str) -> Bot:
        bot = self.bots.get(bot_id)
        if bot is None:
            logger.warning("Bot not found", extra={"context": {"bot_id": bot_id}})
            raise BotNotFoundError(bot_id)
        return bot

    def check_origin(self, bot: Bot, origin: Optional[str]) -> None:
        if not is_origin_allowed(origin, bot.allowed_domains, self.settings.dev_origin_domains):
            logger.warning(
                f"Origin rejected: {origin}",
                extra={"context": {"bot_id": str(bot.id), "allowed_domains": list(bot.allowed_domains or [])}},
            )
            raise OriginNotAllowedError(origin)

    async def run(self, request: ChatRequest, origin: Optional[str] = None) -> ChatTurnOutcome:
        started = time.monotonic()

        if not request.bot_id or not request.message:
            raise MissingFieldsError()

        bot_id = request.bot_id
        message = request.message
        session_id = request.session_id or str(uuid.uuid4())
        history = [item.model_dump() for item in request.conversation_history]
        log = turn_logger(logger, bot_id, session_id)
        log.info(f"Chat request: {message[:50]}")

        bot = self.load_bot(bot_id)
        self.check_origin(bot, origin)
        log = log.bind(model=bot.effective_model)
        provider = self.provider_factory(resolve_api_key(self.bots, bot_id, self.settings))

        threshold = bot.effective_threshold
        retrieval_count = bot.effective_retrieval_count

        state: Optional[AnswerState] = None
        response = ""
        retrieval = RetrievalResult()

        if is_greeting(message):
            try:
                response = await generate_greeting_reply(provider, bot, message)
                state = AnswerState.GREETING
                log.info("Greeting detected, answered without retrieval")
            except Exception as e:
                log.warning(f"Greeting response failed, continuing with retrieval: {e}")

        chunks_used = 0
        if state is None:
            retrieval = await retrieve_knowledge(message, bot_id, retrieval_count, provider, self.knowledge)
            state = decide_answer_state(retrieval, threshold)
            log.info(
                f"Threshold check: {'PASSED' if state == AnswerState.GROUNDED else 'FAILED'} "
                f"({retrieval.top_similarity:.3f} vs {threshold})",
                context={"chunk_count": retrieval.chunk_count, "retrieval_count": retrieval_count},
            )
            if state == AnswerState.FALLBACK:
                response = bot.effective_fallback_message
            else:
                messages = build_grounded_messages(bot, retrieval, message, history)
                response = await generate_grounded_reply(provider, bot, messages)
                chunks_used = retrieval.chunk_count

        calendar = detect_calendar_trigger(message, self.calendars.get(bot_id))
        if calendar is not None:
            log.info(f"Calendar triggered by keyword: {calendar.keyword}")
        response = append_booking_instruction(response, calendar)

        outcome = ChatTurnOutcome(
            state=state,
            bot_id=bot_id,
            session_id=session_id,
            lead_id=request.lead_id,
            user_message=message,
            response=response,
            chunks_used=chunks_used,
            retrieval=retrieval,
            similarity_threshold=threshold,
            retrieval_count=retrieval_count,
            calendar=calendar,
            response_time_ms=int((time.monotonic() - started) * 1000),
        )
        outcome.events = build_turn_events(outcome, new_session=not history)
        return outcome


def build_turn_events(outcome: ChatTurnOutcome, new_session: bool) -> List[Tuple[str, dict[str, Any]]]:
    events: List[Tuple[str, dict[str, Any]]] = []
    if new_session:
        events.append(
            (
                EVENT_CHAT_STARTED,
                {
                    "session_id": outcome.session_id,
                    "first_message": outcome.user_message,
                    "lead_id": outcome.lead_id,
                },
            )
        )
    events.append(
        (
            EVENT_CHAT_MESSAGE,
            {
                "session_id": outcome.session_id,
                "user_message": outcome.user_message,
                "bot_response": outcome.response,
                "is_fallback": outcome.state == AnswerState.FALLBACK,
                "is_greeting": outcome.state == AnswerState.GREETING,
                "lead_id": outcome.lead_id,
                "calendar_triggered": outcome.calendar is not None,
            },
        )
    )
    if outcome.calendar is not None:
        events.append(
            (
                EVENT_APPOINTMENT_INTEREST,
                {
                    "session_id": outcome.session_id,
                    "lead_id": outcome.lead_id,
                    "triggered_keyword": outcome.calendar.keyword,
                    "booking_link": outcome.calendar.booking_link,
                },
            )
        )
    return events


def schedule_turn_side_effects(outcome: ChatTurnOutcome, settings: Settings) -> None:
    """Start logging and webhook delivery for a finished turn without awaiting them."""
    spawn_background(log_chat_turn(outcome.to_chat_turn()), name=f"chat-log:{outcome.session_id}")

    if outcome.calendar is not None:
        spawn_background(
            record_appointment_interest(
                bot_id=outcome.bot_id,
                session_id=outcome.session_id,
                lead_id=outcome.lead_id,
                keyword=outcome.calendar.keyword,
            ),
            name=f"appointment:{outcome.session_id}",
        )

    for event, data in outcome.events:
        spawn_background(
            fire_event(outcome.bot_id, event, data, settings=settings),
            name=f"webhook:{event}:{outcome.session_id}",
        )
