"""Detached persistence for chat turns and appointment interest."""

from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from aibot.database import SessionLocal
from aibot.logging_config import get_logger
from aibot.repositories import AppointmentStore, ChatLogStore

logger = get_logger("chat_log_service")

SessionFactory = Callable[[], Session]


@dataclass
class ChatTurnRecord:
    bot_id: str
    session_id: str
    user_message: str
    bot_response: str
    chunks_retrieved: int
    top_similarity: float
    used_fallback: bool
    response_time_ms: Optional[int] = None


async def log_chat_turn(record: ChatTurnRecord, session_factory: SessionFactory = SessionLocal) -> None:
    db = session_factory()
    try:
        ChatLogStore(db).add_turn(
            bot_id=record.bot_id,
            session_id=record.session_id,
            user_message=record.user_message,
            bot_response=record.bot_response,
            chunks_retrieved=record.chunks_retrieved,
            top_similarity=record.top_similarity,
            used_fallback=record.used_fallback,
            response_time_ms=record.response_time_ms,
        )
    except Exception as e:
        db.rollback()
        logger.error(
            f"Error logging chat turn: {e}",
            extra={"context": {"bot_id": record.bot_id, "session_id": record.session_id}},
        )
    finally:
        db.close()


async def record_appointment_interest(
    *,
    bot_id: str,
    session_id: str,
    lead_id: Optional[str],
    keyword: str,
    session_factory: SessionFactory = SessionLocal,
) -> None:
    db = session_factory()
    try:
        AppointmentStore(db).add(
            bot_id=bot_id,
            session_id=session_id,
            lead_id=lead_id,
            triggered_by_keyword=keyword,
            booking_link_clicked=False,
        )
        logger.info("Appointment trigger tracked", extra={"context": {"bot_id": bot_id, "keyword": keyword}})
    except Exception as e:
        db.rollback()
        logger.error(
            f"Error tracking appointment: {e}",
            extra={"context": {"bot_id": bot_id, "session_id": session_id}},
        )
    finally:
        db.close()

