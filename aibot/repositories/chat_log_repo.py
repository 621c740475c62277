from typing import Optional

from sqlalchemy.orm import Session

from aibot.models import ChatLog
from aibot.repositories.bot_repo import parse_uuid


class ChatLogStore:
    def __init__(self, db: Session):
        self.db = db

    def add_turn(
        self,
        *,
        bot_id: str,
        session_id: str,
        user_message: str,
        bot_response: str,
        chunks_retrieved: int,
        top_similarity: float,
        used_fallback: bool,
        response_time_ms: Optional[int],
    ) -> ChatLog:
        row = ChatLog(
            bot_id=parse_uuid(bot_id),
            session_id=session_id,
            user_message=user_message,
            bot_response=bot_response,
            chunks_retrieved=chunks_retrieved,
            top_similarity=top_similarity,
            used_fallback=used_fallback,
            response_time_ms=response_time_ms,
        )
        self.db.add(row)
        self.db.commit()
        return row
