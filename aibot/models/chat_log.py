import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.sql import func

from aibot.database import Base


class ChatLog(Base):
    __tablename__ = "ab_chat_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bot_id = Column(UUID(as_uuid=True), ForeignKey("ab_bots.id"), nullable=False)
    session_id = Column(Text, nullable=False)
    user_message = Column(Text, nullable=False)
    bot_response = Column(Text, nullable=False)
    chunks_retrieved = Column(Integer, nullable=False, default=0)
    top_similarity = Column(Numeric(6, 5))
    used_fallback = Column(Boolean, nullable=False, default=False)
    response_time_ms = Column(Integer)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
