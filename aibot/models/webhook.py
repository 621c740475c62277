import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.sql import func

from aibot.database import Base


class BotWebhook(Base):
    __tablename__ = "ab_bot_webhooks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bot_id = Column(UUID(as_uuid=True), ForeignKey("ab_bots.id"), nullable=False)
    name = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    events = Column(ARRAY(Text), nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    secret_key = Column(Text)
    headers = Column(JSONB)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class BotWebhookLog(Base):
    __tablename__ = "ab_bot_webhook_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    webhook_id = Column(UUID(as_uuid=True), ForeignKey("ab_bot_webhooks.id"), nullable=False)
    event_type = Column(Text, nullable=False)
    payload = Column(JSONB, nullable=False)
    response_status = Column(Integer)
    response_body = Column(Text)
    error_message = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
