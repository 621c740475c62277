import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import ARRAY, UUID

from aibot.database import Base

DEFAULT_BOOKING_INSTRUCTION = (
    "Would you like to schedule an appointment? "
    "Click the link below to book a time that works for you."
)


class BotCalendarSettings(Base):
    __tablename__ = "ab_bot_calendar_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bot_id = Column(UUID(as_uuid=True), ForeignKey("ab_bots.id"), nullable=False, unique=True)
    enabled = Column(Boolean, nullable=False, default=False)
    booking_link = Column(Text)
    booking_instruction = Column(Text)
    trigger_keywords = Column(ARRAY(Text), nullable=False, default=list)
