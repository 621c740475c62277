import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.sql import func

from aibot.database import Base


class BotAppointment(Base):
    __tablename__ = "ab_bot_appointments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bot_id = Column(UUID(as_uuid=True), ForeignKey("ab_bots.id"), nullable=False)
    session_id = Column(Text, nullable=False)
    lead_id = Column(Text)
    triggered_by_keyword = Column(Text)
    booking_link_clicked = Column(Boolean, nullable=False, default=False)
    appointment_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
