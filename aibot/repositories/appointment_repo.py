from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from aibot.models import BotAppointment
from aibot.repositories.bot_repo import parse_uuid


class AppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        *,
        bot_id: str,
        session_id: str,
        lead_id: Optional[str] = None,
        triggered_by_keyword: Optional[str] = None,
        booking_link_clicked: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ) -> BotAppointment:
        row = BotAppointment(
            bot_id=parse_uuid(bot_id),
            session_id=session_id,
            lead_id=lead_id,
            triggered_by_keyword=triggered_by_keyword,
            booking_link_clicked=booking_link_clicked,
            appointment_metadata=metadata or {},
        )
        self.db.add(row)
        self.db.commit()
        return row

    def latest_for_session(self, bot_id: str, session_id: str) -> Optional[BotAppointment]:
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None:
            return None
        return (
            self.db.query(BotAppointment)
            .filter(BotAppointment.bot_id == bot_uuid, BotAppointment.session_id == session_id)
            .order_by(BotAppointment.created_at.desc())
            .first()
        )

    def mark_clicked(self, appointment: BotAppointment, metadata: Optional[dict[str, Any]] = None) -> BotAppointment:
        appointment.booking_link_clicked = True
        appointment.appointment_metadata = {
            **(metadata or {}),
            "clicked_at": datetime.now(timezone.utc).isoformat(),
        }
        self.db.commit()
        return appointment
