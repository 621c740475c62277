from typing import Any, Optional

from pydantic import BaseModel


class TrackAppointmentRequest(BaseModel):
    bot_id: Optional[str] = None
    session_id: Optional[str] = None
    lead_id: Optional[str] = None
    triggered_by_keyword: Optional[str] = None
    booking_link_clicked: bool = False
    metadata: dict[str, Any] = {}


class TrackAppointmentResponse(BaseModel):
    success: bool
    appointment_id: str
    session_id: str
