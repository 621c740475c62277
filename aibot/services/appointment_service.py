from typing import Any, List, Tuple

from aibot.exceptions import BotNotFoundError, MissingFieldsError
from aibot.logging_config import get_logger
from aibot.repositories import AppointmentStore, BotConfigStore
from aibot.schemas.appointment import TrackAppointmentRequest
from aibot.services.webhook_service import EVENT_BOOKING_LINK_CLICKED

logger = get_logger("appointment_service")


def track_appointment(
    bots: BotConfigStore,
    appointments: AppointmentStore,
    request: TrackAppointmentRequest,
) -> Tuple[str, List[Tuple[str, dict[str, Any]]]]:
    """Record a keyword trigger or booking-link click for a chat session.

    Returns the appointment id and the webhook events to fire.
    """
    if not request.bot_id or not request.session_id:
        raise MissingFieldsError("Missing bot_id or session_id")

    if bots.get(request.bot_id) is None:
        raise BotNotFoundError(request.bot_id)

    existing = appointments.latest_for_session(request.bot_id, request.session_id)
    clicked = request.booking_link_clicked
    events: List[Tuple[str, dict[str, Any]]] = []

    if existing is not None and clicked:
        appointment = appointments.mark_clicked(existing, request.metadata)
        logger.info(f"Updated appointment click: {appointment.id}")
    elif existing is None or request.triggered_by_keyword:
        appointment = appointments.add(
            bot_id=request.bot_id,
            session_id=request.session_id,
            lead_id=request.lead_id,
            triggered_by_keyword=request.triggered_by_keyword,
            booking_link_clicked=clicked,
            metadata=request.metadata,
        )
        logger.info(f"Created new appointment: {appointment.id}")
    else:
        return str(existing.id), events

    if clicked:
        events.append(
            (
                EVENT_BOOKING_LINK_CLICKED,
                {
                    "appointment_id": str(appointment.id),
                    "session_id": request.session_id,
                    "lead_id": request.lead_id,
                },
            )
        )
    return str(appointment.id), events
