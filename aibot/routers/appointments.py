from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from aibot.config import settings
from aibot.database import get_db
from aibot.exceptions import ChatPipelineError
from aibot.logging_config import get_logger
from aibot.repositories import AppointmentStore, BotConfigStore
from aibot.routers.chat import cors_headers, error_response
from aibot.schemas.appointment import TrackAppointmentRequest, TrackAppointmentResponse
from aibot.services.appointment_service import track_appointment
from aibot.services.background import spawn_background
from aibot.services.webhook_service import fire_event

logger = get_logger("appointments_router")

router = APIRouter()


@router.options("/ai-bot-track-appointment")
async def track_appointment_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers())


@router.post("/ai-bot-track-appointment")
async def track_appointment_endpoint(request: TrackAppointmentRequest, db: Session = Depends(get_db)):
    """Record appointment interest or a booking-link click."""
    try:
        appointment_id, events = track_appointment(BotConfigStore(db), AppointmentStore(db), request)
    except ChatPipelineError as e:
        return error_response(e.message, e.status_code)
    except Exception as e:
        db.rollback()
        logger.error(f"Error tracking appointment: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    for event, data in events:
        spawn_background(
            fire_event(request.bot_id, event, data, settings=settings),
            name=f"webhook:{event}:{request.session_id}",
        )

    body = TrackAppointmentResponse(success=True, appointment_id=appointment_id, session_id=request.session_id)
    return JSONResponse(content=body.model_dump(), headers=cors_headers())
