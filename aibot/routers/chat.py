from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from aibot.config import settings
from aibot.database import get_db
from aibot.exceptions import ChatPipelineError
from aibot.logging_config import get_logger
from aibot.repositories import BotConfigStore, CalendarSettingsStore, KnowledgeStore
from aibot.schemas.chat import ChatRequest, ErrorResponse
from aibot.services.chat_service import ChatPipeline, schedule_turn_side_effects
from aibot.services.origin_guard import extract_origin, normalize_origin

logger = get_logger("chat_router")

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def get_chat_pipeline(db: Session = Depends(get_db)) -> ChatPipeline:
    return ChatPipeline(
        bots=BotConfigStore(db),
        knowledge=KnowledgeStore(db),
        calendars=CalendarSettingsStore(db),
        settings=settings,
    )


def cors_headers(validated_origin: Optional[str] = None) -> dict:
    headers = dict(CORS_HEADERS)
    if validated_origin:
        headers["Access-Control-Allow-Origin"] = validated_origin
        headers["Vary"] = "Origin"
    return headers


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=cors_headers(),
    )


@router.options("/ai-bot-chat")
async def chat_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers())


@router.post("/ai-bot-chat")
async def chat(request: Request, pipeline: ChatPipeline = Depends(get_chat_pipeline)):
    """Answer one chat message for an embedded bot."""
    origin = extract_origin(request.headers.get("origin"), request.headers.get("referer"))

    try:
        payload = await request.json()
    except ValueError:
        return error_response("Invalid JSON body", status.HTTP_400_BAD_REQUEST)

    try:
        chat_request = ChatRequest.model_validate(payload)
    except ValidationError as e:
        return error_response(f"Invalid request: {e.errors()[0].get('msg', 'validation error')}", 400)

    try:
        outcome = await pipeline.run(chat_request, origin=origin)
    except ChatPipelineError as e:
        if e.status_code >= 500:
            logger.error(f"Error in chat: {e.message}", exc_info=True)
        return error_response(e.message, e.status_code)
    except Exception as e:
        logger.error(f"Error in chat: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    schedule_turn_side_effects(outcome, settings)

    return JSONResponse(content=outcome.to_response(), headers=cors_headers(normalize_origin(origin)))
