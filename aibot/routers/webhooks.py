from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from aibot.config import settings
from aibot.database import get_db
from aibot.logging_config import get_logger
from aibot.repositories import WebhookStore
from aibot.routers.chat import cors_headers, error_response
from aibot.schemas.webhook import DeliveryOutcome, TriggerWebhookRequest, TriggerWebhookResponse
from aibot.services.webhook_service import WEBHOOK_EVENTS, deliver_event

logger = get_logger("webhooks_router")

router = APIRouter()


@router.post("/ai-bot-webhook-trigger")
async def trigger_webhooks(request: TriggerWebhookRequest, db: Session = Depends(get_db)):
    """Deliver an event now, to one webhook or to all of a bot's webhooks."""
    if not request.event_type or request.payload is None:
        return error_response("Missing event_type or payload", status.HTTP_400_BAD_REQUEST)
    if request.event_type not in WEBHOOK_EVENTS:
        return error_response(f"Unknown event_type: {request.event_type}", status.HTTP_400_BAD_REQUEST)
    if not request.webhook_id and not request.bot_id:
        return error_response("Missing webhook_id or bot_id", status.HTTP_400_BAD_REQUEST)

    store = WebhookStore(db)
    try:
        if request.webhook_id:
            webhook = store.get(request.webhook_id, request.event_type)
            webhooks = [webhook] if webhook is not None else []
        else:
            webhooks = store.list_active(request.bot_id, request.event_type)
    except Exception as e:
        logger.error(f"Error fetching webhooks: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not webhooks:
        logger.info("No active webhooks found for this event", extra={"context": {"event": request.event_type}})
        body = TriggerWebhookResponse(success=True, triggered=0)
        return JSONResponse(content=body.model_dump(exclude_defaults=True), headers=cors_headers())

    results = await deliver_event(
        store,
        webhooks,
        request.event_type,
        request.payload,
        timeout=settings.webhook_timeout_seconds,
        body_limit=settings.webhook_response_body_limit,
    )

    body = TriggerWebhookResponse(
        success=True,
        triggered=len(webhooks),
        successful=sum(1 for r in results if r.ok),
        results=[DeliveryOutcome(webhook_id=r.webhook_id, status=r.status, error=r.error) for r in results],
    )
    return JSONResponse(content=body.model_dump(), headers=cors_headers())
