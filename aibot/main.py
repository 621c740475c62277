from fastapi import FastAPI

from aibot.config import settings
from aibot.logging_config import get_logger, setup_logging
from aibot.routers import appointments, chat, webhooks
from aibot.services.background import drain_background_tasks

setup_logging(settings.log_level, json_output=not settings.debug)

logger = get_logger("main")

app = FastAPI(
    title="AI Bot Chat API",
    description="Retrieval-grounded chat endpoint for embedded tenant bots",
    version="0.1.0",
)

# CORS headers are set per request by the routers (origin is pinned per bot).
app.include_router(chat.router)
app.include_router(appointments.router)
app.include_router(webhooks.router)


@app.on_event("shutdown")
async def drain_side_effects() -> None:
    await drain_background_tasks(max(settings.shutdown_grace_seconds, settings.webhook_timeout_seconds))
    logger.info("Background tasks drained")


@app.get("/health")
async def health():
    return {"status": "ok"}
