"""Signed webhook delivery to tenant-registered endpoints."""

import asyncio
import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

import httpx
from sqlalchemy.orm import Session

from aibot.config import Settings, settings as default_settings
from aibot.database import SessionLocal
from aibot.logging_config import get_logger
from aibot.models import BotWebhook
from aibot.repositories import WebhookStore

logger = get_logger("webhook_service")

EVENT_CHAT_STARTED = "chat.started"
EVENT_CHAT_MESSAGE = "chat.message"
EVENT_APPOINTMENT_INTEREST = "appointment.interest"
EVENT_BOOKING_LINK_CLICKED = "booking.link_clicked"

WEBHOOK_EVENTS = {
    EVENT_CHAT_STARTED,
    EVENT_CHAT_MESSAGE,
    EVENT_APPOINTMENT_INTEREST,
    EVENT_BOOKING_LINK_CLICKED,
}

SIGNATURE_HEADER = "X-Webhook-Signature"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_BODY_LIMIT = 1000


@dataclass
class DeliveryResult:
    webhook_id: str
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not None and 200 <= self.status < 300


@dataclass
class _Attempt:
    webhook: BotWebhook
    envelope: dict[str, Any]
    status: Optional[int] = None
    body: Optional[str] = None
    error: Optional[str] = None


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_envelope(event: str, bot_id: str, data: dict[str, Any], timestamp: Optional[str] = None) -> dict[str, Any]:
    return {
        "event": event,
        "timestamp": timestamp or utc_timestamp(),
        "bot_id": bot_id,
        "data": data,
    }


def serialize_envelope(envelope: dict[str, Any]) -> bytes:
    """Exact bytes that are posted and signed."""
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8")


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, secret: str, signature: str) -> bool:
    """Receiver-side check of an ``X-Webhook-Signature`` header.

    Subscribers validate a delivery by recomputing the HMAC over the raw
    request body with their shared secret.
    """
    if not signature:
        return False
    return hmac.compare_digest(sign_payload(body, secret), signature)


def build_headers(webhook: BotWebhook, envelope: dict[str, Any], body: bytes) -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "X-Webhook-Event": envelope["event"],
        "X-Webhook-Timestamp": envelope["timestamp"],
    }
    if webhook.secret_key:
        headers[SIGNATURE_HEADER] = sign_payload(body, webhook.secret_key)
    for name, value in (webhook.headers or {}).items():
        headers[str(name)] = str(value)
    return headers


async def _post(
    client: httpx.AsyncClient, store: WebhookStore, attempt: _Attempt, timeout: float, body_limit: int
) -> None:
    try:
        body = serialize_envelope(attempt.envelope)
        headers = build_headers(attempt.webhook, attempt.envelope, body)
        response = await asyncio.wait_for(
            client.post(attempt.webhook.url, content=body, headers=headers),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException):
        attempt.error = f"Delivery timed out after {timeout:g}s"
    except Exception as exc:
        attempt.error = str(exc) or exc.__class__.__name__
    else:
        attempt.status = response.status_code
        attempt.body = (response.text or "")[:body_limit] or None
        if not response.is_success:
            attempt.error = f"HTTP {response.status_code}"

    if attempt.status is None:
        logger.warning(
            f"Webhook {attempt.webhook.name} failed: {attempt.error}",
            extra={"context": {"webhook_id": str(attempt.webhook.id), "event": attempt.envelope["event"]}},
        )
    else:
        logger.info(
            f"Webhook {attempt.webhook.name} delivered: {attempt.status}",
            extra={"context": {"webhook_id": str(attempt.webhook.id), "event": attempt.envelope["event"]}},
        )

    _write_log(store, attempt)


def _write_log(store: WebhookStore, attempt: _Attempt) -> None:
    try:
        store.log_delivery(
            webhook_id=attempt.webhook.id,
            event_type=attempt.envelope["event"],
            payload=attempt.envelope,
            response_status=attempt.status,
            response_body=attempt.body,
            error_message=attempt.error,
        )
    except Exception as exc:
        logger.error(
            f"Failed to write webhook delivery log: {exc}",
            extra={"context": {"webhook_id": str(attempt.webhook.id)}},
        )
        try:
            store.db.rollback()
        except Exception:
            logger.exception("Rollback after webhook log failure failed")


async def deliver_event(
    store: WebhookStore,
    webhooks: Sequence[BotWebhook],
    event: str,
    data: dict[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    body_limit: int = DEFAULT_BODY_LIMIT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[DeliveryResult]:
    """POST ``event`` to every webhook concurrently.

    Each attempt writes its delivery log row as soon as it finishes.
    """
    if not webhooks:
        return []

    attempts = [_Attempt(webhook=w, envelope=build_envelope(event, str(w.bot_id), data)) for w in webhooks]

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        await asyncio.gather(*(_post(client, store, attempt, timeout, body_limit) for attempt in attempts))

    return [DeliveryResult(webhook_id=str(a.webhook.id), status=a.status, error=a.error) for a in attempts]


async def dispatch_event(
    store: WebhookStore,
    bot_id: str,
    event: str,
    data: dict[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    body_limit: int = DEFAULT_BODY_LIMIT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[DeliveryResult]:
    """Fan ``event`` out to the bot's active subscribers."""
    try:
        webhooks = store.list_active(bot_id, event)
    except Exception as exc:
        logger.error(f"Error fetching webhooks: {exc}", extra={"context": {"bot_id": bot_id, "event": event}})
        return []

    if not webhooks:
        logger.debug(f"No active webhooks for event: {event}", extra={"context": {"bot_id": bot_id}})
        return []

    logger.info(f"Triggering {len(webhooks)} webhook(s) for event: {event}", extra={"context": {"bot_id": bot_id}})
    return await deliver_event(
        store, webhooks, event, data, timeout=timeout, body_limit=body_limit, transport=transport
    )


async def fire_event(
    bot_id: str,
    event: str,
    data: dict[str, Any],
    *,
    settings: Settings = default_settings,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Detached entry point: own session, settings-driven limits."""
    db = session_factory()
    try:
        await dispatch_event(
            WebhookStore(db),
            bot_id,
            event,
            data,
            timeout=settings.webhook_timeout_seconds,
            body_limit=settings.webhook_response_body_limit,
        )
    finally:
        db.close()
