from typing import Any, List, Optional

from sqlalchemy.orm import Session

from aibot.models import BotWebhook, BotWebhookLog
from aibot.repositories.bot_repo import parse_uuid


class WebhookStore:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self, bot_id: str, event: str) -> List[BotWebhook]:
        """Active webhooks of the bot subscribed to ``event``."""
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None:
            return []
        return (
            self.db.query(BotWebhook)
            .filter(
                BotWebhook.bot_id == bot_uuid,
                BotWebhook.is_active.is_(True),
                BotWebhook.events.contains([event]),
            )
            .all()
        )

    def get(self, webhook_id: str, event: str) -> Optional[BotWebhook]:
        webhook_uuid = parse_uuid(webhook_id)
        if webhook_uuid is None:
            return None
        return (
            self.db.query(BotWebhook)
            .filter(
                BotWebhook.id == webhook_uuid,
                BotWebhook.is_active.is_(True),
                BotWebhook.events.contains([event]),
            )
            .first()
        )

    def log_delivery(
        self,
        *,
        webhook_id,
        event_type: str,
        payload: dict[str, Any],
        response_status: Optional[int],
        response_body: Optional[str],
        error_message: Optional[str],
    ) -> BotWebhookLog:
        row = BotWebhookLog(
            webhook_id=webhook_id,
            event_type=event_type,
            payload=payload,
            response_status=response_status,
            response_body=response_body,
            error_message=error_message,
        )
        self.db.add(row)
        self.db.commit()
        return row
