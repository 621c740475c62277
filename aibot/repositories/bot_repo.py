from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from aibot.models import Bot, BotApiKey, BotCalendarSettings


def parse_uuid(value) -> Optional[UUID]:
    """Return a UUID for ``value`` or None when it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class BotConfigStore:
    """Read-only access to bot configuration and per-bot credentials."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, bot_id: str) -> Optional[Bot]:
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None:
            return None
        return self.db.query(Bot).filter(Bot.id == bot_uuid).first()

    def get_credential(self, bot_id: str) -> Optional[str]:
        """Encrypted OpenAI key stored for the bot, if any."""
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None:
            return None
        row = self.db.query(BotApiKey).filter(BotApiKey.bot_id == bot_uuid).first()
        return row.openai_key_encrypted if row else None


class CalendarSettingsStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, bot_id: str) -> Optional[BotCalendarSettings]:
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None:
            return None
        return self.db.query(BotCalendarSettings).filter(BotCalendarSettings.bot_id == bot_uuid).first()
