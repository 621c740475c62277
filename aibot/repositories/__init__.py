from aibot.repositories.appointment_repo import AppointmentStore
from aibot.repositories.bot_repo import BotConfigStore, CalendarSettingsStore, parse_uuid
from aibot.repositories.chat_log_repo import ChatLogStore
from aibot.repositories.knowledge_repo import KnowledgeStore, ScoredChunk
from aibot.repositories.webhook_repo import WebhookStore

__all__ = [
    "AppointmentStore",
    "BotConfigStore",
    "CalendarSettingsStore",
    "ChatLogStore",
    "KnowledgeStore",
    "ScoredChunk",
    "WebhookStore",
    "parse_uuid",
]
