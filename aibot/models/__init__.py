from aibot.models.appointment import BotAppointment
from aibot.models.bot import Bot
from aibot.models.bot_api_key import BotApiKey
from aibot.models.calendar_settings import BotCalendarSettings
from aibot.models.chat_log import ChatLog
from aibot.models.webhook import BotWebhook, BotWebhookLog

__all__ = [
    "Bot",
    "BotApiKey",
    "BotCalendarSettings",
    "BotWebhook",
    "BotWebhookLog",
    "ChatLog",
    "BotAppointment",
]
