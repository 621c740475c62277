from dataclasses import dataclass
from typing import Iterable, Optional

from aibot.models.calendar_settings import DEFAULT_BOOKING_INSTRUCTION, BotCalendarSettings


@dataclass(frozen=True)
class CalendarTrigger:
    keyword: str
    booking_link: str
    instruction: str


def find_trigger_keyword(message: str, keywords: Optional[Iterable[str]]) -> Optional[str]:
    """First keyword contained in ``message``, ignoring case."""
    lowered = (message or "").lower()
    for keyword in keywords or []:
        if keyword and keyword.lower() in lowered:
            return keyword
    return None


def detect_calendar_trigger(message: str, settings: Optional[BotCalendarSettings]) -> Optional[CalendarTrigger]:
    if settings is None or not settings.enabled or not settings.booking_link:
        return None
    keyword = find_trigger_keyword(message, settings.trigger_keywords)
    if keyword is None:
        return None
    return CalendarTrigger(
        keyword=keyword,
        booking_link=settings.booking_link,
        instruction=settings.booking_instruction or DEFAULT_BOOKING_INSTRUCTION,
    )


def append_booking_instruction(response: str, trigger: Optional[CalendarTrigger]) -> str:
    if trigger is None:
        return response
    return f"{response}\n\n{trigger.instruction}"
