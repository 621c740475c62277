import re
from enum import Enum


class Intent(str, Enum):
    GREETING = "greeting"
    THANKS = "thanks"
    FAREWELL = "farewell"
    SMALL_TALK = "small_talk"  # "how are you" and friends
    OTHER = "other"  # anything that needs the knowledge base


CONVERSATIONAL_INTENTS = {Intent.GREETING, Intent.THANKS, Intent.FAREWELL, Intent.SMALL_TALK}

_TAIL = r"[\s!?.]*$"

# Ordered; the first matching pattern decides the intent.
INTENT_PATTERNS = (
    (re.compile(r"^(hi|hello|hey|hiya|howdy|greetings|good\s*(morning|afternoon|evening|day))" + _TAIL, re.I), Intent.GREETING),
    (re.compile(r"^(what'?s\s*up|sup|yo)" + _TAIL, re.I), Intent.GREETING),
    (re.compile(r"^(thanks|thank\s*you|ty|thx)" + _TAIL, re.I), Intent.THANKS),
    (re.compile(r"^(bye|goodbye|see\s*you|later|cya)" + _TAIL, re.I), Intent.FAREWELL),
    (re.compile(r"^(how\s*are\s*you|how'?s\s*it\s*going|how\s*do\s*you\s*do)" + _TAIL, re.I), Intent.SMALL_TALK),
)


def classify_intent(message: str) -> Intent:
    trimmed = (message or "").strip()
    if not trimmed:
        return Intent.OTHER
    for pattern, intent in INTENT_PATTERNS:
        if pattern.match(trimmed):
            return intent
    return Intent.OTHER


def is_greeting(message: str) -> bool:
    """True for social filler that should be answered without retrieval."""
    return classify_intent(message) in CONVERSATIONAL_INTENTS
