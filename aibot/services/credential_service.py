import base64
import binascii
from typing import Optional

from aibot.config import Settings
from aibot.exceptions import MissingApiKeyError
from aibot.logging_config import get_logger
from aibot.repositories import BotConfigStore

logger = get_logger("credential_service")


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


def encrypt_api_key(plain: str, key: str) -> str:
    return base64.b64encode(_xor(plain.encode("latin-1"), key.encode("utf-8"))).decode("ascii")


def decrypt_api_key(encrypted: Optional[str], key: str) -> Optional[str]:
    """Reverse ``encrypt_api_key``. Malformed input yields None."""
    if not encrypted or not key:
        return None
    try:
        # Stored values may be line-wrapped.
        decoded = base64.b64decode("".join(encrypted.split()), validate=True)
    except (binascii.Error, ValueError):
        return None
    return _xor(decoded, key.encode("utf-8")).decode("latin-1") or None


def resolve_api_key(store: BotConfigStore, bot_id: str, settings: Settings) -> str:
    """Per-bot key when one decrypts, else the global key."""
    encrypted = store.get_credential(bot_id)
    if encrypted:
        decrypted = decrypt_api_key(encrypted, settings.encryption_key)
        if decrypted:
            logger.info("Using per-bot OpenAI API key", extra={"context": {"bot_id": bot_id}})
            return decrypted
        logger.warning(
            "Per-bot API key could not be decrypted, using global key",
            extra={"context": {"bot_id": bot_id}},
        )

    if not settings.openai_api_key:
        raise MissingApiKeyError()
    return settings.openai_api_key
