"""Origin allow-list checks for embedded chat widgets."""

from typing import Iterable, Optional
from urllib.parse import urlparse

from aibot.logging_config import get_logger

logger = get_logger("origin_guard")


def extract_origin(origin_header: Optional[str], referer_header: Optional[str]) -> Optional[str]:
    return origin_header or referer_header or None


def origin_hostname(origin: Optional[str]) -> Optional[str]:
    if not origin:
        return None
    try:
        return urlparse(origin.strip()).hostname
    except ValueError:
        return None


def normalize_origin(origin: Optional[str]) -> Optional[str]:
    """Reduce an Origin or Referer value to ``scheme://host[:port]``."""
    if not origin:
        return None
    try:
        parsed = urlparse(origin.strip())
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def _matches_domain(host: str, domain: str) -> bool:
    domain = (domain or "").strip().lower().rstrip(".")
    if not domain:
        return False
    return host == domain or host.endswith(f".{domain}")


def is_origin_allowed(
    origin: Optional[str],
    allowed_domains: Optional[Iterable[str]],
    dev_domains: Iterable[str] = (),
) -> bool:
    """Check a request origin against a bot's allowed domains.

    An empty allow-list accepts every origin. Development and preview hosts in
    ``dev_domains`` are accepted for every bot.
    """
    allowed = [d for d in (allowed_domains or []) if d]
    if not allowed:
        return True

    host = origin_hostname(origin)
    if not host:
        return False
    host = host.lower()

    if any(_matches_domain(host, domain) for domain in dev_domains):
        logger.info(f"Development origin allowed: {host}")
        return True

    return any(_matches_domain(host, domain) for domain in allowed)
