"""
Thread-safe rate-limited logging.

Collaborator outages (agent API down, RPC flapping) produce the same warning
for every action of every run; this keeps one line per message per interval.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

_MAX_KEYS = 100

# One cache per distinct interval, created lazily
_caches = {}
_cache_lock = threading.RLock()


def _cache_for(interval: int) -> TTLCache:
    cache = _caches.get(interval)
    if cache is None:
        cache = TTLCache(maxsize=_MAX_KEYS, ttl=interval)
        _caches[interval] = cache
    return cache


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message at most once per ``interval`` seconds.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical messages in seconds
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    key = f"{level}:{message}"

    with _cache_lock:
        cache = _cache_for(interval)
        if key in cache:
            return False
        log_method(message)
        cache[key] = True
    return True


def reset() -> None:
    """Forget every suppressed message."""
    with _cache_lock:
        _caches.clear()
