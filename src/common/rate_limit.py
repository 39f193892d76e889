# src/common/rate_limit.py

import logging
import time

from limits import parse
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.common.config import settings

logger = logging.getLogger(__name__)

def sync_storage_uri(uri: str) -> str:
    """slowapi counts with the synchronous limits storages: drop the ``async+`` scheme prefix."""
    return uri[len("async+"):] if uri.startswith("async+") else uri

# App-wide default limit, enforced by SlowAPIMiddleware. Shares the suggestion
# limiter's storage so it holds across workers too.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.DEFAULT_RATE_LIMIT],
    storage_uri=sync_storage_uri(settings.RATE_LIMIT_STORAGE_URI),
)


class SuggestionRateLimiter:
    """
    Per-client fixed-window counter for the autocomplete endpoint.

    The first hit from a client opens a window (60 seconds for "30/minute");
    hits inside the window increment the counter and are allowed until the
    ceiling is reached. Once the window expires the counter starts again at 1.

    Storage is selected by URI: ``async+memory://`` keeps state in this process,
    ``async+redis://host:6379`` shares it between workers. Both expire stale
    client records natively.
    """

    def __init__(self, limit: str = None, storage_uri: str = None):
        self.item = parse(limit or settings.SUGGESTION_RATE_LIMIT)
        self.storage = storage_from_string(storage_uri or settings.RATE_LIMIT_STORAGE_URI)
        self.strategy = FixedWindowRateLimiter(self.storage)

    async def allow(self, client_id: str) -> bool:
        """Record a hit for ``client_id`` and report whether it is within the limit."""
        try:
            allowed = await self.strategy.hit(self.item, "suggestions", client_id)
        except Exception as e:
            # Storage outages must not take autocomplete down with them
            logger.warning("Rate limit storage unavailable, allowing request: %s", e)
            return True
        if not allowed:
            logger.info("Suggestion rate limit exceeded for client %s", client_id)
        return allowed

    async def retry_after(self, client_id: str) -> int:
        """Seconds until the client's current window resets."""
        try:
            stats = await self.strategy.get_window_stats(self.item, "suggestions", client_id)
        except Exception as e:
            logger.warning("Rate limit storage unavailable: %s", e)
            return self.item.get_expiry()
        return max(0, int(stats.reset_time - time.time()))

    async def reset(self) -> None:
        await self.storage.reset()
