# src/modules/search/dependencies.py

from fastapi import Depends, HTTPException, Request, status
from slowapi.util import get_remote_address

from src.common.cache import SuggestionCache, build_cache
from src.common.config import settings
from src.common.database.database import async_session, engine
from src.common.rate_limit import SuggestionRateLimiter
from src.common.utils.global_messages import GlobalMessages
from src.modules.search.search_service import SearchService
from src.modules.search.text_search import matcher_for_dialect

def get_suggestion_cache(request: Request) -> SuggestionCache:
    """Shared cache created at startup; created on first use when the lifespan did not run."""
    if getattr(request.app.state, "suggestion_cache", None) is None:
        request.app.state.suggestion_cache = build_cache(settings.CACHE_URL)
    return request.app.state.suggestion_cache

def get_suggestion_rate_limiter(request: Request) -> SuggestionRateLimiter:
    if getattr(request.app.state, "suggestion_rate_limiter", None) is None:
        request.app.state.suggestion_rate_limiter = SuggestionRateLimiter()
    return request.app.state.suggestion_rate_limiter

def get_search_service(cache: SuggestionCache = Depends(get_suggestion_cache)) -> SearchService:
    matcher = matcher_for_dialect(engine.dialect.name, settings.TEXT_SEARCH_CONFIG)
    return SearchService(async_session, matcher, cache)

async def enforce_suggestion_rate_limit(
    request: Request,
    rate_limiter: SuggestionRateLimiter = Depends(get_suggestion_rate_limiter),
) -> None:
    """Reject the request with 429 once the client exceeds the suggestion limit."""
    client_id = get_remote_address(request)
    if not await rate_limiter.allow(client_id):
        retry_after = await rate_limiter.retry_after(client_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=GlobalMessages.RATE_LIMIT_EXCEEDED,
            headers={"Retry-After": str(retry_after)},
        )
