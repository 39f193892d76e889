# src/modules/search/search_controller.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.common.utils.global_messages import GlobalMessages
from src.modules.search import schemas
from src.modules.search.dependencies import enforce_suggestion_rate_limit, get_search_service
from src.modules.search.search_service import SearchService, SearchValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

@router.get("", response_model=schemas.SearchResponse)
async def search(
    q: Optional[str] = Query(None, description="Free-text search query (2-100 characters)"),
    type: str = Query("all", description="all, courses, lessons, articles, resources or teachers"),
    limit: Optional[str] = Query(None, description="Maximum results per entity type (capped at 50)"),
    category: Optional[str] = None,
    level: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags; matches any"),
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    service: SearchService = Depends(get_search_service),
):
    """
    Global search endpoint.

    Searches published courses, public lessons, published articles, resources and
    teachers. At least one of q, category, level, tags or teacherId is required.
    Without q, filtered listings are returned newest first.
    """
    params = schemas.SearchParams(
        q=q,
        type=type,
        limit=limit,
        category=category or None,
        level=level or None,
        tags=[tag.strip() for tag in tags.split(",") if tag.strip()] if tags else [],
        teacher_id=teacher_id,
    )
    try:
        return await service.search(params)
    except SearchValidationError as ve:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(ve))
    except Exception:
        logger.exception("Search failed for query %r", q)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=GlobalMessages.SEARCH_FAILED
        )

@router.get(
    "/suggestions",
    response_model=schemas.SuggestionsResponse,
    dependencies=[Depends(enforce_suggestion_rate_limit)],
)
async def get_suggestions(
    q: Optional[str] = Query(None, description="Text typed so far"),
    limit: Optional[str] = Query(None, description="Suggestions per entity type (default 5, max 10)"),
    service: SearchService = Depends(get_search_service),
):
    """Autocomplete titles of courses, lessons and articles, and teacher names."""
    if not q:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=GlobalMessages.SEARCH_QUERY_REQUIRED
        )
    try:
        return await service.suggest(q, limit)
    except SearchValidationError as ve:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(ve))
    except Exception:
        logger.exception("Suggestions failed for query %r", q)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=GlobalMessages.SUGGESTIONS_FAILED
        )

@router.get("/filters", response_model=schemas.FiltersResponse)
async def get_filters(service: SearchService = Depends(get_search_service)):
    """Categories, levels and tags currently used by published content."""
    try:
        return await service.get_filters()
    except Exception:
        logger.exception("Failed to load search filters")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=GlobalMessages.FILTERS_FAILED
        )
