"""News API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from feed_aggregator.service import NewsService
from news_api.models.article import ArticleResponse, ErrorResponse, NewsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/news", tags=["news"])

FAILURE_MESSAGE = "Failed to fetch news"


def get_news_service(request: Request) -> NewsService:
    """Dependency to get the app-wide news service (it owns the cache)."""
    return request.app.state.news_service


@router.get(
    "",
    response_model=NewsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_news(
    service: Annotated[NewsService, Depends(get_news_service)],
    category: Annotated[
        str | None,
        Query(description="Comma-separated categories; 'general' or absent for all"),
    ] = None,
):
    """List aggregated articles, newest first.

    Stale sources are re-fetched before answering; fresh ones come from the
    in-memory cache.
    """
    try:
        result = await service.get_news(category)
        return NewsResponse(
            total_results=result.total_results,
            articles=[ArticleResponse.from_article(a) for a in result.articles],
            cached=result.cached,
        )
    except Exception:
        logger.exception("Failed to build news listing (category=%s)", category)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(message=FAILURE_MESSAGE).model_dump(),
        )
