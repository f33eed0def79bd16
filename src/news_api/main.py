"""FastAPI application and launcher for the news API."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feed_aggregator.config import Config, get_config
from feed_aggregator.service import NewsService
from news_api.routers import news

logger = logging.getLogger(__name__)


def create_app(config: Config | None = None, service: NewsService | None = None) -> FastAPI:
    """Build the API app. The NewsService (and its cache) lives for the app's lifetime."""
    config = config or get_config()

    app = FastAPI(title="News API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.state.news_service = service or NewsService(config)
    app.include_router(news.router)
    return app


def main() -> None:
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger.info(
        "Serving %d sources on http://%s:%d/news",
        len(config.sources), config.server.host, config.server.port,
    )
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
