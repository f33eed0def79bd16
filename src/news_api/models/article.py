"""Article Pydantic models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from feed_aggregator.models import Article


class SourceResponse(BaseModel):
    """Feed provider of an article."""

    name: str
    logo: str | None = None


class ArticleResponse(BaseModel):
    """Article response model."""

    model_config = ConfigDict(populate_by_name=True)

    source: SourceResponse
    category: str
    title: str
    description: str
    content: str | None = None
    author: str | None = None
    url: str
    url_to_image: str | None = Field(default=None, alias="urlToImage")
    published_at: datetime = Field(alias="publishedAt")

    @classmethod
    def from_article(cls, article: Article) -> "ArticleResponse":
        return cls(
            source=SourceResponse(name=article.source.name, logo=article.source.logo),
            category=article.category,
            title=article.title,
            description=article.description,
            content=article.content or None,
            author=article.author,
            url=article.url,
            url_to_image=article.image_url or None,
            published_at=article.published_at,
        )


class NewsResponse(BaseModel):
    """Merged news listing."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    total_results: int = Field(alias="totalResults")
    articles: list[ArticleResponse]
    # True when every source was served from the cache
    cached: bool = False


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
