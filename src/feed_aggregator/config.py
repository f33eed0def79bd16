"""Configuration loader for the feed aggregator."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from feed_aggregator.models import SourceDescriptor

CONFIG_DIR = Path(__file__).parent / "configs"


@dataclass
class FeedConfig:
    max_items: int = 20
    max_retries: int = 3
    timeout: float = 20.0
    user_agent: str = "feed-aggregator/1.0 (RSS reader)"


@dataclass
class ImageConfig:
    scrape: bool = True
    scrape_timeout: float = 6.0  # seconds, kept within 4-12
    placeholder: str = ""


@dataclass
class CacheConfig:
    ttl_seconds: float = 600.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class Config:
    feed: FeedConfig = field(default_factory=FeedConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    max_concurrency: int = 0  # 0 = unbounded fan-out
    request_deadline: float | None = 30.0
    fallback_category: str = "समाचार"
    log_level: str = "INFO"
    sources: list[SourceDescriptor] = field(default_factory=list)


def load_config(config_name: str | None = None) -> Config:
    """Load configuration from a YAML profile, then apply env overrides.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "prod".

    Returns:
        Loaded Config object
    """
    load_dotenv()

    if config_name is None:
        config_name = os.environ.get("CONFIG_ENV", "prod")

    config_path = CONFIG_DIR / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    config = _parse_config(data)
    _apply_env_overrides(config, os.environ)
    return config


def _parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    feed_data = data.get("feed", {})
    image_data = data.get("image", {})
    server_data = data.get("server", {})

    feed = FeedConfig(
        max_items=feed_data.get("max_items", 20),
        max_retries=feed_data.get("max_retries", 3),
        timeout=feed_data.get("timeout", 20.0),
        user_agent=feed_data.get("user_agent", FeedConfig.user_agent),
    )

    image = ImageConfig(
        scrape=image_data.get("scrape", True),
        scrape_timeout=_clamp_scrape_timeout(image_data.get("scrape_timeout", 6.0)),
        placeholder=image_data.get("placeholder", ""),
    )

    cache = CacheConfig(
        ttl_seconds=data.get("cache", {}).get("ttl_seconds", 600.0),
    )

    server = ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 3000),
    )

    sources = [_parse_source(s) for s in data.get("sources", [])]
    names = [s.name for s in sources]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate source names: {', '.join(duplicates)}")

    return Config(
        feed=feed,
        image=image,
        cache=cache,
        server=server,
        max_concurrency=data.get("max_concurrency", 0),
        request_deadline=data.get("request_deadline", 30.0),
        fallback_category=data.get("fallback_category", "समाचार"),
        log_level=data.get("log_level", "INFO"),
        sources=sources,
    )


def _parse_source(data: dict) -> SourceDescriptor:
    if not data.get("name") or not data.get("url"):
        raise ValueError(f"Source needs a name and a url: {data}")
    return SourceDescriptor(
        name=data["name"],
        url=data["url"],
        logo=data.get("logo") or None,
        category=data.get("category") or None,
    )


def _clamp_scrape_timeout(value: float) -> float:
    return min(max(float(value), 4.0), 12.0)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y"}


def _apply_env_overrides(config: Config, env) -> None:
    """Override selected settings from environment variables."""
    if env.get("PORT"):
        config.server.port = int(env["PORT"])
    if env.get("CACHE_TTL_SECONDS"):
        config.cache.ttl_seconds = float(env["CACHE_TTL_SECONDS"])
    if env.get("FEED_MAX_ITEMS"):
        config.feed.max_items = int(env["FEED_MAX_ITEMS"])
    if env.get("FEED_MAX_RETRIES"):
        config.feed.max_retries = int(env["FEED_MAX_RETRIES"])
    if env.get("FEED_TIMEOUT_SECONDS"):
        config.feed.timeout = float(env["FEED_TIMEOUT_SECONDS"])
    if env.get("SCRAPE_TIMEOUT_SECONDS"):
        config.image.scrape_timeout = _clamp_scrape_timeout(env["SCRAPE_TIMEOUT_SECONDS"])
    if env.get("SCRAPE_IMAGES"):
        config.image.scrape = _env_bool(env["SCRAPE_IMAGES"])
    if env.get("MAX_CONCURRENCY"):
        config.max_concurrency = int(env["MAX_CONCURRENCY"])
    if env.get("REQUEST_DEADLINE_SECONDS"):
        deadline = float(env["REQUEST_DEADLINE_SECONDS"])
        config.request_deadline = deadline if deadline > 0 else None
    if env.get("LOG_LEVEL"):
        config.log_level = env["LOG_LEVEL"].upper()


# Global config instance (loaded on first access)
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (lazy-loaded)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config):
    """Set the global configuration (useful for testing)."""
    global _config
    _config = config


def reset_config():
    """Reset the global configuration (forces reload on next access)."""
    global _config
    _config = None
