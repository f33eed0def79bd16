"""Tests for feed_aggregator.cache module."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from feed_aggregator.cache import AggregationCache
from feed_aggregator.errors import AggregationFailure, SourceUnavailable
from feed_aggregator.models import Article, ArticleSource


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _article(url: str, source: str = "alpha") -> Article:
    return Article(
        source=ArticleSource(name=source),
        category="News",
        title="T",
        description="",
        content="",
        url=url,
        image_url="",
        published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> AggregationCache:
    return AggregationCache(ttl_seconds=1, clock=clock)


class TestFreshness:
    def test_unknown_source_is_stale(self, cache) -> None:
        assert cache.is_fresh("alpha") is False
        assert cache.get("alpha") is None

    def test_fresh_within_window(self, cache, clock) -> None:
        cache.set("alpha", [_article("https://a/1")])
        clock.now = 0.5
        assert cache.is_fresh("alpha") is True

    def test_stale_at_window_boundary(self, cache, clock) -> None:
        cache.set("alpha", [_article("https://a/1")])
        clock.now = 1.0
        assert cache.is_fresh("alpha") is False

    def test_sources_have_independent_clocks(self, cache, clock) -> None:
        cache.set("alpha", [])
        clock.now = 0.8
        cache.set("beta", [])
        clock.now = 1.2
        assert cache.is_fresh("alpha") is False
        assert cache.is_fresh("beta") is True

    def test_set_replaces_entry(self, cache) -> None:
        first = cache.set("alpha", [_article("https://a/1")])
        second = cache.set("alpha", [_article("https://a/2")])
        assert cache.get("alpha") is second
        assert first.articles[0].url == "https://a/1"

    def test_set_rejects_article_without_url(self, cache) -> None:
        with pytest.raises(AggregationFailure):
            cache.set("alpha", [_article("")])

    def test_clear(self, cache) -> None:
        cache.set("alpha", [])
        cache.clear()
        assert cache.get("alpha") is None


class TestFetch:
    def test_refreshes_once_within_window(self, cache, clock) -> None:
        calls = []

        async def refresh():
            calls.append(clock.now)
            return [_article(f"https://a/{len(calls)}")]

        async def scenario():
            first = await cache.fetch("alpha", refresh)
            clock.now = 0.5
            second = await cache.fetch("alpha", refresh)
            clock.now = 1.5
            third = await cache.fetch("alpha", refresh)
            return first, second, third

        first, second, third = asyncio.run(scenario())

        assert calls == [0.0, 1.5]
        assert first == second
        assert third[0].url == "https://a/2"

    def test_failed_refresh_is_stored(self, cache, clock) -> None:
        cache.set("alpha", [_article("https://a/1")])
        clock.now = 2.0

        async def refresh():
            raise RuntimeError("feed down")

        with pytest.raises(RuntimeError):
            asyncio.run(cache.fetch("alpha", refresh))

        entry = cache.get("alpha")
        assert entry.articles == ()
        assert entry.error == "feed down"
        assert cache.is_fresh("alpha") is True

    def test_failed_refresh_not_retried_within_window(self, cache, clock) -> None:
        calls = []

        async def failing():
            calls.append(clock.now)
            raise SourceUnavailable("alpha", "connection refused")

        async def working():
            calls.append(clock.now)
            return [_article("https://a/1")]

        with pytest.raises(SourceUnavailable):
            asyncio.run(cache.fetch("alpha", failing))

        clock.now = 0.5
        with pytest.raises(SourceUnavailable) as excinfo:
            asyncio.run(cache.fetch("alpha", working))
        assert excinfo.value.reason == "connection refused"

        clock.now = 1.5
        recovered = asyncio.run(cache.fetch("alpha", working))

        assert calls == [0.0, 1.5]
        assert [a.url for a in recovered] == ["https://a/1"]
        assert cache.get("alpha").error is None

    def test_invariant_violation_is_not_stored(self, cache) -> None:
        async def refresh():
            return [_article("")]

        with pytest.raises(AggregationFailure):
            asyncio.run(cache.fetch("alpha", refresh))

        assert cache.get("alpha") is None

    def test_reads_during_refresh_see_previous_entry(self, cache, clock) -> None:
        cache.set("alpha", [_article("https://a/old")])
        clock.now = 5.0

        async def scenario():
            release = asyncio.Event()

            async def refresh():
                await release.wait()
                return [_article("https://a/new")]

            refreshing = asyncio.ensure_future(cache.fetch("alpha", refresh))
            await asyncio.sleep(0)
            during = await cache.fetch("alpha", refresh)
            release.set()
            after_refresh = await refreshing
            after = await cache.fetch("alpha", refresh)
            return during, after_refresh, after

        during, after_refresh, after = asyncio.run(scenario())

        assert [a.url for a in during] == ["https://a/old"]
        assert [a.url for a in after_refresh] == ["https://a/new"]
        assert [a.url for a in after] == ["https://a/new"]

    def test_concurrent_first_loads_share_one_refresh(self, cache) -> None:
        calls = []

        async def refresh():
            calls.append(1)
            await asyncio.sleep(0)
            return [_article("https://a/1")]

        async def scenario():
            return await asyncio.gather(
                cache.fetch("alpha", refresh),
                cache.fetch("alpha", refresh),
            )

        first, second = asyncio.run(scenario())

        assert len(calls) == 1
        assert first == second


class TestFetchedAt:
    def test_entry_stamped_in_utc(self, cache) -> None:
        before = datetime.now(timezone.utc)
        entry = cache.set("alpha", [_article("https://a/1")])
        assert before <= entry.fetched_at <= datetime.now(timezone.utc)

    def test_refresh_log_reports_fetch_time(self, cache) -> None:
        async def refresh():
            return [_article("https://a/1")]

        with patch("feed_aggregator.cache.logger") as mock_logger:
            asyncio.run(cache.fetch("alpha", refresh))

        stamp = cache.get("alpha").fetched_at.isoformat()
        mock_logger.info.assert_called_once_with("Cached %d articles for %s at %s", 1, "alpha", stamp)

    def test_failure_log_reports_fetch_time(self, cache) -> None:
        async def refresh():
            raise SourceUnavailable("alpha", "timeout")

        with patch("feed_aggregator.cache.logger") as mock_logger:
            with pytest.raises(SourceUnavailable):
                asyncio.run(cache.fetch("alpha", refresh))

        stamp = cache.get("alpha").fetched_at.isoformat()
        assert stamp in mock_logger.warning.call_args.args
