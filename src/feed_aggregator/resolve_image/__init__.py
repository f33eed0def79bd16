"""Article image resolution module."""

from feed_aggregator.resolve_image.resolver import ImageResolver

__all__ = ["ImageResolver"]
