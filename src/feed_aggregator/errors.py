"""Pipeline exceptions."""


class SourceUnavailable(Exception):
    """A feed could not be fetched or parsed after all retries."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class AggregationFailure(Exception):
    """Unexpected failure outside per-source isolation."""
