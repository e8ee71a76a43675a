"""
Error Taxonomy

Every failure the knowledge core can recover from has its own type so
callers can decide, per stage, whether to skip a source, a batch or a
single search.
"""

from __future__ import annotations


class RedressError(Exception):
    """Base class for all knowledge-core errors."""


class ConfigError(RedressError):
    """Invalid configuration (e.g. chunk overlap >= chunk size). Fatal."""


class FetchError(RedressError):
    """A source was unreachable or answered with a non-2xx status."""

    def __init__(self, location: str, status: int | None = None) -> None:
        self.location = location
        self.status = status
        detail = f"status {status}" if status is not None else "unreachable"
        super().__init__(f"Fetch failed for {location}: {detail}")


class ExtractionError(RedressError):
    """Fetched content could not be parsed as HTML or PDF."""


class SourceSkipped(RedressError):
    """A source was deliberately not processed (e.g. PDF backend missing)."""


class EmbeddingError(RedressError):
    """The embedding provider failed, timed out or rate-limited a batch."""


class StoreError(RedressError):
    """An upsert or search against the vector store failed."""


class ParseError(RedressError):
    """A date-like substring could not be turned into a real date."""
