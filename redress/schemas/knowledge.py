"""
Knowledge API Schemas

Pydantic models for the knowledge endpoint request/response cycle.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from redress.models.schemas import (
    BreachReport,
    ConversationTurn,
    RetrievalResult,
    TimelineFact,
)


class ContextRequest(BaseModel):
    """Request body for building letter context from a conversation."""

    messages: list[ConversationTurn] = Field(
        default_factory=list,
        description="Ordered chat turns; only content is read",
    )
    today: date | None = Field(
        default=None,
        description="Reference date (defaults to the server's current date)",
    )


class BreachSummary(BaseModel):
    """Breach report as returned over HTTP (has_breaches made explicit)."""

    report: BreachReport
    has_breaches: bool


class ContextResponse(BaseModel):
    """Prompt context plus the structured facts it was built from."""

    context: str = Field(description="Plain-text context for the letter prompt")
    timeline: TimelineFact
    breaches: BreachSummary | None = Field(
        default=None,
        description="None when no reported date was found",
    )
    documents: list[RetrievalResult] = Field(default_factory=list)
    follow_up_date: date = Field(description="Date the landlord is asked to respond by")


class SearchRequest(BaseModel):
    """Request body for a single semantic search."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language search query",
    )
    k: int = Field(
        default=7,
        ge=1,
        le=50,
        description="Number of results to return",
    )
    threshold: float = Field(
        default=0.5,
        ge=-1.0,
        le=1.0,
        description="Minimum cosine similarity",
    )


class IngestResponse(BaseModel):
    """Response for the ingestion trigger endpoint."""

    status: str = Field(description="'processing'")
    sources: int = Field(description="Number of sources queued")
    message: str = Field(description="Human-readable status message")
