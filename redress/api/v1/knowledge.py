"""
Knowledge API Router

HTTP endpoints for the legal knowledge core.

Endpoints:
    POST /context — Conversation in, letter prompt context out.
    POST /search  — Single semantic search over the knowledge base.
    POST /ingest  — Re-crawl the configured sources (returns 202).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from redress.core.exceptions import EmbeddingError, StoreError
from redress.core.sources import DEFAULT_SOURCES
from redress.models.schemas import RetrievalResult
from redress.repositories.documents import VectorStore
from redress.schemas.knowledge import (
    BreachSummary,
    ContextRequest,
    ContextResponse,
    IngestResponse,
    SearchRequest,
)
from redress.services.embedding import EmbeddingClient
from redress.services.ingestion import IngestionPipeline
from redress.services.letter_context import LetterContextService

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies (collaborators are built once in the app lifespan)
# ---------------------------------------------------------------------------


def _get_context_service(request: Request) -> LetterContextService:
    return request.app.state.context_service


def _get_embedder(request: Request) -> EmbeddingClient:
    return request.app.state.embedder


def _get_store(request: Request) -> VectorStore:
    return request.app.state.store


def _get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


# ---------------------------------------------------------------------------
# Background task
# ---------------------------------------------------------------------------


async def _run_ingest(pipeline: IngestionPipeline) -> None:
    """Run the full source list after the response has been sent."""
    try:
        report = await pipeline.run(DEFAULT_SOURCES)
        logger.info(
            "Background ingestion finished: %d stored, %d skipped",
            report.stored_chunks,
            report.skipped_chunks,
        )
    except Exception:
        logger.exception("Background ingestion aborted")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/context",
    response_model=ContextResponse,
    summary="Build letter context from a conversation",
)
async def build_context(
    request: ContextRequest,
    service: LetterContextService = Depends(_get_context_service),
) -> ContextResponse:
    """
    Extract the timeline, compute breaches and retrieve legal sources.

    Never fails because retrieval failed: with no documents the
    context is just the current date (plus breaches, if any).
    """
    result = await service.build(request.messages, today=request.today)

    breaches = None
    if result.breach_report is not None:
        breaches = BreachSummary(
            report=result.breach_report,
            has_breaches=result.breach_report.has_breaches,
        )

    return ContextResponse(
        context=result.context,
        timeline=result.timeline,
        breaches=breaches,
        documents=result.documents,
        follow_up_date=result.follow_up_date,
    )


@router.post(
    "/search",
    response_model=list[RetrievalResult],
    summary="Semantic search across the knowledge base",
)
async def search(
    request: SearchRequest,
    embedder: EmbeddingClient = Depends(_get_embedder),
    store: VectorStore = Depends(_get_store),
) -> list[RetrievalResult]:
    """Embed the query and return the closest stored chunks above the threshold."""
    try:
        vector = await embedder.embed_query(request.query)
        return await store.match_documents(vector, request.threshold, request.k)
    except (EmbeddingError, StoreError) as exc:
        logger.warning("Search degraded to empty result: %s", exc)
        return []


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=202,
    summary="Re-crawl and embed the configured sources",
)
async def ingest(
    background_tasks: BackgroundTasks,
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> IngestResponse:
    """Queue a pipeline run over the configured source list."""
    background_tasks.add_task(_run_ingest, pipeline)
    return IngestResponse(
        status="processing",
        sources=len(DEFAULT_SOURCES),
        message=f"{len(DEFAULT_SOURCES)} sources queued for ingestion.",
    )
