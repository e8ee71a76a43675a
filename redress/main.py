"""
Redress Knowledge Core — Application Entry Point

FastAPI application exposing the legal knowledge retrieval and
breach-analysis core to the complaint-letter assistant.

Start locally:
    uvicorn redress.main:app --host 0.0.0.0 --port 8001 --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from redress.api.v1.knowledge import router as knowledge_router
from redress.core.config import Settings, get_settings
from redress.core.database import Database
from redress.core.logging import setup_logging
from redress.repositories.documents import VectorStore
from redress.services.breach import BreachCalculator
from redress.services.chunking import TextChunker
from redress.services.embedding import EmbeddingClient
from redress.services.extraction import TextExtractor
from redress.services.ingestion import IngestionPipeline
from redress.services.letter_context import LetterContextService
from redress.services.retrieval import CrossReferenceRetriever

logger = logging.getLogger(__name__)


def build_services(
    app: FastAPI,
    settings: Settings,
    *,
    database: Database,
    http: httpx.AsyncClient,
    embedder: EmbeddingClient,
) -> None:
    """Wire every collaborator onto ``app.state``."""
    store = VectorStore(database.session_factory)
    retriever = CrossReferenceRetriever.from_settings(embedder, store, settings)

    app.state.embedder = embedder
    app.state.store = store
    app.state.context_service = LetterContextService(
        retriever,
        BreachCalculator(enforcement_date=settings.AWAABS_LAW_ENFORCEMENT_DATE),
        history_max_chars=settings.HISTORY_MAX_CHARS,
        match_count=settings.PRIMARY_MATCH_COUNT,
    )
    app.state.pipeline = IngestionPipeline(
        TextExtractor(http),
        TextChunker(settings.CHUNK_SIZE, settings.CHUNK_OVERLAP),
        embedder,
        store,
        fetch_timeout=settings.FETCH_TIMEOUT,
        min_text_length=settings.MIN_TEXT_LENGTH,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Configure logging.
        2. Build the database, HTTP and embedding clients.
        3. Validate database connectivity.

    Shutdown:
        Close every client built at startup.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting %s...", settings.PROJECT_NAME)

    database = Database(settings)
    http = httpx.AsyncClient(follow_redirects=True, timeout=settings.FETCH_TIMEOUT)
    embedder = EmbeddingClient.from_settings(settings)

    try:
        await database.ping()
        logger.info("Database connection verified")
    except Exception:
        logger.exception("Database connection failed")
        await embedder.close()
        await http.aclose()
        await database.dispose()
        raise

    build_services(app, settings, database=database, http=http, embedder=embedder)

    yield

    await embedder.close()
    await http.aclose()
    await database.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Redress Knowledge Core",
    description="Legal knowledge ingestion, cross-referenced retrieval and breach analysis.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(knowledge_router, prefix="/api/v1/knowledge", tags=["Knowledge"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "redress-knowledge",
        "environment": os.getenv("ENVIRONMENT", "local"),
    }
