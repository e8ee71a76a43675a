"""
Knowledge Ingestion Pipeline

Coordinates the offline knowledge-base build:
    Source list → TextExtractor → TextChunker → dedupe →
    EmbeddingClient → VectorStore

Sources are processed one at a time to bound memory and go easy on
upstream sites. A failing source is logged and skipped. A failing
embedding or upsert batch is logged and counted, and the next batch
is tried. Re-running the pipeline on unchanged sources is idempotent
because the store upserts on content.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from redress.core.exceptions import (
    EmbeddingError,
    ExtractionError,
    FetchError,
    SourceSkipped,
    StoreError,
)
from redress.models.schemas import Chunk, DocumentRow, Source
from redress.repositories.documents import VectorStore
from redress.services.chunking import TextChunker
from redress.services.dedup import dedupe
from redress.services.embedding import EmbeddingClient
from redress.services.extraction import TextExtractor

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH: int = 50


class SourceState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    DEDUPLICATING = "deduplicating"
    EMBEDDING = "embedding"
    UPSERTED = "upserted"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATES = frozenset({SourceState.UPSERTED, SourceState.FAILED, SourceState.SKIPPED})


@dataclass
class SourceOutcome:
    """Where one source ended up, and why."""

    location: str
    state: SourceState = SourceState.PENDING
    chunks: int = 0
    error: str | None = None


@dataclass
class IngestReport:
    """Summary of one pipeline run."""

    sources: list[SourceOutcome] = field(default_factory=list)
    total_chunks: int = 0
    unique_chunks: int = 0
    stored_chunks: int = 0
    skipped_chunks: int = 0

    @property
    def failed_sources(self) -> list[SourceOutcome]:
        return [s for s in self.sources if s.state is SourceState.FAILED]

    @property
    def succeeded(self) -> bool:
        return self.stored_chunks > 0 and self.skipped_chunks == 0


class IngestionPipeline:
    """
    Builds or refreshes the knowledge base from a list of sources.

    All collaborators are injected; the pipeline owns none of them.

    Usage::

        pipeline = IngestionPipeline(extractor, chunker, embedder, store)
        report = await pipeline.run(DEFAULT_SOURCES)
        print(report.stored_chunks, report.skipped_chunks)

    Args:
        fetch_timeout: Upper bound for fetch + extraction of one source.
        min_text_length: Extracted texts shorter than this are skipped
            (error pages, scanned PDFs with no text layer).
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        fetch_timeout: float = 30.0,
        min_text_length: int = MIN_TEXT_LENGTH,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedder = embedder
        self._store = store
        self._fetch_timeout = fetch_timeout
        self._min_text_length = min_text_length

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, sources: Sequence[Source], *, dry_run: bool = False) -> IngestReport:
        """
        Process every source to a terminal state, then embed and store.

        Args:
            sources: Ordered source list.
            dry_run: Stop after de-duplication; nothing is embedded or stored.

        Returns:
            IngestReport with per-source outcomes and chunk counters.
        """
        report = IngestReport()
        logger.info("Ingestion starting: %d sources", len(sources))

        collected: list[tuple[SourceOutcome, list[Chunk]]] = []
        for source in sources:
            outcome = SourceOutcome(location=source.location)
            report.sources.append(outcome)
            chunks = await self._process_source(source, outcome)
            if chunks:
                collected.append((outcome, chunks))

        all_chunks = [chunk for _, chunks in collected for chunk in chunks]
        report.total_chunks = len(all_chunks)
        if not all_chunks:
            logger.warning("No chunks produced. Check the source list and connectivity.")
            return report

        for outcome, _ in collected:
            self._transition(outcome, SourceState.DEDUPLICATING)
        unique = dedupe(all_chunks)
        report.unique_chunks = len(unique)
        logger.info(
            "De-duplicated %d chunks to %d unique chunks",
            report.total_chunks,
            report.unique_chunks,
        )

        if dry_run:
            for outcome, _ in collected:
                self._transition(outcome, SourceState.SKIPPED)
                outcome.error = "dry run"
            return report

        for outcome, _ in collected:
            self._transition(outcome, SourceState.EMBEDDING)
        failed_locations = await self._embed_and_store(unique, report)

        for outcome, _ in collected:
            if outcome.location in failed_locations:
                outcome.error = "one or more batches not persisted"
            self._transition(outcome, SourceState.UPSERTED)

        logger.info(
            "Ingestion complete: %d stored, %d skipped, %d/%d sources failed",
            report.stored_chunks,
            report.skipped_chunks,
            len(report.failed_sources),
            len(report.sources),
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _process_source(self, source: Source, outcome: SourceOutcome) -> list[Chunk]:
        """Fetch, extract and chunk one source. Never raises for source faults."""
        if not source.enabled:
            self._transition(outcome, SourceState.SKIPPED)
            outcome.error = "disabled"
            return []

        try:
            self._transition(outcome, SourceState.FETCHING)
            raw = await asyncio.wait_for(
                self._extractor.fetch(source),
                timeout=self._fetch_timeout,
            )
            self._transition(outcome, SourceState.EXTRACTING)
            text = await self._extractor.parse(source, raw)
        except SourceSkipped as exc:
            self._transition(outcome, SourceState.SKIPPED)
            outcome.error = str(exc)
            return []
        except (FetchError, ExtractionError) as exc:
            return self._fail(outcome, str(exc))
        except TimeoutError:
            return self._fail(outcome, f"timed out after {self._fetch_timeout:.0f}s")

        if len(text) < self._min_text_length:
            logger.warning("Skipping %s: very short or empty text", source.location)
            self._transition(outcome, SourceState.SKIPPED)
            outcome.error = f"text shorter than {self._min_text_length} chars"
            return []

        self._transition(outcome, SourceState.CHUNKING)
        chunks = list(self._chunker.split(source, text))
        outcome.chunks = len(chunks)
        logger.info("%s: %d chunks from %d chars", source.location, len(chunks), len(text))
        return chunks

    async def _embed_and_store(self, chunks: list[Chunk], report: IngestReport) -> set[str]:
        """
        Embed and upsert sequentially batch by batch.

        Returns:
            Locations that had at least one chunk in a failed batch.
        """
        failed_locations: set[str] = set()
        batches = list(self._embedder.iter_batches(chunks))

        for number, batch in enumerate(batches, start=1):
            try:
                vectors = await self._embedder.embed([c.content for c in batch])
                rows = [
                    DocumentRow(
                        content=chunk.content,
                        embedding=vector,
                        metadata={
                            "source": chunk.source_location,
                            "source_tag": chunk.source_tag.value,
                        },
                    )
                    for chunk, vector in zip(batch, vectors, strict=True)
                ]
                report.stored_chunks += await self._store.upsert(rows)
                logger.info("Stored batch %d of %d (%d chunks)", number, len(batches), len(batch))
            except (EmbeddingError, StoreError) as exc:
                report.skipped_chunks += len(batch)
                failed_locations.update(c.source_location for c in batch)
                logger.error("Batch %d of %d not persisted: %s", number, len(batches), exc)

        return failed_locations

    def _fail(self, outcome: SourceOutcome, reason: str) -> list[Chunk]:
        outcome.error = reason
        self._transition(outcome, SourceState.FAILED)
        return []

    @staticmethod
    def _transition(outcome: SourceOutcome, state: SourceState) -> None:
        if outcome.state in TERMINAL_STATES:
            raise RuntimeError(
                f"{outcome.location} is already {outcome.state.value}, cannot move to {state.value}"
            )
        outcome.state = state
        if state is SourceState.FAILED:
            logger.error("%s -> %s: %s", outcome.location, state.value, outcome.error)
        else:
            logger.debug("%s -> %s", outcome.location, state.value)
