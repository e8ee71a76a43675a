"""
Cross-Reference Retriever

A complaint letter needs several kinds of authority at once: the
complaint process rules, the substantive repair duties and the
hazard-specific law. One nearest-neighbour query over the user's words
rarely returns all three, so the retriever runs:

    1. a primary search over the query plus conversation context, and
    2. a battery of topic-anchored auxiliary searches, some always on,
       some selected by keywords in the conversation,

concurrently, then merges the results by document id.

Each search has its own timeout. A search that fails or times out is
dropped from the merge; the request still gets whatever came back.
Cancelling the calling task cancels every search in flight.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Sequence
from typing import NamedTuple
from uuid import UUID

from redress.core.config import Settings
from redress.core.exceptions import EmbeddingError, StoreError
from redress.models.schemas import RetrievalResult
from redress.repositories.documents import VectorStore
from redress.services.embedding import EmbeddingClient

logger = logging.getLogger(__name__)


class TopicQuery(NamedTuple):
    topic: str
    query: str


# Issued on every request, whatever the issue type.
CORE_TOPICS: tuple[TopicQuery, ...] = (
    TopicQuery(
        "complaint_handling",
        "Housing Ombudsman Complaint Handling Code timescales: acknowledge within "
        "5 working days, stage 1 response within 10 working days, stage 2, remedies "
        "and compensation",
    ),
    TopicQuery(
        "repair_duty",
        "Landlord and Tenant Act 1985 section 11 landlord obligation to keep in repair "
        "the structure, exterior and installations for heating, water and sanitation",
    ),
    TopicQuery(
        "fitness_for_habitation",
        "Homes (Fitness for Human Habitation) Act 2018 dwelling must be fit for human "
        "habitation at the start and throughout the tenancy",
    ),
)

# (keyword pattern, topics) pairs checked against query + context.
ISSUE_TOPICS: tuple[tuple[re.Pattern[str], tuple[TopicQuery, ...]], ...] = (
    (
        re.compile(r"\b(?:damp|mou?ld|condensation)", re.IGNORECASE),
        (
            TopicQuery(
                "awaabs_law",
                "Awaab's Law social landlords must investigate damp and mould hazards "
                "within 14 days and make safe where there is significant risk to health",
            ),
            TopicQuery(
                "hhsrs_damp",
                "Housing Health and Safety Rating System category 1 hazard damp and "
                "mould growth Housing Act 2004 enforcement",
            ),
        ),
    ),
    (
        re.compile(r"\b(?:repair|maintenance|broken)", re.IGNORECASE),
        (
            TopicQuery(
                "repair_covenant",
                "implied repairing covenant landlord liability for disrepair and "
                "reasonable time to carry out repairs",
            ),
            TopicQuery(
                "disrepair_notice",
                "notice of disrepair given to the landlord, tenant remedies and "
                "pre-action protocol for housing conditions claims",
            ),
        ),
    ),
    (
        re.compile(r"\b(?:heating|boiler|cold)", re.IGNORECASE),
        (
            TopicQuery(
                "excess_cold",
                "excess cold hazard HHSRS loss of heating or hot water emergency "
                "repair within 24 hours vulnerable occupants",
            ),
        ),
    ),
    (
        re.compile(r"\b(?:noise|anti-?social|neighbou?r)", re.IGNORECASE),
        (
            TopicQuery(
                "nuisance",
                "Neighbourhood and Community Standard landlord duties to tackle "
                "anti-social behaviour, noise nuisance and neighbour disputes",
            ),
        ),
    ),
)


def select_topics(text: str) -> list[TopicQuery]:
    """Core topics followed by every issue-specific topic whose keywords match."""
    topics = list(CORE_TOPICS)
    for pattern, issue_topics in ISSUE_TOPICS:
        if pattern.search(text):
            topics.extend(issue_topics)
    return topics


def merge_results(
    result_sets: Iterable[Sequence[RetrievalResult]],
    cap: int,
) -> list[RetrievalResult]:
    """Union result sets in order, keeping the first occurrence of each id."""
    seen: set[UUID] = set()
    merged: list[RetrievalResult] = []
    for results in result_sets:
        for result in results:
            if result.id in seen:
                continue
            seen.add(result.id)
            merged.append(result)
            if len(merged) >= cap:
                return merged
    return merged


class CrossReferenceRetriever:
    """
    Multi-query semantic retrieval against the knowledge store.

    Usage::

        retriever = CrossReferenceRetriever.from_settings(embedder, store, settings)
        documents = await retriever.retrieve(latest_message, history_text, limit=7)
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        primary_threshold: float = 0.5,
        auxiliary_threshold: float = 0.3,
        auxiliary_match_count: int = 3,
        auxiliary_allowance: int = 8,
        max_query_chars: int = 2000,
        timeout: float = 10.0,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._primary_threshold = primary_threshold
        self._auxiliary_threshold = auxiliary_threshold
        self._auxiliary_match_count = auxiliary_match_count
        self._auxiliary_allowance = auxiliary_allowance
        self._max_query_chars = max_query_chars
        self._timeout = timeout
        # Topic queries never change, so their vectors are computed once.
        self._topic_vectors: dict[str, list[float]] = {}

    @classmethod
    def from_settings(
        cls,
        embedder: EmbeddingClient,
        store: VectorStore,
        settings: Settings,
    ) -> CrossReferenceRetriever:
        return cls(
            embedder,
            store,
            primary_threshold=settings.PRIMARY_THRESHOLD,
            auxiliary_threshold=settings.AUXILIARY_THRESHOLD,
            auxiliary_match_count=settings.AUXILIARY_MATCH_COUNT,
            auxiliary_allowance=settings.AUXILIARY_ALLOWANCE,
            max_query_chars=settings.PRIMARY_QUERY_MAX_CHARS,
            timeout=settings.EMBEDDING_TIMEOUT + settings.SEARCH_TIMEOUT,
        )

    async def retrieve(
        self,
        query: str,
        conversation_context: str = "",
        limit: int = 7,
    ) -> list[RetrievalResult]:
        """
        Run the primary and auxiliary searches and merge them.

        Args:
            query: The latest user message.
            conversation_context: Recent conversation text.
            limit: Primary result count; the merge is capped at
                ``limit + auxiliary_allowance``.

        Returns:
            Deduplicated results, primary hits first. May be empty.
        """
        combined = f"{query} {conversation_context}".strip()[: self._max_query_chars]
        if not combined:
            return []

        topics = select_topics(combined)
        searches = [
            self._search("primary", combined, self._primary_threshold, limit, cache=False),
            *(
                self._search(
                    topic.topic,
                    topic.query,
                    self._auxiliary_threshold,
                    self._auxiliary_match_count,
                    cache=True,
                )
                for topic in topics
            ),
        ]
        result_sets = await asyncio.gather(*searches)

        merged = merge_results(result_sets, cap=limit + self._auxiliary_allowance)
        logger.info(
            "Retrieved %d documents (primary=%d, auxiliary topics=%s)",
            len(merged),
            len(result_sets[0]),
            ",".join(t.topic for t in topics),
        )
        return merged

    async def _search(
        self,
        label: str,
        text: str,
        threshold: float,
        count: int,
        *,
        cache: bool,
    ) -> list[RetrievalResult]:
        """One embed + match pair under a timeout. Failures become ``[]``."""
        try:
            return await asyncio.wait_for(
                self._embed_and_match(text, threshold, count, cache=cache),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.warning("Search '%s' timed out after %.1fs; dropped", label, self._timeout)
        except (EmbeddingError, StoreError) as exc:
            logger.warning("Search '%s' failed; dropped: %s", label, exc)
        return []

    async def _embed_and_match(
        self,
        text: str,
        threshold: float,
        count: int,
        *,
        cache: bool,
    ) -> list[RetrievalResult]:
        vector = self._topic_vectors.get(text) if cache else None
        if vector is None:
            vector = await self._embedder.embed_query(text)
            if cache:
                self._topic_vectors[text] = vector
        return await self._store.match_documents(vector, threshold, count)
