"""
Letter Context Service

Request-time orchestrator. Given the chat history it:

    1. keeps the most recent turns (bounded by characters),
    2. extracts the timeline from the user's turns,
    3. computes the breach report,
    4. runs cross-referenced retrieval,
    5. formats everything into one context string.

Retrieval is the only I/O. If it degrades to nothing, the context is
still produced (date line, plus breaches if any).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from redress.models.schemas import (
    BreachReport,
    ConversationTurn,
    RetrievalResult,
    TimelineFact,
)
from redress.services.breach import BreachCalculator
from redress.services.context import format_context
from redress.services.retrieval import CrossReferenceRetriever
from redress.services.timeline import extract_timeline

logger = logging.getLogger(__name__)

FOLLOW_UP_DAYS: int = 14


def window_messages(
    turns: Sequence[ConversationTurn],
    max_chars: int = 9000,
) -> list[ConversationTurn]:
    """
    Keep the most recent turns, walking back until ``max_chars`` is exceeded.

    The turn that crosses the limit is kept, so the window is never empty
    when there is at least one turn.
    """
    kept: list[ConversationTurn] = []
    total = 0
    for turn in reversed(turns):
        total += len(turn.content)
        kept.append(turn)
        if total > max_chars:
            break
    kept.reverse()
    return kept


def latest_user_text(turns: Sequence[ConversationTurn]) -> str:
    for turn in reversed(turns):
        if turn.role == "user":
            return turn.content
    return ""


@dataclass
class LetterContext:
    """Everything the letter-generation step needs from the knowledge core."""

    context: str
    timeline: TimelineFact
    breach_report: BreachReport | None
    documents: list[RetrievalResult] = field(default_factory=list)
    today: date = field(default_factory=date.today)

    @property
    def follow_up_date(self) -> date:
        """Date the letter asks the landlord to respond by."""
        return self.today + timedelta(days=FOLLOW_UP_DAYS)


class LetterContextService:
    """
    Builds the prompt context for one chat turn.

    Usage::

        service = LetterContextService(retriever, BreachCalculator())
        result = await service.build(turns)
        prompt = SYSTEM_PROMPT.format(context=result.context)
    """

    def __init__(
        self,
        retriever: CrossReferenceRetriever,
        calculator: BreachCalculator,
        *,
        history_max_chars: int = 9000,
        match_count: int = 7,
    ) -> None:
        self._retriever = retriever
        self._calculator = calculator
        self._history_max_chars = history_max_chars
        self._match_count = match_count

    async def build(
        self,
        turns: Sequence[ConversationTurn],
        *,
        today: date | None = None,
    ) -> LetterContext:
        today = today or date.today()
        history = window_messages(turns, self._history_max_chars)

        user_text = "\n".join(t.content for t in history if t.role == "user")
        timeline = extract_timeline(user_text, today)
        breach_report = self._calculator.calculate(
            timeline.reported_date,
            timeline.issue_type,
            timeline.children_or_vulnerable_affected,
            now=today,
        )

        query = latest_user_text(history)
        conversation = "\n".join(t.content for t in history)
        documents = await self._retriever.retrieve(query, conversation, self._match_count)

        logger.info(
            "Context built: issue=%s reported=%s breaches=%d documents=%d",
            timeline.issue_type.value,
            timeline.reported_date,
            len(breach_report.breaches) if breach_report else 0,
            len(documents),
        )
        return LetterContext(
            context=format_context(documents, breach_report, today),
            timeline=timeline,
            breach_report=breach_report,
            documents=documents,
            today=today,
        )
