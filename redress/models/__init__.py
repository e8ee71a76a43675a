"""Models package — Pydantic schemas and SQLAlchemy ORM for the knowledge core."""

from redress.models.orm import EMBEDDING_DIMENSION, DocumentRecord
from redress.models.schemas import (
    BreachRecord,
    BreachReport,
    Chunk,
    ConversationTurn,
    DocumentRow,
    IssueType,
    RetrievalResult,
    Severity,
    Source,
    SourceFormat,
    SourceTag,
    TimelineFact,
)

__all__ = [
    # Pydantic schemas (domain)
    "BreachRecord",
    "BreachReport",
    "Chunk",
    "ConversationTurn",
    "DocumentRow",
    "IssueType",
    "RetrievalResult",
    "Severity",
    "Source",
    "SourceFormat",
    "SourceTag",
    "TimelineFact",
    # SQLAlchemy ORM (persistence layer)
    "DocumentRecord",
    "EMBEDDING_DIMENSION",
]
