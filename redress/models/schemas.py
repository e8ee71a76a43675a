"""
Redress Domain Schemas

Pydantic models for the data flowing through the knowledge core:
sources and chunks on the ingestion side, timeline facts, breach
reports and retrieval results on the request side.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class SourceFormat(str, Enum):
    HTML = "html"
    PDF = "pdf"


class SourceTag(str, Enum):
    """How the context formatter groups documents from a source."""

    LEGISLATION_UPDATE = "legislation_update"
    ESTABLISHED = "established"


class Source(BaseModel):
    """
    A crawlable legal/regulatory source.

    ``format`` is inferred from a ``.pdf`` suffix when omitted.
    ``location`` is either an http(s) URL or a local file path.
    """

    location: str = Field(min_length=1)
    format: SourceFormat | None = None
    source_tag: SourceTag = SourceTag.ESTABLISHED
    enabled: bool = True

    @model_validator(mode="after")
    def _infer_format(self) -> Source:
        if self.format is None:
            path = self.location.split("?", 1)[0].lower()
            self.format = SourceFormat.PDF if path.endswith(".pdf") else SourceFormat.HTML
        return self

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))


class Chunk(BaseModel):
    """
    A bounded window of one source's normalised text.

    Ephemeral: lives only between chunking and upsert.
    """

    source_location: str
    content: str = Field(min_length=1)
    source_tag: SourceTag = SourceTag.ESTABLISHED


class DocumentRow(BaseModel):
    """A row ready to upsert: content, its embedding and metadata together."""

    content: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Timeline & breaches
# ---------------------------------------------------------------------------


class IssueType(str, Enum):
    DAMP_MOULD = "damp_mould"
    REPAIRS = "repairs"
    HEATING = "heating"
    GENERAL = "general"


class Severity(str, Enum):
    MODERATE = "moderate"
    SERIOUS = "serious"
    CRITICAL = "critical"
    IMPENDING = "impending"


class TimelineFact(BaseModel):
    """What the conversation tells us about when and what was reported."""

    reported_date: date | None = None
    issue_type: IssueType = IssueType.GENERAL
    children_or_vulnerable_affected: bool = False


class BreachRecord(BaseModel):
    regulation: str
    requirement: str
    elapsed: int = Field(ge=0)
    unit: Literal["working days", "calendar days"]
    breached: bool = True
    severity: Severity


class BreachReport(BaseModel):
    reported_date: date
    working_days_elapsed: int
    calendar_days_elapsed: int
    breaches: list[BreachRecord] = Field(default_factory=list)

    @property
    def has_breaches(self) -> bool:
        # Impending entries count: they are informative even when not breached.
        return len(self.breaches) > 0


# ---------------------------------------------------------------------------
# Retrieval & conversation
# ---------------------------------------------------------------------------


class RetrievalResult(BaseModel):
    id: UUID
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float = 0.0

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", "unknown"))

    @property
    def is_legislation_update(self) -> bool:
        return self.metadata.get("source_tag") == SourceTag.LEGISLATION_UPDATE.value


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = ""
