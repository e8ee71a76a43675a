"""
Context Formatter

Renders the breach report and retrieved documents into the single
plain-text block handed to the letter-generation prompt. This string is
the only thing downstream sees, so its section markers are a contract:

    CURRENT DATE: ...                       (always)
    [TIMELINE BREACH ANALYSIS] ... [/...]   (only with breaches)
    [RECENT LEGISLATION UPDATES] ... [/...] (only with tagged documents)
    [ESTABLISHED LEGAL KNOWLEDGE] ... [/...](only with other documents)
    [CITATION REQUIREMENTS] ... [/...]      (only with documents)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from redress.models.schemas import BreachRecord, BreachReport, RetrievalResult

BREACH_INSTRUCTION = (
    "These breaches are calculated from the resident's own dates. They MUST be "
    "stated prominently in the letter, near the top, each with the regulation it "
    "breaches and the number of days elapsed. Present 'impending' items as "
    "upcoming duties, not as breaches."
)

CITATION_INSTRUCTION = (
    "Every legal claim in the letter must be supported by 2-3 distinct "
    "authorities from the documents above (for example the Complaint Handling "
    "Code together with the Landlord and Tenant Act 1985 and, for damp and "
    "mould, Awaab's Law or the HHSRS). Cite each authority by name in **bold**. "
    "Prefer the recent legislation updates where they apply. Do not cite "
    "anything that is not in the documents above."
)


def format_date_line(today: date) -> str:
    return f"CURRENT DATE: {today.day} {today:%B %Y} ({today.isoformat()})"


def _format_breach(index: int, record: BreachRecord) -> str:
    status = "BREACHED" if record.breached else "NOT YET ENFORCEABLE"
    return (
        f"{index}. {record.regulation}\n"
        f"   Requirement: {record.requirement}\n"
        f"   Elapsed: {record.elapsed} {record.unit}\n"
        f"   Severity: {record.severity.value.upper()} ({status})"
    )


def _format_breach_section(report: BreachReport) -> str:
    lines = [
        "[TIMELINE BREACH ANALYSIS]",
        f"Issue first reported: {report.reported_date.day} {report.reported_date:%B %Y}",
        f"Elapsed: {report.working_days_elapsed} working days "
        f"({report.calendar_days_elapsed} calendar days)",
        "",
    ]
    lines.extend(_format_breach(i, record) for i, record in enumerate(report.breaches, 1))
    lines.extend(["", BREACH_INSTRUCTION, "[/TIMELINE BREACH ANALYSIS]"])
    return "\n".join(lines)


def _format_documents(heading: str, documents: Sequence[RetrievalResult]) -> str:
    parts = [f"[{heading}]"]
    for i, doc in enumerate(documents, 1):
        parts.append(f"[Source {i}: {doc.source}]\n{doc.content}")
    parts.append(f"[/{heading}]")
    return "\n\n".join(parts)


def format_context(
    results: Sequence[RetrievalResult],
    breach_report: BreachReport | None,
    today: date,
) -> str:
    """
    Build the prompt-context string.

    With no documents and no breaches the result is just the date line,
    so the downstream prompt degrades to "no external legal context".
    """
    sections = [format_date_line(today)]

    if breach_report is not None and breach_report.has_breaches:
        sections.append(_format_breach_section(breach_report))

    updates = [doc for doc in results if doc.is_legislation_update]
    established = [doc for doc in results if not doc.is_legislation_update]

    if updates:
        sections.append(_format_documents("RECENT LEGISLATION UPDATES", updates))
    if established:
        sections.append(_format_documents("ESTABLISHED LEGAL KNOWLEDGE", established))
    if results:
        sections.append(
            f"[CITATION REQUIREMENTS]\n{CITATION_INSTRUCTION}\n[/CITATION REQUIREMENTS]"
        )

    return "\n\n".join(sections)
