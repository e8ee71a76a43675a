"""
Knowledge Base Sources

The operator-configured, ordered list of legal and regulatory pages
crawled by the ingestion pipeline. This is not user input.

``source_tag`` marks documents the context formatter should present as
recent legislation updates rather than established legal knowledge.
"""

from __future__ import annotations

from redress.models.schemas import Source, SourceFormat, SourceTag

_UPDATE = SourceTag.LEGISLATION_UPDATE

DEFAULT_SOURCES: tuple[Source, ...] = (
    # Housing Ombudsman
    Source(
        location="https://www.housing-ombudsman.org.uk/landlords-info/complaint-handling-code/the-code-2024/",
        source_tag=_UPDATE,
    ),
    Source(
        location="https://www.housing-ombudsman.org.uk/app/uploads/2024/09/03.Complaint-Handling-Code-24.pdf",
        source_tag=_UPDATE,
    ),
    Source(
        location="https://www.housing-ombudsman.org.uk/wp-content/uploads/2024/03/Understand-your-rights-as-a-resident.pdf",
    ),
    # Legislation
    Source(location="https://www.legislation.gov.uk/ukpga/2018/34"),
    Source(location="https://www.legislation.gov.uk/ukpga/2010/15/enacted?view=extent"),
    Source(location="https://www.legislation.gov.uk/ukpga/2018/12/enacted?view=extent"),
    Source(location="https://www.legislation.gov.uk/ukpga/1974/7/enacted"),
    Source(location="https://www.legislation.gov.uk/ukpga/2022/30/enacted"),
    Source(location="https://www.legislation.gov.uk/ukpga/1985/70/section/11"),
    # Regulator of Social Housing / government guidance
    Source(
        location="https://www.gov.uk/government/publications/awaabs-law-draft-guidance-for-social-landlords/awaabs-law-draft-guidance-for-social-landlords",
        source_tag=_UPDATE,
    ),
    Source(location="https://www.gov.uk/government/publications/neighbourhood-and-community-standard"),
    Source(location="https://www.gov.uk/government/publications/safety-and-quality-standard"),
    Source(location="https://www.gov.uk/government/publications/tenancy-standard"),
    Source(
        location="https://www.gov.uk/government/collections/transparency-influence-and-accountability-including-tenant-satisfaction-measures",
    ),
    Source(location="https://www.gov.uk/government/publications/consumer-standards-code-of-practice"),
    Source(location="https://www.gov.uk/government/publications/governance-and-financial-viability-standard"),
    Source(location="https://www.gov.uk/government/collections/rent-standard-and-guidance"),
    Source(location="https://www.gov.uk/government/publications/value-for-money-standard"),
)


def select_sources(
    sources: tuple[Source, ...] = DEFAULT_SOURCES,
    *,
    only_html: bool = False,
    locations: list[str] | None = None,
) -> list[Source]:
    """Filter the source list for a partial run (CLI ``--only-html``/``--source``)."""
    selected = list(sources)
    if locations:
        wanted = set(locations)
        known = {s.location for s in selected}
        selected = [s for s in selected if s.location in wanted]
        # Ad-hoc locations not in the registry are still allowed.
        selected.extend(Source(location=loc) for loc in locations if loc not in known)
    if only_html:
        selected = [s for s in selected if s.format is SourceFormat.HTML]
    return selected
