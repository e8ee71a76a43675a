"""
Breach Calculator

Deterministic check of elapsed time since a reported issue against the
deadlines a social landlord must meet. Every rule is evaluated on its
own, so one case can breach several regulations at once.

The Awaab's Law enforcement date is configuration, not a derived value:
it is a legal fact that can move.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta

from redress.models.schemas import BreachRecord, BreachReport, IssueType, Severity

logger = logging.getLogger(__name__)

DEFAULT_ENFORCEMENT_DATE = date(2025, 10, 27)

COMPLAINT_CODE = "Housing Ombudsman Complaint Handling Code 2024"
AWAABS_LAW = "Awaab's Law (Social Housing (Regulation) Act 2023, s.42)"
REPAIR_DUTY = "Landlord and Tenant Act 1985, s.11"


def calculate_working_days(start: date, end: date) -> int:
    """
    Count Monday to Friday days from ``start`` to ``end``, both inclusive.

    Returns 0 when ``end`` is before ``start``.
    """
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


@dataclass(frozen=True)
class CaseClock:
    """Everything a rule may look at."""

    issue_type: IssueType
    vulnerable: bool
    working_days: int
    calendar_days: int
    now: date
    enforcement_date: date


Rule = Callable[[CaseClock], BreachRecord | None]


def acknowledgement_rule(case: CaseClock) -> BreachRecord | None:
    if case.working_days <= 5:
        return None
    return BreachRecord(
        regulation=f"{COMPLAINT_CODE}, para 5.1 (acknowledgement)",
        requirement="Acknowledge a complaint within 5 working days",
        elapsed=case.working_days,
        unit="working days",
        severity=Severity.MODERATE,
    )


def response_rule(case: CaseClock) -> BreachRecord | None:
    if case.working_days <= 10:
        return None
    return BreachRecord(
        regulation=f"{COMPLAINT_CODE}, para 6.2 (stage 1 response)",
        requirement="Respond to a stage 1 complaint within 10 working days",
        elapsed=case.working_days,
        unit="working days",
        severity=Severity.SERIOUS,
    )


def awaabs_law_rule(case: CaseClock) -> BreachRecord | None:
    if case.issue_type is not IssueType.DAMP_MOULD or not case.vulnerable:
        return None

    requirement = "Investigate damp and mould hazards within 14 days where children are affected"
    if case.now < case.enforcement_date:
        return BreachRecord(
            regulation=f"{AWAABS_LAW}, in force from {case.enforcement_date:%d %B %Y}",
            requirement=requirement,
            elapsed=case.calendar_days,
            unit="calendar days",
            breached=False,
            severity=Severity.IMPENDING,
        )
    if case.calendar_days <= 14:
        return None
    return BreachRecord(
        regulation=AWAABS_LAW,
        requirement=requirement,
        elapsed=case.calendar_days,
        unit="calendar days",
        severity=Severity.CRITICAL,
    )


def emergency_repair_rule(case: CaseClock) -> BreachRecord | None:
    if case.issue_type is not IssueType.HEATING or case.calendar_days <= 1:
        return None
    return BreachRecord(
        regulation=f"{REPAIR_DUTY} (emergency repairs)",
        requirement="Make safe loss of heating or hot water within 24 hours",
        elapsed=case.calendar_days,
        unit="calendar days",
        severity=Severity.SERIOUS,
    )


def general_repair_rule(case: CaseClock) -> BreachRecord | None:
    if case.issue_type is not IssueType.REPAIRS or case.calendar_days <= 28:
        return None
    return BreachRecord(
        regulation=f"{REPAIR_DUTY} (repairing obligations)",
        requirement="Complete repairs within a reasonable time (about 28 days)",
        elapsed=case.calendar_days,
        unit="calendar days",
        severity=Severity.MODERATE,
    )


BREACH_RULES: tuple[Rule, ...] = (
    acknowledgement_rule,
    response_rule,
    awaabs_law_rule,
    emergency_repair_rule,
    general_repair_rule,
)


class BreachCalculator:
    """
    Evaluates the rule table for one reported issue.

    Usage::

        calculator = BreachCalculator(enforcement_date=settings.AWAABS_LAW_ENFORCEMENT_DATE)
        report = calculator.calculate(reported, IssueType.DAMP_MOULD, True, now=today)
        if report and report.has_breaches:
            ...
    """

    def __init__(
        self,
        enforcement_date: date = DEFAULT_ENFORCEMENT_DATE,
        rules: tuple[Rule, ...] = BREACH_RULES,
    ) -> None:
        self._enforcement_date = enforcement_date
        self._rules = rules

    def calculate(
        self,
        reported_date: date | None,
        issue_type: IssueType,
        vulnerable: bool,
        *,
        now: date,
    ) -> BreachReport | None:
        """
        Build the BreachReport, or ``None`` when there is no reported date.

        No date means no timeline evidence, which is a normal outcome
        for the caller, not an error.
        """
        if reported_date is None:
            return None

        case = CaseClock(
            issue_type=issue_type,
            vulnerable=vulnerable,
            working_days=calculate_working_days(reported_date, now),
            calendar_days=max((now - reported_date).days, 0),
            now=now,
            enforcement_date=self._enforcement_date,
        )
        breaches = [record for rule in self._rules if (record := rule(case)) is not None]

        logger.info(
            "Breach check: reported=%s issue=%s vulnerable=%s -> %d working / %d calendar days, %d breaches",
            reported_date,
            issue_type.value,
            vulnerable,
            case.working_days,
            case.calendar_days,
            len(breaches),
        )
        return BreachReport(
            reported_date=reported_date,
            working_days_elapsed=case.working_days,
            calendar_days_elapsed=case.calendar_days,
            breaches=breaches,
        )


def calculate_breaches(
    reported_date: date | None,
    issue_type: IssueType,
    vulnerable: bool,
    *,
    now: date,
    enforcement_date: date = DEFAULT_ENFORCEMENT_DATE,
) -> BreachReport | None:
    """Functional shortcut for a one-off ``BreachCalculator.calculate``."""
    calculator = BreachCalculator(enforcement_date=enforcement_date)
    return calculator.calculate(reported_date, issue_type, vulnerable, now=now)
