"""
Timeline Extraction

Reads free conversation text and pulls out the facts the breach
calculator needs: when the problem was reported, what kind of problem
it is, and whether children live with it.

Every recogniser is a (name, regex, parser) entry in an ordered table.
Tables are scanned top to bottom and the first candidate that parses
wins. A candidate that looks like a date but is not one (31/02/2024)
is skipped and the scan carries on.

Reported-date priority:

    ====  ==========================  ====================================
    Rank  Matcher                     Example
    ====  ==========================  ====================================
    1     contact phrase + ISO        "reported it on 2024-03-05"
    2     contact phrase + UK numeric "I told them on 05/03/2024"
    3     contact phrase + long form  "complained on 5th March 2024"
    4     contact phrase + relative   "contacted them 3 weeks ago"
    5     bare ISO                    "2024-03-05"
    6     bare UK numeric             "05-03-2024"
    7     bare long form              "5 Mar 2024"
    8     bare relative               "about 2 months ago"
    ====  ==========================  ====================================

Issue-type priority: damp_mould, repairs, heating, else general.
"""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Callable
from datetime import date, timedelta
from typing import NamedTuple

from redress.core.exceptions import ParseError
from redress.models.schemas import IssueType, TimelineFact

logger = logging.getLogger(__name__)

DateParser = Callable[[re.Match[str], date], date]


class DateMatcher(NamedTuple):
    name: str
    pattern: re.Pattern[str]
    parse: DateParser


class IssueMatcher(NamedTuple):
    issue_type: IssueType
    pattern: re.Pattern[str]


# ---------------------------------------------------------------------------
# Date formats
# ---------------------------------------------------------------------------

MONTHS: dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}  # fmt: skip

NUMBER_WORDS: dict[str, int] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12,
}  # fmt: skip

ISO = r"(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})"
UK_NUMERIC = r"(?P<d>\d{1,2})[/-](?P<m>\d{1,2})[/-](?P<y>\d{4})"
LONG_FORM = (
    r"(?P<d>\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?"
    r"(?P<mon>jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
    r"\.?,?\s+(?P<y>\d{4})"
)
RELATIVE = (
    r"(?P<n>\d{1,3}|" + "|".join(NUMBER_WORDS) + r")\s+"
    r"(?P<unit>day|week|month|year)s?\s+ago"
)

CONTACT_PHRASE = (
    r"\b(?:reported|told|contacted|complained|informed|notified|emailed|called|raised)\b"
    r"[^.?!\n]{0,40}?"
)


def _build(date_format: str, *, contact: bool) -> re.Pattern[str]:
    prefix = CONTACT_PHRASE if contact else ""
    return re.compile(rf"{prefix}\b{date_format}\b", re.IGNORECASE)


def _calendar_date(year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ParseError(f"Not a calendar date: {day:02d}/{month:02d}/{year}") from exc


def parse_numeric(match: re.Match[str], now: date) -> date:
    return _calendar_date(int(match["y"]), int(match["m"]), int(match["d"]))


def parse_long_form(match: re.Match[str], now: date) -> date:
    month = MONTHS[match["mon"][:3].lower()]
    return _calendar_date(int(match["y"]), month, int(match["d"]))


def subtract_months(day: date, months: int) -> date:
    """Calendar-aware month subtraction, clamping to the target month's length."""
    index = day.year * 12 + (day.month - 1) - months
    year, month0 = divmod(index, 12)
    if year < 1:
        raise ParseError(f"{months} months before {day} is out of range")
    last = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(day.day, last))


def parse_relative(match: re.Match[str], now: date) -> date:
    raw = match["n"].lower()
    amount = NUMBER_WORDS[raw] if raw in NUMBER_WORDS else int(raw)
    unit = match["unit"].lower()

    if unit == "day":
        return now - timedelta(days=amount)
    if unit == "week":
        return now - timedelta(days=amount * 7)
    if unit == "month":
        return subtract_months(now, amount)
    return subtract_months(now, amount * 12)


DATE_MATCHERS: tuple[DateMatcher, ...] = (
    DateMatcher("contact_iso", _build(ISO, contact=True), parse_numeric),
    DateMatcher("contact_uk_numeric", _build(UK_NUMERIC, contact=True), parse_numeric),
    DateMatcher("contact_long_form", _build(LONG_FORM, contact=True), parse_long_form),
    DateMatcher("contact_relative", _build(RELATIVE, contact=True), parse_relative),
    DateMatcher("iso", _build(ISO, contact=False), parse_numeric),
    DateMatcher("uk_numeric", _build(UK_NUMERIC, contact=False), parse_numeric),
    DateMatcher("long_form", _build(LONG_FORM, contact=False), parse_long_form),
    DateMatcher("relative", _build(RELATIVE, contact=False), parse_relative),
)


# ---------------------------------------------------------------------------
# Issue type & vulnerability
# ---------------------------------------------------------------------------

ISSUE_MATCHERS: tuple[IssueMatcher, ...] = (
    IssueMatcher(
        IssueType.DAMP_MOULD,
        re.compile(r"\b(?:damp\w*|mou?ld\w*|condensation|black spots?)", re.IGNORECASE),
    ),
    IssueMatcher(
        IssueType.REPAIRS,
        re.compile(
            r"\b(?:repair\w*|leak\w*|broken|crack\w*|fault\w*|maintenance)",
            re.IGNORECASE,
        ),
    ),
    IssueMatcher(
        IssueType.HEATING,
        re.compile(r"\b(?:heating|boiler\w*|radiator\w*|hot water|cold)\b", re.IGNORECASE),
    ),
)

VULNERABLE_PATTERN = re.compile(
    r"\b(?:child(?:ren)?|bab(?:y|ies)|infants?|kids?|toddlers?|sons?|daughters?)\b",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_reported_date(
    text: str,
    now: date,
    matchers: tuple[DateMatcher, ...] = DATE_MATCHERS,
) -> date | None:
    """Return the first date in ``text`` that parses, in matcher priority order."""
    for matcher in matchers:
        for match in matcher.pattern.finditer(text):
            try:
                found = matcher.parse(match, now)
            except ParseError as exc:
                logger.debug("Skipping %s candidate %r: %s", matcher.name, match[0], exc)
                continue
            logger.debug("Reported date %s from %s: %r", found, matcher.name, match[0])
            return found
    return None


def classify_issue(text: str) -> IssueType:
    for matcher in ISSUE_MATCHERS:
        if matcher.pattern.search(text):
            return matcher.issue_type
    return IssueType.GENERAL


def mentions_vulnerable_occupant(text: str) -> bool:
    return VULNERABLE_PATTERN.search(text) is not None


def extract_timeline(text: str, now: date) -> TimelineFact:
    """
    Derive the TimelineFact for a conversation.

    Args:
        text: Concatenated conversation text (user turns).
        now: Reference date for relative expressions.
    """
    return TimelineFact(
        reported_date=extract_reported_date(text, now),
        issue_type=classify_issue(text),
        children_or_vulnerable_affected=mentions_vulnerable_occupant(text),
    )
