"""Parameter extraction helpers for free-text admin commands.

All helpers are pure and total: they never raise, and a value that cannot be
found is returned as None. Date helpers take an optional ``today`` so results
are deterministic under test.
"""

import re
from datetime import date, datetime, timedelta

MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
MONTHS.update({name[:3]: number for name, number in list(MONTHS.items())})
MONTHS["sept"] = 9

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PRIORITIES = ["urgent", "high", "medium", "low"]
JOB_TYPES = ["cleaning", "maintenance", "inspection", "setup", "repair"]
EVENT_TYPES = ["booking", "cleaning", "maintenance", "inspection", "meeting"]
NOTIFICATION_TYPES = ["urgent", "reminder", "update", "assignment", "general"]

DEFAULT_STAY_NIGHTS = 7

QUOTES = "'\"“”"
_VALUE = rf"[{QUOTES}]?([^{QUOTES}\n,]+?)[{QUOTES}]?"
# Words that end a free-form value such as a property or guest name.
VALUE_STOP = r"(?=\s+(?:on|for|with|from|to|at|check[- ]?in|check[- ]?out|email|guests?|notes?|\d+\s+guests?)\b|[,.;!?\n]|$)"

PROPERTY_PATTERNS = [
    re.compile(rf"\bproperty\s+{_VALUE}{VALUE_STOP}", re.IGNORECASE),
    re.compile(rf"\bat\s+(?!\d{{1,2}}(?::\d{{2}})?\s*(?:am|pm)?\b){_VALUE}{VALUE_STOP}", re.IGNORECASE),
    re.compile(rf"[{QUOTES}]([^{QUOTES}\n,]+)[{QUOTES}]\s+(?:property|house|villa)\b", re.IGNORECASE),
]
GUEST_PATTERNS = [
    re.compile(rf"\b(?:guest|customer)\s+(?:name\s+)?(?!count\b|check[- ]?(?:in|out)\b){_VALUE}{VALUE_STOP}", re.IGNORECASE),
    re.compile(rf"[{QUOTES}]([^{QUOTES}\n,]+)[{QUOTES}]\s+(?:booking|reservation)\b", re.IGNORECASE),
]
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
GUEST_COUNT_PATTERN = re.compile(r"(\d+)\s+guests?", re.IGNORECASE)
TIME_PATTERN = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b|\b(\d{1,2}):(\d{2})\b", re.IGNORECASE)
DURATION_PATTERNS = [
    (re.compile(r"(\d+)\s*(?:hours?|hrs?)\b", re.IGNORECASE), 60),
    (re.compile(r"(\d+)\s*(?:minutes?|mins?)\b", re.IGNORECASE), 1),
]
NOTES_PATTERNS = [
    re.compile(
        r"(?:special|additional|extra)\s+(?:requests?|requirements?|notes?)[:\s]+([^.!?\n]+)",
        re.IGNORECASE,
    ),
    re.compile(r"\bnotes?[:\s]+([^.!?\n]+)", re.IGNORECASE),
]

DATE_TOKEN = (
    r"\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}/\d{1,2}/\d{4}"
    r"|(?:next\s+)?(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
    r"|today|tomorrow"
    r"|[a-zA-Z]{3,9}\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?"
    r"|\d{1,2}(?:st|nd|rd|th)?\s+[a-zA-Z]{3,9}(?:\s+\d{4})?"
)
CHECK_IN_PATTERN = re.compile(
    rf"check[- ]?in\s*(?:date)?[:\s]+[{QUOTES}]?({DATE_TOKEN})", re.IGNORECASE
)
CHECK_OUT_PATTERN = re.compile(
    rf"check[- ]?out\s*(?:date)?[:\s]+[{QUOTES}]?({DATE_TOKEN})", re.IGNORECASE
)
SINGLE_DATE_PATTERN = re.compile(rf"\b(?:on|for|to)\s+({DATE_TOKEN})\b", re.IGNORECASE)
ANY_DATE_PATTERN = re.compile(rf"\b({DATE_TOKEN})\b", re.IGNORECASE)

_ORDINAL = re.compile(r"(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().strip(QUOTES).strip()
    return value or None


def _first_match(patterns: list[re.Pattern], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = _clean(match.group(1))
            if value:
                return value
    return None


def _roll_forward(month: int, day: int, today: date) -> date | None:
    try:
        candidate = date(today.year, month, day)
    except ValueError:
        return None
    if candidate < today:
        try:
            candidate = date(today.year + 1, month, day)
        except ValueError:
            return None
    return candidate


def parse_date(value: str | None, today: date | None = None) -> date | None:
    """Parse a date expression into a date.

    Accepts ``YYYY-MM-DD`` (optionally followed by a time), ``M/D/YYYY``,
    ``Month D[, YYYY]``, ``D Month [YYYY]``, ``today``, ``tomorrow`` and
    weekday names (``friday``, ``next friday``; always the next occurrence).
    Month/day without a year means the next occurrence on or after today.

    Returns:
        The parsed date, or None when the expression is not recognised.
    """
    if not value or not isinstance(value, str):
        return None

    today = today or date.today()
    text = _ORDINAL.sub(r"\1", value.strip().lower().rstrip("."))
    text = re.sub(r"\s+", " ", text)

    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)

    weekday = text.removeprefix("next ")
    if weekday in WEEKDAYS:
        delta = (WEEKDAYS.index(weekday) - today.weekday()) % 7 or 7
        return today + timedelta(days=delta)

    iso = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})(?:[t ][0-9:.]+(?:z|[+-]\d{2}:?\d{2})?)?", text)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            return None

    us = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{4})", text)
    if us:
        try:
            return date(int(us.group(3)), int(us.group(1)), int(us.group(2)))
        except ValueError:
            return None

    month_first = re.fullmatch(r"([a-z]+)\.? (\d{1,2})(?:,? (\d{4}))?", text)
    day_first = re.fullmatch(r"(\d{1,2}) ([a-z]+)\.?(?: (\d{4}))?", text)
    if month_first:
        month_name, day, year = month_first.group(1), month_first.group(2), month_first.group(3)
    elif day_first:
        day, month_name, year = day_first.group(1), day_first.group(2), day_first.group(3)
    else:
        return None

    month = MONTHS.get(month_name)
    if month is None:
        return None
    if year is None:
        return _roll_forward(month, int(day), today)
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def normalize_date(value: str, today: date | None = None) -> str:
    """Normalize a date expression to ``YYYY-MM-DD``.

    Unrecognised input is returned unchanged.
    """
    parsed = parse_date(value, today=today)
    if parsed is None:
        return value
    return parsed.isoformat()


def default_check_in(today: date | None = None) -> str:
    """Default check-in date: tomorrow."""
    return ((today or date.today()) + timedelta(days=1)).isoformat()


def default_check_out(check_in: str | None = None, today: date | None = None) -> str:
    """Default check-out date: a week after check-in (or after tomorrow)."""
    start = parse_date(check_in, today=today) if check_in else None
    if start is None:
        start = (today or date.today()) + timedelta(days=1)
    return (start + timedelta(days=DEFAULT_STAY_NIGHTS)).isoformat()


def extract_dates(text: str, today: date | None = None) -> dict[str, str]:
    """Extract check-in, check-out and single dates from text.

    Returns:
        Dictionary with any of ``check_in``, ``check_out`` and ``single``,
        each normalized to ``YYYY-MM-DD``. Phrases that only look like dates
        (``to job 42``) are skipped.
    """
    result = {}
    for key, pattern in (
        ("check_in", CHECK_IN_PATTERN),
        ("check_out", CHECK_OUT_PATTERN),
        ("single", SINGLE_DATE_PATTERN),
    ):
        for match in pattern.finditer(text):
            parsed = parse_date(match.group(1), today=today)
            if parsed is not None:
                result[key] = parsed.isoformat()
                break
    return result


def find_date(text: str, today: date | None = None) -> str | None:
    """Return the first parseable date anywhere in text, as ``YYYY-MM-DD``."""
    for match in ANY_DATE_PATTERN.finditer(text):
        parsed = parse_date(match.group(1), today=today)
        if parsed is not None:
            return parsed.isoformat()
    return None


def extract_property_name(text: str) -> str | None:
    """Extract a property name (``property X``, ``at X``, ``"X" villa``)."""
    return _first_match(PROPERTY_PATTERNS, text)


def extract_guest_name(text: str) -> str | None:
    """Extract a guest name (``guest X``, ``customer X``, ``"X" booking``)."""
    return _first_match(GUEST_PATTERNS, text)


def extract_email(text: str) -> str | None:
    match = EMAIL_PATTERN.search(text)
    return match.group(1) if match else None


def extract_guest_count(text: str) -> int | None:
    match = GUEST_COUNT_PATTERN.search(text)
    return int(match.group(1)) if match else None


def _first_keyword(text: str, keywords: list[str]) -> str | None:
    lowered = text.lower()
    for keyword in keywords:
        if re.search(rf"\b{keyword}\b", lowered):
            return keyword
    return None


def extract_priority(text: str) -> str | None:
    return _first_keyword(text, PRIORITIES)


def extract_job_type(text: str) -> str | None:
    return _first_keyword(text, JOB_TYPES)


def extract_event_type(text: str) -> str | None:
    return _first_keyword(text, EVENT_TYPES)


def extract_notification_type(text: str) -> str | None:
    return _first_keyword(text, NOTIFICATION_TYPES)


def extract_time(text: str) -> str | None:
    """Extract a time of day as 24-hour ``HH:MM`` (``2pm`` -> ``14:00``)."""
    match = TIME_PATTERN.search(text)
    if not match:
        return None

    if match.group(3):
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3).lower()
        if hour < 1 or hour > 12:
            return None
        if meridiem == "pm" and hour != 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0
    else:
        hour = int(match.group(4))
        minute = int(match.group(5))

    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def extract_duration(text: str) -> int | None:
    """Extract a duration in minutes (``2 hours`` -> 120, ``45 min`` -> 45)."""
    for pattern, multiplier in DURATION_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1)) * multiplier
    return None


def extract_notes(text: str) -> str | None:
    """Extract free-form notes or special requests."""
    return _first_match(NOTES_PATTERNS, text)


def email_for_guest(guest_name: str) -> str:
    """Placeholder email address derived from a guest name."""
    local = re.sub(r"[^a-z0-9.]+", ".", guest_name.lower()).strip(".") or "guest"
    return f"{local}@example.com"


def is_past(value: str, today: date | None = None) -> bool:
    """Whether a date string falls strictly before today. Unparseable is not past."""
    parsed = parse_date(value, today=today)
    if parsed is None:
        return False
    return parsed < (today or date.today())


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp, returning None for anything else."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
