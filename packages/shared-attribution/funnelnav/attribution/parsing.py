"""Date and identifier normalization.

Client exports and outreach exports use incompatible date encodings:

- Clients: ``DD/MM/YYYY`` (day granular)
- Outreach tools: ISO-8601-ish timestamps

Both are normalized to 12:00 UTC on their calendar day so that a
timezone offset can never shift a date across midnight.

Identifiers (invitation codes, Spotify IDs) are pulled out of free-form
URLs by pattern matching.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime
from typing import Any

from funnelnav.attribution.exceptions import DateParseError

SECONDS_PER_DAY = 86400

# Invitation links (invite.*) carry a UUID
UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)
# Public report links (pub.*) carry a trailing slug
REPORT_PATH_PATTERN = re.compile(r"/report/([a-zA-Z0-9_-]+)")

SPOTIFY_ID_PATTERNS = [
    re.compile(r"/artist/([a-zA-Z0-9]+)"),
    re.compile(r"/track/([a-zA-Z0-9]+)"),
    re.compile(r"/album/([a-zA-Z0-9]+)"),
    re.compile(r"spotify:artist:([a-zA-Z0-9]+)"),
    re.compile(r"open\.spotify\.com/artist/([a-zA-Z0-9]+)"),
]

CLIENT_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

# Formats tried after ISO-8601 for channel exports
CHANNEL_DATE_FORMATS = [
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%b %d, %Y",
    "%d %b %Y",
]


def is_blank(value: Any) -> bool:
    """Return True for None, empty strings and NaN (pandas missing values)."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _at_noon_utc(value: date) -> datetime:
    return datetime(value.year, value.month, value.day, 12, 0, 0, tzinfo=UTC)


def _datetime_at_noon_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)
    return _at_noon_utc(value.date())


def parse_client_date(value: Any) -> datetime | None:
    """Parse a client signup date in ``DD/MM/YYYY`` format.

    Args:
        value: Raw signup date. ``date``/``datetime`` objects are accepted
            as-is and only normalized.

    Returns:
        Timezone-aware datetime at 12:00 UTC, or None if the value is empty.

    Raises:
        DateParseError: If the value is present but malformed.

    Examples:
        >>> parse_client_date("15/01/2025")
        datetime.datetime(2025, 1, 15, 12, 0, tzinfo=datetime.timezone.utc)
        >>> parse_client_date("") is None
        True
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return _datetime_at_noon_utc(value)
    if isinstance(value, date):
        return _at_noon_utc(value)

    text = str(value).strip()
    match = CLIENT_DATE_PATTERN.match(text)
    if not match:
        raise DateParseError(f"Invalid client date: {value!r}")

    day, month, year = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, 12, 0, 0, tzinfo=UTC)
    except ValueError as e:
        raise DateParseError(f"Invalid client date: {value!r}") from e


def parse_channel_date(value: Any) -> datetime | None:
    """Parse an outreach/audit timestamp and normalize it to 12:00 UTC.

    Aware timestamps are converted to UTC before taking the calendar day;
    naive timestamps are assumed to be UTC.

    Args:
        value: ISO-8601-ish string, ``datetime`` or ``date``.

    Returns:
        Timezone-aware datetime at 12:00 UTC, or None if the value is empty.

    Raises:
        DateParseError: If the value is present but cannot be parsed.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return _datetime_at_noon_utc(value)
    if isinstance(value, date):
        return _at_noon_utc(value)

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        return _datetime_at_noon_utc(datetime.fromisoformat(text))
    except ValueError:
        pass

    for fmt in CHANNEL_DATE_FORMATS:
        try:
            return _datetime_at_noon_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    raise DateParseError(f"Invalid channel date: {value!r}")


def days_difference(start: datetime, end: datetime) -> int:
    """Return how many days ``end`` is after ``start``, rounded up.

    Ceiling means any positive sub-day gap counts as one day.

    Examples:
        >>> a = datetime(2025, 1, 1, 12, tzinfo=UTC)
        >>> days_difference(a, datetime(2025, 1, 11, 12, tzinfo=UTC))
        10
        >>> days_difference(a, datetime(2024, 12, 22, 12, tzinfo=UTC))
        -10
    """
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def extract_invitation_code(link: str | None) -> str | None:
    """Extract an invitation code from a report link.

    UUID-shaped codes take precedence over ``/report/<code>`` slugs.

    Examples:
        >>> extract_invitation_code("https://invite.example.com/a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d")
        'a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d'
        >>> extract_invitation_code("https://pub.example.com/report/abc_123")
        'abc_123'
    """
    if is_blank(link):
        return None
    link = str(link)

    uuid_match = UUID_PATTERN.search(link)
    if uuid_match:
        return uuid_match.group(0)

    report_match = REPORT_PATH_PATTERN.search(link)
    if report_match:
        return report_match.group(1)

    return None


def extract_spotify_id(url: str | None) -> str | None:
    """Extract a Spotify ID from an artist, track or album URL or URI.

    Examples:
        >>> extract_spotify_id("https://open.spotify.com/artist/4Z8W4fKeB5YxbusRsdQVPb")
        '4Z8W4fKeB5YxbusRsdQVPb'
        >>> extract_spotify_id("spotify:artist:4Z8W4fKeB5YxbusRsdQVPb")
        '4Z8W4fKeB5YxbusRsdQVPb'
    """
    if is_blank(url):
        return None
    url = str(url)

    for pattern in SPOTIFY_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    return None


def normalize_email(value: Any) -> str:
    """Normalize an email address for exact matching."""
    if is_blank(value):
        return ""
    return str(value).strip().lower()


TRUE_FLAGS = frozenset({"true", "t", "yes", "y", "1"})


def parse_flag(value: Any) -> bool:
    """Parse a boolean export field.

    Exports spell flags as booleans, 0/1 or strings such as ``"true"`` and
    ``"no"``. Blank and unrecognized values are False.
    """
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_FLAGS


def parse_amount(value: Any) -> float:
    """Parse a money amount such as ``1200``, ``"1,200"`` or ``"$1,234.50"``.

    Blank, invalid and non-finite values are 0.
    """
    if is_blank(value):
        return 0.0
    if isinstance(value, str):
        value = value.strip().lstrip("$").replace(",", "").strip()
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount
