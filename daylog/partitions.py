"""Partition naming: date parsing and ``log-YYYY-MM-DD.txt`` resolution.

Two parsers are deliberately kept apart:

- ``parse_date_lenient`` backs the write path and accepts any reasonably
  common date or datetime string (ISO-8601, RFC 2822, a few calendar
  layouts). Offset-aware values are converted to local time before the
  calendar day is taken.
- ``parse_date_strict`` backs read, download and delete, and only accepts
  an exact, calendar-valid ``YYYY-MM-DD``.
"""

import re
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from pathlib import Path

from daylog.errors import ValidationError

FILENAME_PREFIX = "log-"
FILENAME_SUFFIX = ".txt"
DATE_FORMAT = "%Y-%m-%d"

STRICT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
FILENAME_RE = re.compile(r"^log-(\d{4}-\d{2}-\d{2})\.txt$")

LENIENT_FORMATS = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%Y%m%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
)

INVALID_STRICT = "Invalid date format. Use YYYY-MM-DD"


def parse_date_lenient(value) -> date:
    """Parse a write-path date; raises ValidationError when nothing fits."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str) and value.strip():
        parsed = _parse_text(value.strip())
    else:
        parsed = None

    if parsed is None:
        raise ValidationError("Invalid date", f"Could not parse date {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def _parse_text(text: str) -> datetime | None:
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    for fmt in LENIENT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def parse_date_strict(value) -> date:
    """Parse an exact ``YYYY-MM-DD``; raises ValidationError otherwise."""
    if not isinstance(value, str) or not STRICT_DATE_RE.match(value):
        raise ValidationError(INVALID_STRICT)
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(INVALID_STRICT) from None


def partition_id(day: date) -> str:
    return day.strftime(DATE_FORMAT)


def resolve(date_input=None, now: datetime | None = None) -> str:
    """Map an optional write-path date to its partition id."""
    if date_input is None or date_input == "":
        return partition_id((now or datetime.now()).date())
    return partition_id(parse_date_lenient(date_input))


def partition_filename(pid: str) -> str:
    return f"{FILENAME_PREFIX}{pid}{FILENAME_SUFFIX}"


def partition_path(root, pid: str) -> Path:
    return Path(root) / partition_filename(pid)


def is_candidate(name: str) -> bool:
    """True for anything that looks like a partition file by prefix/suffix."""
    return name.startswith(FILENAME_PREFIX) and name.endswith(FILENAME_SUFFIX)


def parse_partition_filename(name: str) -> date | None:
    """Return the partition date for a conforming filename, else None."""
    match = FILENAME_RE.match(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), DATE_FORMAT).date()
    except ValueError:
        return None
