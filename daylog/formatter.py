"""Log line formatter: renders one entry as a single partition line."""

import re
from datetime import datetime

VALID_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR", "FATAL")
DEFAULT_LEVEL = "INFO"
DEFAULT_COMPONENT = "Application"
DEFAULT_PLATFORM = "Nodejs"

TIMESTAMP_FORMAT = "%d/%m/%Y %I:%M:%S %p"

# lone surrogates cannot be encoded as UTF-8
SURROGATE_RE = re.compile("[\ud800-\udfff]")


def normalize_level(level) -> str:
    """Uppercase a level name; anything outside VALID_LEVELS becomes INFO."""
    if isinstance(level, str) and level.upper() in VALID_LEVELS:
        return level.upper()
    return DEFAULT_LEVEL


def format_timestamp(now: datetime | None = None) -> str:
    """Render ``DD/MM/YYYY hh:mm:ss AM/PM`` in local time."""
    now = now or datetime.now()
    return now.strftime(TIMESTAMP_FORMAT)


def escape_message(message: str) -> str:
    # one entry must stay one line on read
    return message.replace("\r\n", "\\n").replace("\n", "\\n").replace("\r", "\\r")


def format_line(message: str, level=None, component: str | None = None,
                platform: str | None = None, now: datetime | None = None) -> str:
    """Build ``[platform] - <timestamp>    [LEVEL]  [component] message\\n``.

    Unencodable surrogates anywhere in the line are replaced with U+FFFD.
    """
    line = (
        f"[{platform or DEFAULT_PLATFORM}] - {format_timestamp(now)}    "
        f"[{normalize_level(level)}]  [{component or DEFAULT_COMPONENT}] "
        f"{escape_message(message)}\n"
    )
    return SURROGATE_RE.sub("\ufffd", line)
