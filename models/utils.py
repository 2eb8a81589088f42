"""
Shared value conversion helpers for Freshservice and Azure DevOps field data.
"""

import re
from datetime import datetime, timezone
from typing import Any, List, Optional
from urllib.parse import quote

INVISIBLE_SPACES = re.compile("[\u00A0\u1680\u180E\u2000-\u200D\u202F\u205F\u3000\uFEFF]")
SMART_QUOTES = re.compile("[\u201C\u201D\u2018\u2019]")


def stringify_multi_select(values: List[Any]) -> str:
    """
    Join a Freshservice multi-select value into one display string.

    Args:
        values (list): Selected options

    Returns:
        str: "" for no options, the option itself for one, "a, b" otherwise
    """
    if not values:
        return ""

    if len(values) == 1:
        return str(values[0]) if values[0] is not None else ""

    return ", ".join(str(value) for value in values)


def split_multi_select(value: Any) -> List[str]:
    """Split a comma separated Azure DevOps value into trimmed tokens; lists are trimmed item by item."""
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value]
    return [token.strip() for token in str(value).split(",")]


def convert_date_to_iso(date_str: str) -> str:
    """
    Convert an Azure DevOps date to the ISO-8601 instant Freshservice expects.

    Values without '/' are assumed to be normalized already and are returned
    unchanged. Anything else is read as MM/DD/YYYY at UTC midnight.

    Args:
        date_str (str): Date such as "10/06/2025"

    Returns:
        str: ISO instant such as "2025-10-06T00:00:00.000Z"

    Raises:
        ValueError: If the value contains '/' but is not MM/DD/YYYY
    """
    if "/" not in date_str:
        return date_str

    parts = date_str.strip().split("/")
    if len(parts) != 3:
        raise ValueError(f"Invalid MM/DD/YYYY date: '{date_str}'")

    month, day, year = (int(part) for part in parts)
    parsed = datetime(year, month, day, tzinfo=timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def sanitize_filter_query(raw: Optional[str]) -> str:
    """
    Normalize a Freshservice filter expression copied from a spreadsheet.

    Invisible spaces become plain spaces, smart quotes become straight single
    quotes and whitespace runs collapse to one space.
    """
    if not raw:
        return ""

    query = INVISIBLE_SPACES.sub(" ", raw)
    query = SMART_QUOTES.sub("'", query)
    return re.sub(r"\s+", " ", query).strip()


def encode_filter_query(raw: Optional[str]) -> str:
    """
    Sanitize, wrap in double quotes and percent-encode a filter expression.

    Freshservice requires the quoted form. Spaces are sent as %20 and
    apostrophes as %27.
    """
    wrapped = f'"{sanitize_filter_query(raw)}"'
    return quote(wrapped, safe="-_.!~*()")


def formatted_date(moment: Optional[datetime] = None) -> str:
    """Timestamp used in report file names, e.g. 2025-10-06_14-05."""
    moment = moment or datetime.now()
    return moment.strftime("%Y-%m-%d_%H-%M")


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Human readable UTC time, e.g. '2025-Oct-06 02:05 PM (UTC)'."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%b-%d %I:%M %p (UTC)")
