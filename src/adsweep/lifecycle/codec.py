"""Inactive-since marker written into descriptions of disabled accounts.

When an account is disabled its description is rewritten as::

    INACTIVE 9/1/2020 <previous description>

A later run reads the date back to decide between ``Wait`` and ``Remove``.
Decoding never raises; callers check ``DecodedDate.ok``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import NamedTuple, Optional

INACTIVE_MARKER = "INACTIVE"

_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")


class DecodedDate(NamedTuple):
    """Result of reading an inactive-since date from a description."""

    value: Optional[date]
    ok: bool


_FAILED = DecodedDate(None, False)


def format_marker_date(value: date) -> str:
    """Format a date as ``M/d/yyyy`` without zero padding."""
    return f"{value.month}/{value.day}/{value.year}"


def encode_disabled_description(prior_description: str | None, disable_date: date) -> str:
    """Prefix a description with the inactive-since marker.

    Args:
        prior_description: Description present before the account was disabled.
        disable_date: Day the account is being disabled.

    Returns:
        str: ``"INACTIVE <M/d/yyyy> <prior_description>"``.
    """
    if isinstance(disable_date, datetime):
        disable_date = disable_date.date()
    encoded = f"{INACTIVE_MARKER} {format_marker_date(disable_date)} {prior_description or ''}"
    return encoded.rstrip()


def decode_inactive_date(description: str | None) -> DecodedDate:
    """Read the inactive-since date from a description.

    The description must start with the marker as a separate word; the first
    whitespace-separated token after it is parsed as a date.

    Args:
        description: Account description, possibly empty.

    Returns:
        DecodedDate: ``(date, True)`` on success, ``(None, False)`` otherwise.
    """
    if not description:
        return _FAILED
    text = description.lstrip()
    if not text.startswith(INACTIVE_MARKER):
        return _FAILED
    rest = text[len(INACTIVE_MARKER) :]
    if rest and not rest[0].isspace():
        return _FAILED
    tokens = rest.split()
    if not tokens:
        return _FAILED
    token = tokens[0]
    for fmt in _DATE_FORMATS:
        try:
            return DecodedDate(datetime.strptime(token, fmt).date(), True)
        except ValueError:
            continue
    return _FAILED


__all__ = [
    "INACTIVE_MARKER",
    "DecodedDate",
    "format_marker_date",
    "encode_disabled_description",
    "decode_inactive_date",
]
