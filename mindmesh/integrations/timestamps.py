"""Timestamp parsing for external API payloads.

MindMesh stores naive UTC datetimes; provider payloads carry RFC 3339 strings
with offsets, or bare dates.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 / RFC 3339 string into a naive UTC datetime.

    Returns None for empty input. Naive inputs are assumed to already be UTC.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    if not value:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_rfc3339(value: datetime) -> str:
    """Format a naive UTC datetime for Google APIs."""
    return value.replace(microsecond=0).isoformat() + "Z"
