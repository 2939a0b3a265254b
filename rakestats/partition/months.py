"""Utilities for mapping report date ranges onto monthly hand partitions.

Hand documents are stored one partition per calendar month, named
``<prefix><YYYY><MM>`` (``game_202506`` for June 2025).  The helpers in this
module resolve which partitions a report window touches and provide lenient
timestamp parsing for the ``st``/``et`` fields of raw documents.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, List, Optional, Tuple

from dateutil import parser

from rakestats.config import DEFAULT_PARTITION_PREFIX

logger = logging.getLogger(__name__)

# End of an inclusive end date, matching the store's millisecond precision
END_OF_DAY = time(23, 59, 59, 999000)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a document timestamp into a timezone-aware ``datetime`` in UTC.

    Accepts ``datetime`` objects, Unix seconds, ISO/free-form strings and the
    Mongo extended-JSON form ``{"$date": ...}``.  Returns ``None`` when the
    value is missing or cannot be parsed.
    """

    if value is None:
        return None

    if isinstance(value, dict) and "$date" in value:
        inner = value["$date"]
        if isinstance(inner, dict) and "$numberLong" in inner:
            # extended JSON v2 canonical form: milliseconds since epoch
            try:
                return datetime.fromtimestamp(int(inner["$numberLong"]) / 1000, tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                return None
        return parse_timestamp(inner)

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        # Interpret numeric values as Unix timestamps
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None

    try:
        dt = parser.isoparse(text)
    except (ValueError, TypeError):
        try:
            dt = parser.parse(text)
        except (ValueError, TypeError, OverflowError):
            return None

    return _as_utc(dt)


def partition_name(year: int, month: int, prefix: str = DEFAULT_PARTITION_PREFIX) -> str:
    """Return the partition identifier for a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    return f"{prefix}{year:04d}{month:02d}"


def partitions_for_range(
    start: datetime,
    end: datetime,
    prefix: str = DEFAULT_PARTITION_PREFIX,
) -> List[str]:
    """
    List every monthly partition intersecting ``[start, end]``.

    Both the partition holding *start* and the one holding *end* are
    included.  An inverted range yields an empty list.

    Args:
        start: First instant of the report window
        end: Last instant of the report window
        prefix: Partition name prefix

    Returns:
        Partition names in chronological order
    """
    if start > end:
        logger.debug(f"Empty partition range: {start.isoformat()} > {end.isoformat()}")
        return []

    names = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        names.append(partition_name(year, month, prefix))
        month += 1
        if month > 12:
            year, month = year + 1, 1

    return names


def report_window(start_day: date, end_day: date) -> Tuple[datetime, datetime]:
    """Map inclusive calendar dates to the UTC instants bounding the query.

    The start is midnight of *start_day*; the end is the last millisecond of
    *end_day*, used as the exclusive upper bound of the store query.
    """
    start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_day, END_OF_DAY, tzinfo=timezone.utc)
    return start, end


def parse_report_date(text: str) -> date:
    """Parse a ``YYYY-MM-DD`` command-line date."""
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid date {text!r}, expected YYYY-MM-DD") from e
