from __future__ import annotations

import re
from datetime import datetime, tzinfo

from dateutil import tz

from ..errors import FieldParseError


# e.g. "Tue 29/09/2015 07:47" (weekday, day/month/year, 24-hour clock)
PORTAL_TIMESTAMP_FORMAT = "%a %d/%m/%Y %H:%M"
DEFAULT_ZONE_NAME = "Australia/Sydney"

_DECIMAL_RE = re.compile(r"[-+]?[0-9]+")
# strptime alone would also take "Tue 9/7/2014 7:49"
_TIMESTAMP_SHAPE_RE = re.compile(r"[A-Za-z]{3} [0-9]{2}/[0-9]{2}/[0-9]{4} [0-9]{2}:[0-9]{2}")


def load_zone(name: str = DEFAULT_ZONE_NAME) -> tzinfo:
    """
    Resolve an IANA zone name once; callers keep the result and pass it to `parse_portal_timestamp`.
    """
    zone = tz.gettz(name) if name else None
    if zone is None:
        raise ValueError(f"unknown time zone {name!r}")
    return zone


def parse_portal_timestamp(value: str, zone: tzinfo) -> datetime:
    """
    Parse a transaction date/time cell as wall-clock time in `zone`.

    The caller's own local zone never matters here.
    """
    s = " ".join((value or "").split())
    msg = f"time {value!r} does not match {PORTAL_TIMESTAMP_FORMAT!r} (e.g. 'Tue 29/09/2015 07:47')"
    if not _TIMESTAMP_SHAPE_RE.fullmatch(s):
        raise FieldParseError(msg)
    try:
        naive = datetime.strptime(s, PORTAL_TIMESTAMP_FORMAT)
    except ValueError as e:
        raise FieldParseError(msg) from e
    return naive.replace(tzinfo=zone)


def parse_decimal(value: str) -> int:
    s = (value or "").strip()
    if not _DECIMAL_RE.fullmatch(s):
        raise FieldParseError(f"{value!r} is not a decimal integer")
    return int(s)
