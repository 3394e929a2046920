"""
Timestamp utilities for HL7 date/time values (the DTM/TS data types).

HL7 writes timestamps as YYYY[MM[DD[HH[MM[SS[.S+]]]]]][+/-ZZZZ]; the
precision is whatever prefix the sender chose.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from hl7_errors import InvalidTimestampError

# Number of digits kept by to_hl7_string
SECONDS = 14
MINUTES = 12
HOURS = 10
DAY = 8

_FULL_FORMAT = "%Y%m%d%H%M%S"

_FORMATS_BY_LENGTH = {
    4: "%Y",
    6: "%Y%m",
    8: "%Y%m%d",
    10: "%Y%m%d%H",
    12: "%Y%m%d%H%M",
    14: "%Y%m%d%H%M%S",
}

_TIMESTAMP_PATTERN = re.compile(r"^(?P<digits>\d+)(?:\.(?P<fraction>\d{1,6}))?(?P<offset>[+-]\d{4})?$")


def to_datetime(value) -> Optional[datetime]:
    """
    Parse an HL7 timestamp into a datetime.

    Accepts a string or any leaf node (its decoded data is used). Returns None
    for empty input; anything else that is not a valid timestamp raises
    InvalidTimestampError.
    """
    if value is not None and not isinstance(value, str):
        value = value.get_data()
    if not value or not value.strip():
        return None

    text = value.strip()
    match = _TIMESTAMP_PATTERN.match(text)
    if not match:
        raise InvalidTimestampError(value, "does not match YYYY[MM[DD[HH[MM[SS[.S]]]]]][+/-ZZZZ]")

    digits = match.group("digits")
    date_format = _FORMATS_BY_LENGTH.get(len(digits))
    if date_format is None:
        raise InvalidTimestampError(value, f"unexpected precision of {len(digits)} digits")
    if match.group("fraction") and len(digits) != SECONDS:
        raise InvalidTimestampError(value, "fractional seconds require full seconds precision")

    try:
        parsed = datetime.strptime(digits, date_format)
    except ValueError as e:
        raise InvalidTimestampError(value, str(e)) from e

    fraction = match.group("fraction")
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction.ljust(6, "0")))

    offset = match.group("offset")
    if offset:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[3:5])
        if hours > 23 or minutes > 59:
            raise InvalidTimestampError(value, f"invalid timezone offset '{offset}'")
        parsed = parsed.replace(tzinfo=timezone(sign * timedelta(hours=hours, minutes=minutes)))
    return parsed


def to_hl7_string(moment: datetime, precision: int = SECONDS) -> str:
    """Format a datetime as an HL7 timestamp, truncated to precision digits (at most 14)."""
    if precision > SECONDS:
        precision = SECONDS
    return moment.strftime(_FULL_FORMAT)[:max(precision, 0)]


def set_timestamp(leaf, moment: datetime, precision: int = SECONDS):
    """Store moment in a leaf node as an HL7 timestamp."""
    leaf.set_data(to_hl7_string(moment, precision))

