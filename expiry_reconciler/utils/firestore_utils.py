import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from google.cloud.firestore_v1._helpers import DatetimeWithNanoseconds

from expiry_reconciler.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Go duration units, in microseconds
_DURATION_UNITS = {
    'ns': 0.001,
    'us': 1,
    'µs': 1,
    'μs': 1,
    'ms': 1000,
    's': 1000 * 1000,
    'm': 60 * 1000 * 1000,
    'h': 60 * 60 * 1000 * 1000,
}

_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def convert_firestore_timestamp(data: Any) -> Optional[datetime]:
    """
    Convert a Firestore timestamp value to an aware UTC datetime.

    Args:
        data: The raw field value read from a document

    Returns:
        The timestamp as a UTC datetime, or None when the value is not a
        timestamp or is unset (datetime.min, or an empty
        protobuf Timestamp)
    """
    if isinstance(data, (DatetimeWithNanoseconds, datetime)):
        if data.replace(tzinfo=None) == datetime.min:
            return None
        converted = to_utc(data)
    elif hasattr(data, 'seconds') and hasattr(data, 'nanos'):
        # Protobuf Timestamp-like object
        if not data.seconds and not data.nanos:
            return None
        converted = EPOCH + timedelta(seconds=data.seconds, microseconds=data.nanos // 1000)
    else:
        if data is not None:
            logger.debug(f"Ignoring non-timestamp expire value: {data!r} (type: {type(data)})")
        return None

    return converted


def parse_duration(text: str) -> timedelta:
    """
    Parse a Go-style duration string such as "90s", "5m" or "1h30m".

    Args:
        text: The duration text

    Returns:
        The duration as a timedelta

    Raises:
        ConfigurationError: If the text is not a valid duration
    """
    if text is None:
        raise ConfigurationError("duration is required")

    original = text
    text = text.strip()
    sign = 1
    if text[:1] in ('-', '+'):
        sign = -1 if text[0] == '-' else 1
        text = text[1:]

    if text == '0':
        return timedelta(0)
    if not text:
        raise ConfigurationError(f"invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ConfigurationError(f"invalid duration {original!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    try:
        duration = timedelta(microseconds=sign * total)
    except OverflowError as e:
        raise ConfigurationError(f"invalid duration {original!r}: out of range") from e

    # timedelta stops at microseconds; Go would keep a few nanoseconds
    if total and not duration:
        raise ConfigurationError(f"duration {original!r} is below microsecond resolution")
    return duration
