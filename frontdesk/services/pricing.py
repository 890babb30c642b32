import math
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from ..errors import ValidationError

CENT = Decimal("0.01")
SECONDS_PER_DAY = 24 * 60 * 60


def to_decimal(value) -> Decimal:
    """Converts a rate to Decimal; floats go through str() to avoid binary artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def count_nights(check_in: date, check_out: date) -> int:
    """Number of nights between two dates (or datetimes), rounded up."""
    if isinstance(check_in, datetime) or isinstance(check_out, datetime):
        check_in, check_out = _as_datetime(check_in), _as_datetime(check_out)
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date.")
    seconds = (check_out - check_in).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def compute_total(nightly_rate, check_in: date, check_out: date) -> Decimal:
    """Total charge for a stay: nights x nightly rate, rounded to cents."""
    rate = to_decimal(nightly_rate)
    if rate < 0:
        raise ValidationError("Nightly rate cannot be negative.")
    nights = count_nights(check_in, check_out)
    return (rate * nights).quantize(CENT, rounding=ROUND_HALF_UP)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)
