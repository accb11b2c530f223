"""Parsing of event times given as seconds into integer microseconds."""

import math
from decimal import Decimal


def _plain_decimal(number: float) -> str:
    return format(Decimal(repr(number)), "f")


def parse_time(value: object) -> int:
    """Convert a JSON number of seconds to microseconds, truncating past 6 decimals."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("expected number")

    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"invalid time format: {value}")

    left, sep, right = _plain_decimal(number).partition(".")
    if not left.isdigit():
        raise ValueError(f"invalid time format: {value}")

    secs = int(left)
    if not sep:
        return secs * 1_000_000

    digits = right.strip()[:6].ljust(6, "0")
    if not digits.isdigit():
        raise ValueError(f"invalid time format: {value}")

    return secs * 1_000_000 + int(digits)