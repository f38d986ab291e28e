"""
Parse short duration strings such as "15m" or "7d" into timedeltas.
"""
from __future__ import annotations

import re
from datetime import timedelta

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str | int | timedelta) -> timedelta:
    """
    Accepts "<int><unit>" with unit s/m/h/d, a bare number of seconds,
    or a timedelta (returned unchanged). Raises ValueError otherwise.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    if isinstance(value, str) and value.strip().isdigit():
        return timedelta(seconds=int(value))
    match = _DURATION_RE.match(value or "") if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid duration: {value!r} (expected e.g. 30s, 15m, 12h, 7d)")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})
