# flatconf/durations.py
"""
flatconf.durations
------------------

Duration strings such as ``"300ms"``, ``"1m"`` or ``"1h30m"``.

A duration is an optionally signed sequence of decimal numbers, each with an
optional fraction and a unit suffix: ``ns``, ``us`` (or ``µs``), ``ms``,
``s``, ``m``, ``h``. The bare string ``"0"`` is also accepted.
"""

import re
from datetime import timedelta

# Microseconds per unit; timedelta cannot represent anything finer.
_UNITS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration string into a ``timedelta``.

    Examples:
        >>> parse_duration("1m")
        datetime.timedelta(seconds=60)
        >>> parse_duration("1h30m")
        datetime.timedelta(seconds=5400)

    Raises:
        ValueError: If ``text`` is not a valid duration.
    """
    s = text.strip()
    sign = 1
    if s[:1] in ("-", "+"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise ValueError(f"Invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if not match:
            raise ValueError(f"Invalid duration {text!r}")
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        pos = match.end()
    return timedelta(microseconds=sign * total)


def format_duration(value: timedelta) -> str:
    """Format a ``timedelta`` so that ``parse_duration`` reads it back.

    Examples:
        >>> format_duration(timedelta(minutes=1))
        '1m0s'
        >>> format_duration(timedelta(milliseconds=300))
        '300ms'
    """
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000_000:
        if micros % 1_000 == 0:
            return f"{sign}{micros // 1_000}ms"
        return f"{sign}{micros}us"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    whole, fraction = divmod(rest, 1_000_000)
    seconds = str(whole)
    if fraction:
        seconds += f".{fraction:06d}".rstrip("0")
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
