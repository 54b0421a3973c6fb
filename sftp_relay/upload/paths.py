"""Destination path template expansion."""

from __future__ import annotations

import random
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

_PLACEHOLDER_RE = re.compile(r"{([^}]+)}")
# Quoted literals, or runs of the same letter (e.g. "yyyy", "HH", "SSS").
_DATE_TOKEN_RE = re.compile(r"'([^']*)'|(([A-Za-z])\3*)")

_DATE_TOKENS: Dict[str, Callable[[datetime], str]] = {
    "yyyy": lambda dt: f"{dt.year:04d}",
    "yy": lambda dt: f"{dt.year % 100:02d}",
    "y": lambda dt: str(dt.year),
    "LLLL": lambda dt: dt.strftime("%B"),
    "LLL": lambda dt: dt.strftime("%b"),
    "LL": lambda dt: f"{dt.month:02d}",
    "L": lambda dt: str(dt.month),
    "MMMM": lambda dt: dt.strftime("%B"),
    "MMM": lambda dt: dt.strftime("%b"),
    "MM": lambda dt: f"{dt.month:02d}",
    "M": lambda dt: str(dt.month),
    "dd": lambda dt: f"{dt.day:02d}",
    "d": lambda dt: str(dt.day),
    "HH": lambda dt: f"{dt.hour:02d}",
    "H": lambda dt: str(dt.hour),
    "hh": lambda dt: f"{(dt.hour % 12) or 12:02d}",
    "h": lambda dt: str((dt.hour % 12) or 12),
    "mm": lambda dt: f"{dt.minute:02d}",
    "m": lambda dt: str(dt.minute),
    "ss": lambda dt: f"{dt.second:02d}",
    "s": lambda dt: str(dt.second),
    "SSS": lambda dt: f"{dt.microsecond // 1000:03d}",
    "S": lambda dt: str(dt.microsecond // 1000),
    "a": lambda dt: "AM" if dt.hour < 12 else "PM",
    "X": lambda dt: str(int(dt.timestamp())),
    "x": lambda dt: str(int(dt.timestamp() * 1000)),
}


def _random_digits(rng: random.Random, width: int) -> str:
    return str(rng.randrange(10**width)).zfill(width)


MACROS: Dict[str, Callable[[random.Random], str]] = {
    "random_2": lambda rng: _random_digits(rng, 2),
    "random_3": lambda rng: _random_digits(rng, 3),
}


def format_datetime(pattern: str, moment: datetime) -> str:
    """Render ``moment`` using Luxon-style format tokens.

    Unknown letter runs are emitted verbatim, as is text wrapped in single quotes.
    """

    def _render(match: re.Match[str]) -> str:
        quoted, run = match.group(1), match.group(2)
        if quoted is not None:
            return quoted
        formatter = _DATE_TOKENS.get(run)
        return formatter(moment) if formatter else run

    return _DATE_TOKEN_RE.sub(_render, pattern)


def build_path(
    spec: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Expand ``{token}`` placeholders in ``spec``.

    Each token is looked up in ``params`` first, then in ``MACROS``, and is
    otherwise treated as a UTC date/time pattern.
    """

    params = params or {}
    rng = rng or random.Random()
    moment = now or datetime.now(tz=timezone.utc)

    def _expand(match: re.Match[str]) -> str:
        key = match.group(1)
        if params.get(key) is not None:
            return str(params[key])
        macro = MACROS.get(key)
        if macro is not None:
            return macro(rng)
        return format_datetime(key, moment)

    return _PLACEHOLDER_RE.sub(_expand, spec)
