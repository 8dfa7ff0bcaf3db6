"""Video position strings → seconds.

Clients report positions as ``m:ss`` / ``mm:ss``; stored rows may also
hold ``h:mm:ss``.  Two conversions exist and are intentionally different:

  strict_seconds:   used to decide whether a position moved forward.
                    A three-group value is read as ``x:mm:ss`` and the
                    leading group is dropped, so ``01:05:30`` compares as
                    5m30s.  Lesson videos are assumed to stay under 100
                    minutes.

  extended_seconds: used to measure study time between two positions.
                    The leading group of a three-group value counts as
                    hours, so ``1:05:30`` is 3930 seconds.

Neither raises on malformed input.
"""

from __future__ import annotations

import re

_MINUTES_SECONDS = re.compile(r"(\d{1,2}):(\d{2})", re.ASCII)
_THREE_GROUPS = re.compile(r"(\d+):(\d+):(\d+)", re.ASCII)


def strict_seconds(value: str) -> int:
    """Seconds for the advance comparison; 0 when unparseable."""
    match = _MINUTES_SECONDS.fullmatch(value)
    if match:
        minutes, seconds = (int(g) for g in match.groups())
        return minutes * 60 + seconds

    match = _THREE_GROUPS.search(value)
    if match:
        _, minutes, seconds = (int(g) for g in match.groups())
        return minutes * 60 + seconds

    return 0


def extended_seconds(value: str) -> int | None:
    """Seconds for study-time deltas; None when unparseable."""
    short = _MINUTES_SECONDS.fullmatch(value)
    if short:
        value = f"00:{short[1]}:{short[2]}"
    match = _THREE_GROUPS.search(value)
    if match is None:
        return None
    hours, minutes, seconds = (int(g) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def video_position(value: str) -> str:
    """Compact audit form of a position: ``05:30`` → ``5.30``, ``00:00`` → ``.00``."""
    return value.replace(":", ".").lstrip("0") or "0"
