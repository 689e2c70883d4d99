"""ISO-8601 duration to human-readable time conversion."""

from __future__ import annotations

import re

ISO_DURATION_RE = re.compile(
    r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)


def convert_duration(value: str | None) -> str:
    """Convert `PT1H30M` style durations to `1 hr 30 min`.

    Days fold into hours and whole minutes of seconds fold into minutes.
    Values that are not ISO-8601 durations are returned stripped, so
    free-text times scraped from markup ("25 minutes") pass through as-is.
    """

    if not value:
        return ""
    text = str(value).strip()
    match = ISO_DURATION_RE.match(text)
    if match is None or not any(match.groups()):
        return text

    days, hours, minutes, seconds = match.groups()
    total_seconds = (
        int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
        + int(float(seconds or 0))
    )
    if total_seconds < 60:
        return f"{total_seconds} sec" if total_seconds else "0 min"

    hours_part, minutes_part = divmod(total_seconds // 60, 60)
    parts: list[str] = []
    if hours_part:
        parts.append(f"{hours_part} hr")
    if minutes_part:
        parts.append(f"{minutes_part} min")
    return " ".join(parts)


__all__ = ["convert_duration"]
