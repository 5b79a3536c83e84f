"""
Timing cells from a recipe sheet.

Two notations are understood:

* relative offsets from the previous step: ``+16h``, ``+ 30 min``, ``+2 hours``
* absolute clock times: ``7:30``, ``16:00`` (minutes from midnight)

Anything else is treated as "no wait".
"""

import re
from typing import Tuple

from ..models.recipe import RecipeStep

MINUTE_MILLIS = 60 * 1000
HOUR_MILLIS = 60 * MINUTE_MILLIS

RELATIVE_PATTERN = re.compile(
    r"^\+\s*(\d+)\s*(h|hr|hour|hours|m|min|minute|minutes)$", re.IGNORECASE
)
ABSOLUTE_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_duration(raw: str, previous_cumulative_millis: int = 0) -> int:
    """Return the wait in milliseconds before the step described by ``raw``.

    ``previous_cumulative_millis`` is the recipe time elapsed up to the
    previous step. Absolute times are resolved against it, so the first
    step of a recipe (cumulative 0) always starts immediately.
    """
    text = (raw or "").strip()
    if not text:
        return 0

    match = RELATIVE_PATTERN.match(text)
    if match:
        value = int(match.group(1))
        unit = match.group(2).lower()
        if unit.startswith("m"):
            return value * MINUTE_MILLIS
        return value * HOUR_MILLIS

    match = ABSOLUTE_PATTERN.match(text)
    if match:
        if previous_cumulative_millis == 0:
            return 0
        hours, minutes = int(match.group(1)), int(match.group(2))
        target = (hours * 60 + minutes) * MINUTE_MILLIS
        # Times already behind the elapsed recipe time collapse to no wait.
        return max(0, target - previous_cumulative_millis)

    return 0


def parse_step(
    raw: str, title: str, description: str, previous_cumulative_millis: int
) -> Tuple[RecipeStep, int]:
    """Build a step and return it with the running total for the next row."""
    duration = parse_duration(raw, previous_cumulative_millis)
    step = RecipeStep(
        start_time=raw,
        title=title,
        description=description,
        duration_millis=duration,
    )
    return step, previous_cumulative_millis + duration
