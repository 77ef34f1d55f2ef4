from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round halves upward (2.5 -> 3), unlike the built-in round()."""
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> int:
    if not whole:
        return 0
    return round_half_up(100 * part / whole)
