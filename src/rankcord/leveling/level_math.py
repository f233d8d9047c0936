"""
XP and level conversions.

The curve is quadratic: reaching level ``n`` takes ``n**2 * 100`` XP in total,
so level 1 needs 100 XP, level 10 needs 10 000 XP. All functions are pure and
expect non-negative integers; negative input is a caller error and is not
checked.
"""

import math

XP_PER_LEVEL_UNIT = 100


def xp_for_level(level: int) -> int:
    """Return the total XP at which ``level`` is reached."""
    return level * level * XP_PER_LEVEL_UNIT


def level_from_xp(xp: int) -> int:
    """Return ``floor(sqrt(xp / 100))`` computed exactly.

    ``isqrt(xp // 100)`` equals the real-valued formula for every integer
    ``xp >= 0`` and has no float rounding at large totals.
    """
    return math.isqrt(xp // XP_PER_LEVEL_UNIT)


def xp_to_level(xp: int, target_level: int) -> int:
    """XP still missing to reach ``target_level`` (0 when already there)."""
    return max(0, xp_for_level(target_level) - xp)


def xp_to_next_level(xp: int) -> int:
    return xp_to_level(xp, level_from_xp(xp) + 1)


def level_progress(level: int, xp: int) -> float:
    """Fraction of the way from ``level`` to ``level + 1``, clamped to [0, 1]."""
    floor_xp = xp_for_level(level)
    span = xp_for_level(level + 1) - floor_xp
    return min(1.0, max(0.0, (xp - floor_xp) / span))
