"""
Rank tiers and the resolver mapping a level onto them.

A tier is unlocked once a member's level reaches ``tier.level``. The table is
static and ordered by level; tier names double as the names of the Discord
roles granted by the role synchronizer, so they must be unique.
"""

from __future__ import annotations

import bisect
from typing import Iterable, Optional, Tuple

from rankcord.datatypes.leveling_datatypes import TierDefinition
from rankcord.leveling.level_math import level_progress, xp_to_level


DEFAULT_TIERS: Tuple[TierDefinition, ...] = (
    TierDefinition(level=1, name="Novice Creator", color=0x90EE90, emoji="🌱"),
    TierDefinition(level=5, name="Apprentice", color=0x87CEEB, emoji="☁️"),
    TierDefinition(level=10, name="Aesthetic Explorer", color=0xFFB6C1, emoji="🌸"),
    TierDefinition(level=15, name="Creative Enthusiast", color=0x9370DB, emoji="💜"),
    TierDefinition(level=20, name="Master of Vibes", color=0xFFD700, emoji="✨"),
    TierDefinition(level=30, name="Legendary Icon", color=0xFF6B6B, emoji="🌈"),
)


class TierTable:
    """Immutable, validated tier table with level lookups.

    Raises:
        ValueError: If levels are not strictly increasing or names repeat.
    """

    def __init__(self, tiers: Iterable[TierDefinition]) -> None:
        ordered = tuple(tiers)
        for previous, current in zip(ordered, ordered[1:]):
            if current.level <= previous.level:
                raise ValueError(
                    f"tier levels must be strictly increasing: {previous.name!r} ({previous.level}) "
                    f"then {current.name!r} ({current.level})"
                )
        names = [tier.name for tier in ordered]
        if len(set(names)) != len(names):
            raise ValueError(f"tier names must be unique: {names}")

        self._tiers = ordered
        self._levels = [tier.level for tier in ordered]

    def __iter__(self):
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def list_tiers(self) -> Tuple[TierDefinition, ...]:
        """Return every tier, lowest level first."""
        return self._tiers

    def current_tier(self, level: int) -> Optional[TierDefinition]:
        """Highest tier with ``tier.level <= level``, or None below the first tier."""
        index = bisect.bisect_right(self._levels, level)
        return self._tiers[index - 1] if index else None

    def next_tier(self, level: int) -> Optional[TierDefinition]:
        """Lowest tier with ``tier.level > level``, or None once the top tier is reached."""
        index = bisect.bisect_right(self._levels, level)
        return self._tiers[index] if index < len(self._tiers) else None

    def progress_fraction(self, level: int, xp: int) -> float:
        """Progress towards ``level + 1`` in [0, 1]; 1.0 once no tier is left to earn."""
        if self.next_tier(level) is None:
            return 1.0
        return level_progress(level, xp)

    def xp_needed_for_next_tier(self, level: int, xp: int) -> Optional[int]:
        """XP missing until the next tier unlocks, or None at max rank."""
        upcoming = self.next_tier(level)
        if upcoming is None:
            return None
        return xp_to_level(xp, upcoming.level)

    def get(self, name: str) -> Optional[TierDefinition]:
        for tier in self._tiers:
            if tier.name == name:
                return tier
        return None

    def is_tier_role_name(self, name: str, *, case_insensitive: bool = False) -> bool:
        """Return True if ``name`` belongs to a tier role.

        Level roles are only granted by leveling; moderation commands use this
        to refuse adding, removing, creating or deleting them by hand.
        """
        if case_insensitive:
            folded = name.casefold()
            return any(tier.name.casefold() == folded for tier in self._tiers)
        return self.get(name) is not None


default_tier_table = TierTable(DEFAULT_TIERS)


def list_tiers() -> Tuple[TierDefinition, ...]:
    return default_tier_table.list_tiers()


def current_tier(level: int) -> Optional[TierDefinition]:
    return default_tier_table.current_tier(level)


def next_tier(level: int) -> Optional[TierDefinition]:
    return default_tier_table.next_tier(level)


def progress_fraction(level: int, xp: int) -> float:
    return default_tier_table.progress_fraction(level, xp)


def is_tier_role_name(name: str, *, case_insensitive: bool = False) -> bool:
    return default_tier_table.is_tier_role_name(name, case_insensitive=case_insensitive)
