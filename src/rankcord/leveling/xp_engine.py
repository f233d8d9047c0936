"""
Cooldown-gated XP accrual and level-up detection.

The engine is the only writer of the :class:`ProgressStore`. Each qualifying
message earns a random amount of XP, at most once per cooldown window per
member per guild; every award is written through to disk immediately.
"""

from __future__ import annotations

import random
import time
from typing import List, Optional, Tuple

from rankcord.datatypes.discord_datatypes import snowflake_key
from rankcord.datatypes.leveling_datatypes import AwardResult, LevelUpEvent, ProgressRecord
from rankcord.leveling.level_math import level_from_xp
from rankcord.leveling.progress_store import GuildKey, MemberKey, ProgressStore
from rankcord.util.logger import get_logger

logger = get_logger("xp_engine")

DEFAULT_COOLDOWN_MS = 60_000
DEFAULT_XP_MIN = 15
DEFAULT_XP_MAX = 29


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class LevelingEngine:
    """Award XP to members and report level-ups.

    Parameters
    ----------
    store:
        Progress store owned by the caller; the engine mutates and saves it.
    cooldown_ms:
        An award is refused while ``now - last_award <= cooldown_ms``.
    xp_min, xp_max:
        Inclusive bounds of the random XP drawn per award.
    rng:
        Random source, injectable for deterministic tests.
    """

    def __init__(
        self,
        store: ProgressStore,
        *,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        xp_min: int = DEFAULT_XP_MIN,
        xp_max: int = DEFAULT_XP_MAX,
        rng: Optional[random.Random] = None,
    ) -> None:
        if xp_min > xp_max:
            raise ValueError(f"xp_min ({xp_min}) must not exceed xp_max ({xp_max})")
        self.store = store
        self.cooldown_ms = cooldown_ms
        self.xp_min = xp_min
        self.xp_max = xp_max
        self._rng = rng or random.Random()

    def is_on_cooldown(self, record: ProgressRecord, now: int) -> bool:
        return now - record.last_award_ms <= self.cooldown_ms

    def award_xp(self, guild_id: GuildKey, member_id: MemberKey, now: Optional[int] = None) -> AwardResult:
        """Grant XP for one message unless the member is on cooldown.

        On an award the record's XP and award time are updated, the level is
        recomputed and the whole store is saved. A save failure is logged by
        the store and does not undo the award.

        Returns
        -------
        AwardResult
            ``awarded`` is False (and nothing changed) while on cooldown.
            ``level_up`` is set when the level rose, possibly by several levels.
        """
        if now is None:
            now = now_ms()

        record = self.store.get_or_create(guild_id, member_id)
        # No await between this check and the write below, so two handlers on
        # the same event loop cannot both pass it for one member.
        if self.is_on_cooldown(record, now):
            return AwardResult(awarded=False, xp_gained=0, record=record)

        xp_gained = self._rng.randint(self.xp_min, self.xp_max)
        record.xp += xp_gained
        record.last_award_ms = now

        level_up = None
        old_level = record.level
        new_level = level_from_xp(record.xp)
        if new_level > old_level:
            record.level = new_level
            level_up = LevelUpEvent(
                guild_id=snowflake_key(guild_id),
                member_id=snowflake_key(member_id),
                old_level=old_level,
                new_level=new_level,
            )
            logger.info(
                "[XP ENGINE] Member %s in guild %s leveled up %d -> %d (xp=%d)",
                level_up.member_id, level_up.guild_id, old_level, new_level, record.xp,
            )
        else:
            logger.debug("[XP ENGINE] Member %s in guild %s gained %d xp (xp=%d)", member_id, guild_id, xp_gained, record.xp)

        self.store.save()
        return AwardResult(awarded=True, xp_gained=xp_gained, record=record, level_up=level_up)

    def get_progress(self, guild_id: GuildKey, member_id: MemberKey) -> ProgressRecord:
        """Return a copy of the member's record (zero record if never seen).

        Unknown members are materialized in the store like the original
        ``!level`` command did, but nothing is written to disk.
        """
        return self.store.get_or_create(guild_id, member_id).copy()

    def get_leaderboard(self, guild_id: GuildKey, top_n: int = 10) -> List[Tuple[str, ProgressRecord]]:
        """Return up to ``top_n`` ``(member_id, record)`` pairs, highest XP first.

        Ties keep the store's insertion order.
        """
        if top_n <= 0:
            return []
        members = self.store.members(guild_id)
        ranked = sorted(members.items(), key=lambda item: item[1].xp, reverse=True)
        return [(member_id, record.copy()) for member_id, record in ranked[:top_n]]
