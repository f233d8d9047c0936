"""
Keep a member's tier roles in line with their level.

Every sync walks the whole tier table, not just the tier that was reached:
missing tier roles are created in the guild and every earned tier role the
member lacks is attached. Roles are identified by name against the guild's
live role list each time, so a tier role that was renamed or deleted by hand
is recreated. Roles are never removed.

Each create/attach is an independent attempt against Discord's API. A failure
(missing permission, rate limit, outage) is logged and recorded in the
returned report, and the loop moves on. Nothing is retried and nothing is
raised to the caller.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

import discord

from rankcord.configuration.leveling_settings import DEFAULT_ROLE_REASON
from rankcord.datatypes.leveling_datatypes import RoleSyncReport, RoleSyncStep, TierDefinition
from rankcord.leveling.tiers import TierTable, default_tier_table
from rankcord.util.logger import get_logger

logger = get_logger("role_sync")


class RoleSynchronizer:
    """Create and attach tier roles for members that leveled up."""

    def __init__(self, tier_table: TierTable = default_tier_table, *, reason: str = DEFAULT_ROLE_REASON) -> None:
        self.tier_table = tier_table
        self.reason = reason

    async def _fetch_guild_roles(self, guild: discord.Guild) -> List[discord.Role]:
        """Return the guild's role list straight from the API.

        Falls back to the gateway-maintained ``guild.roles`` if the fetch fails.
        """
        try:
            return list(await guild.fetch_roles())
        except discord.HTTPException as exc:
            logger.warning(
                "[ROLE SYNC] Could not fetch roles for guild %s (%s); using cached role list",
                guild.id, exc,
            )
            return list(guild.roles)

    @staticmethod
    def _find_role(roles: Sequence[discord.Role], name: str) -> Optional[discord.Role]:
        return discord.utils.get(roles, name=name)

    async def _fetch_held_role_ids(self, member: discord.Member) -> Set[int]:
        """Return the ids of the roles the member holds according to the API.

        ``Member.add_roles`` does not touch the local role cache, so the cached
        ``member.roles`` can lag behind roles attached moments ago. Falls back
        to the cached list if the fetch fails.
        """
        try:
            live = await member.guild.fetch_member(member.id)
        except discord.HTTPException as exc:
            logger.warning(
                "[ROLE SYNC] Could not fetch member %s in guild %s (%s); using cached roles",
                member.id, member.guild.id, exc,
            )
            live = member
        return {role.id for role in live.roles}

    async def _ensure_role(
        self,
        guild: discord.Guild,
        roles: List[discord.Role],
        tier: TierDefinition,
        report: RoleSyncReport,
    ) -> Optional[discord.Role]:
        role = self._find_role(roles, tier.name)
        if role is not None:
            return role

        try:
            role = await guild.create_role(
                name=tier.name,
                colour=discord.Colour(tier.color),
                reason=self.reason,
            )
        except discord.HTTPException as exc:
            logger.error("[ROLE SYNC] Failed to create role %r in guild %s: %s", tier.name, guild.id, exc)
            report.record(tier, RoleSyncStep.CREATE, False, str(exc))
            return None

        roles.append(role)
        report.record(tier, RoleSyncStep.CREATE, True)
        logger.info("[ROLE SYNC] Created role %r in guild %s", tier.name, guild.id)
        return role

    async def _attach_role(
        self,
        member: discord.Member,
        role: discord.Role,
        tier: TierDefinition,
        report: RoleSyncReport,
    ) -> bool:
        try:
            await member.add_roles(role, reason=f"{self.reason}: reached level {tier.level}")
        except discord.HTTPException as exc:
            logger.error(
                "[ROLE SYNC] Failed to add role %r to member %s in guild %s: %s",
                tier.name, member.id, member.guild.id, exc,
            )
            report.record(tier, RoleSyncStep.ATTACH, False, str(exc))
            return False

        report.record(tier, RoleSyncStep.ATTACH, True)
        logger.info("[ROLE SYNC] Added role %r to member %s in guild %s", tier.name, member.id, member.guild.id)
        return True

    async def sync_roles(self, member: discord.Member, new_level: int) -> RoleSyncReport:
        """Ensure every tier role exists and every tier earned at ``new_level`` is held.

        Parameters
        ----------
        member:
            Guild member whose roles should reflect ``new_level``.
        new_level:
            The member's current level.

        Returns
        -------
        RoleSyncReport
            One entry per remote call attempted. Running the sync again with
            the same or a lower level attempts nothing.
        """
        guild = member.guild
        report = RoleSyncReport(member_id=str(member.id), level=new_level)
        roles = await self._fetch_guild_roles(guild)
        held = await self._fetch_held_role_ids(member)

        for tier in self.tier_table:
            role = await self._ensure_role(guild, roles, tier, report)
            if role is None:
                continue
            if new_level >= tier.level and role.id not in held:
                if await self._attach_role(member, role, tier, report):
                    held.add(role.id)

        if report.failed:
            logger.warning(
                "[ROLE SYNC] Role sync for member %s in guild %s finished with %d failure(s)",
                member.id, guild.id, len(report.failed),
            )
        return report
