"""
Leveling commands cog: read-only views over leveling progress.

Slash commands:
- /level [member]: profile card with level, XP, rank and progress
- /leaderboard: top members of the server by XP
- /ranks: every rank tier and the level that unlocks it
"""

from typing import Optional

import discord
from discord import Option
from discord.ext import commands

from rankcord.datatypes.discord_datatypes import GuildID, UserID
from rankcord.leveling.tiers import TierTable, default_tier_table
from rankcord.leveling.xp_engine import LevelingEngine
from rankcord.ui.leveling_embed import (
    NO_XP_YET,
    UNKNOWN_USER,
    build_leaderboard_embed,
    build_profile_embed,
    build_ranks_embed,
)
from rankcord.util.logger import get_logger

logger = get_logger("leveling_cmds_cog")


class LevelingCommandsCog(commands.Cog):
    """Slash commands exposing levels, the leaderboard and rank tiers."""

    def __init__(
        self,
        discord_bot_instance,
        engine: LevelingEngine,
        *,
        tier_table: TierTable = default_tier_table,
        leaderboard_size: int = 10,
    ):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        self.tier_table = tier_table
        self.leaderboard_size = leaderboard_size
        logger.info("Leveling commands cog loaded")

    async def _ensure_guild_context(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        return True

    async def _display_name(self, guild: Optional[discord.Guild], member_id: str) -> str:
        """Resolve a member id to a display name, falling back to ``Unknown User``."""
        if guild is not None:
            member = guild.get_member(int(member_id))
            if member is not None:
                return member.display_name
        try:
            user = await self.discord_bot_instance.fetch_user(int(member_id))
        except discord.HTTPException:
            return UNKNOWN_USER
        return user.name

    @commands.slash_command(name="level", description="Show your level, or another member's.")
    async def level(
        self,
        ctx: discord.ApplicationContext,
        member: Option(discord.Member, "The member to look up.", required=False, default=None),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return
        target = member or ctx.author
        record = self.engine.get_progress(GuildID(ctx.guild_id), UserID.from_user(target))
        await ctx.respond(embed=build_profile_embed(target, record, self.tier_table))

    @commands.slash_command(name="leaderboard", description="Show the most active members of this server.")
    async def leaderboard(self, ctx: discord.ApplicationContext):
        if not await self._ensure_guild_context(ctx):
            return

        top = self.engine.get_leaderboard(GuildID(ctx.guild_id), self.leaderboard_size)
        if not top:
            await ctx.respond(NO_XP_YET)
            return

        await ctx.defer()
        entries = [(await self._display_name(ctx.guild, member_id), record) for member_id, record in top]
        await ctx.respond(embed=build_leaderboard_embed(entries))

    @commands.slash_command(name="ranks", description="List every rank and the level that unlocks it.")
    async def ranks(self, ctx: discord.ApplicationContext):
        await ctx.respond(embed=build_ranks_embed(self.tier_table.list_tiers()))


def setup(discord_bot_instance, engine: LevelingEngine, **kwargs):
    """Register the LevelingCommandsCog with the bot."""
    discord_bot_instance.add_cog(LevelingCommandsCog(discord_bot_instance, engine, **kwargs))
