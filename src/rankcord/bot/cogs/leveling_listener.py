"""Leveling listener Cog for Rankcord.

Awards XP for every guild message and, when a member levels up, announces it
and brings the member's tier roles up to date.
"""

import asyncio
import weakref
from typing import Optional

import discord
from discord.ext import commands

from rankcord.datatypes.discord_datatypes import GuildID, UserID
from rankcord.datatypes.leveling_datatypes import LevelUpEvent
from rankcord.leveling.role_sync import RoleSynchronizer
from rankcord.leveling.tiers import TierTable, default_tier_table
from rankcord.leveling.xp_engine import LevelingEngine
from rankcord.ui.leveling_embed import build_level_up_embed
from rankcord.util.logger import get_logger

logger = get_logger("leveling_listener_cog")


def is_ignored_author(author) -> bool:
    """Return True for bots and for authors that are not guild members."""
    return author.bot or not isinstance(author, discord.Member)


class LevelingListenerCog(commands.Cog):
    """Cog turning message events into XP awards and level-up handling."""

    def __init__(
        self,
        discord_bot_instance,
        engine: LevelingEngine,
        role_synchronizer: RoleSynchronizer,
        *,
        tier_table: TierTable = default_tier_table,
        levelup_channel_id: Optional[int] = None,
    ):
        self.bot = discord_bot_instance
        self.engine = engine
        self.role_synchronizer = role_synchronizer
        self.tier_table = tier_table
        self.levelup_channel_id = levelup_channel_id
        # One lock per (guild, member) so role syncs for a member never overlap.
        # Entries disappear once no coroutine holds or waits on the lock.
        self._member_locks = weakref.WeakValueDictionary()
        logger.info("Leveling listener cog loaded")

    def _resolve_levelup_channel(self, message: discord.Message) -> Optional[discord.abc.Messageable]:
        if self.levelup_channel_id is None:
            return message.channel
        channel = message.guild.get_channel(self.levelup_channel_id)
        if channel is None:
            logger.warning(
                "[LEVELING] Level-up channel %s not found in guild %s; skipping announcement",
                self.levelup_channel_id, message.guild.id,
            )
        return channel

    async def notify_level_up(self, message: discord.Message, member: discord.Member, event: LevelUpEvent) -> bool:
        """Post the level-up embed. Return whether it was sent."""
        channel = self._resolve_levelup_channel(message)
        if channel is None:
            return False

        embed = build_level_up_embed(
            member,
            event,
            self.tier_table.current_tier(event.new_level),
            self.tier_table.next_tier(event.new_level),
        )
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.error("[LEVELING] Failed to send level-up message for member %s: %s", member.id, exc)
            return False
        return True

    def _member_lock(self, guild_id: str, member_id: str) -> asyncio.Lock:
        key = (guild_id, member_id)
        lock = self._member_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._member_locks[key] = lock
        return lock

    async def handle_level_up(self, message: discord.Message, event: LevelUpEvent) -> None:
        """Announce a level-up, then sync tier roles for the member."""
        member = message.author
        async with self._member_lock(event.guild_id, event.member_id):
            await self.notify_level_up(message, member, event)
            await self.role_synchronizer.sync_roles(member, event.new_level)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """Award XP for guild messages from human members."""
        if message.guild is None:
            return
        if is_ignored_author(message.author):
            return

        result = self.engine.award_xp(GuildID.from_guild(message.guild), UserID.from_user(message.author))
        if result.level_up is not None:
            await self.handle_level_up(message, result.level_up)


def setup(discord_bot_instance, engine: LevelingEngine, role_synchronizer: RoleSynchronizer, **kwargs):
    """Register the LevelingListenerCog with the bot."""
    discord_bot_instance.add_cog(LevelingListenerCog(discord_bot_instance, engine, role_synchronizer, **kwargs))
