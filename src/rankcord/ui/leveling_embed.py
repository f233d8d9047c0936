"""
Embed builders for level-ups, profiles, the leaderboard and the rank list.

Builders take already-resolved data (records, tiers, display names) and never
call Discord, so they can be unit tested without a client.
"""

import datetime
from typing import Optional, Sequence, Tuple

import discord

from rankcord.datatypes.leveling_datatypes import LevelUpEvent, ProgressRecord, TierDefinition
from rankcord.leveling.tiers import TierTable, default_tier_table

ACCENT_COLOR = discord.Color(0xFFB6C1)
LEADERBOARD_COLOR = discord.Color(0xFFD700)
PROGRESS_BAR_WIDTH = 10
KEEP_CHATTING_FOOTER = "♡ Keep chatting to level up! ♡"
NO_XP_YET = "No one has earned any XP yet!"
UNKNOWN_USER = "Unknown User"


def progress_bar(fraction: float, *, complete: bool = False, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Render a text progress bar such as ``▓▓▓░░░░░░░``."""
    if complete:
        return "▓" * width + " MAX"
    filled = int(min(1.0, max(0.0, fraction)) * width)
    return "▓" * filled + "░" * (width - filled)


def _medal(position: int) -> str:
    return {1: "👑", 2: "🥈", 3: "🥉"}.get(position, f"**{position}.**")


def build_level_up_embed(
    member: discord.abc.User,
    event: LevelUpEvent,
    current: Optional[TierDefinition],
    upcoming: Optional[TierDefinition],
) -> discord.Embed:
    """Announcement posted when ``member`` reaches ``event.new_level``."""
    embed = discord.Embed(
        title="✨ Level Up! ✨",
        description=f"🎉 Congratulations {member.mention}!\n\n🌟 You've reached **Level {event.new_level}**!",
        color=ACCENT_COLOR,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.set_thumbnail(url=member.display_avatar.url)
    if current is not None:
        embed.add_field(name=f"{current.emoji} Current Rank", value=f"`{current.name}`", inline=True)
    if upcoming is not None:
        embed.add_field(name="🎯 Next Rank", value=f"`{upcoming.name}` at Level {upcoming.level}", inline=True)
    embed.set_footer(text=KEEP_CHATTING_FOOTER)
    return embed


def build_profile_embed(
    member: discord.abc.User,
    record: ProgressRecord,
    tier_table: TierTable = default_tier_table,
) -> discord.Embed:
    """Profile card for ``/level``: level, total XP, rank and progress."""
    current = tier_table.current_tier(record.level)
    upcoming = tier_table.next_tier(record.level)

    embed = discord.Embed(
        title=f"✨ {member.display_name}'s Profile ✨",
        color=discord.Color(current.color) if current else ACCENT_COLOR,
    )
    embed.set_thumbnail(url=member.display_avatar.url)
    embed.add_field(name="🌟 Level", value=f"`{record.level}`", inline=True)
    embed.add_field(name="💫 Total XP", value=f"`{record.xp}`", inline=True)
    embed.add_field(
        name=f"{current.emoji if current else '🌱'} Current Rank",
        value=f"`{current.name if current else 'No Rank Yet'}`",
        inline=True,
    )

    if upcoming is not None:
        fraction = tier_table.progress_fraction(record.level, record.xp)
        needed = tier_table.xp_needed_for_next_tier(record.level, record.xp)
        embed.add_field(name="🎯 Next Rank", value=f"`{upcoming.name}` (Level {upcoming.level})", inline=True)
        embed.add_field(name="📊 Progress", value=progress_bar(fraction), inline=True)
        embed.add_field(name="✨ XP Needed", value=f"`{needed}`", inline=True)
    else:
        embed.add_field(name="👑 Status", value="`Maximum Level Reached!`", inline=False)

    embed.set_footer(text=KEEP_CHATTING_FOOTER)
    return embed


def build_leaderboard_embed(entries: Sequence[Tuple[str, ProgressRecord]]) -> discord.Embed:
    """Leaderboard from ``(display_name, record)`` pairs already sorted by XP."""
    lines = [
        f"{_medal(position)} {name} — Level `{record.level}` • `{record.xp} XP`"
        for position, (name, record) in enumerate(entries, start=1)
    ]
    embed = discord.Embed(
        title="✨ Server Leaderboard ✨",
        description=f"🏆 Top {len(entries)} most active members!\n\n" + "\n".join(lines),
        color=LEADERBOARD_COLOR,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.set_footer(text="♡ Keep chatting to climb the ranks! ♡")
    return embed


def build_ranks_embed(tiers: Sequence[TierDefinition]) -> discord.Embed:
    lines = [f"{tier.emoji} **{tier.name}** — Level {tier.level}" for tier in tiers]
    embed = discord.Embed(
        title="✨ Level Roles ✨",
        description="🌟 Here are all the ranks you can earn!\n\n" + "\n".join(lines),
        color=ACCENT_COLOR,
    )
    embed.set_footer(text="♡ Chat to earn XP and unlock roles! ♡")
    return embed
