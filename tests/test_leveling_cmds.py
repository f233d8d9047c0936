from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from rankcord.bot.cogs import leveling_cmds
from rankcord.leveling.xp_engine import LevelingEngine


def make_user(user_id, name):
    return SimpleNamespace(
        id=user_id,
        name=name,
        display_name=name,
        display_avatar=SimpleNamespace(url=f"https://cdn.example/{user_id}.png"),
    )


class Ctx:
    def __init__(self, guild_id=1, author=None, members=None):
        members = members or {}
        self.guild_id = guild_id
        self.guild = SimpleNamespace(get_member=lambda member_id: members.get(member_id)) if guild_id else None
        self.author = author or make_user(42, "alice")
        self.respond = AsyncMock()
        self.defer = AsyncMock()


@pytest.fixture()
def bot():
    return SimpleNamespace(fetch_user=AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown User")))


@pytest.fixture()
def cog(bot, engine: LevelingEngine):
    return leveling_cmds.LevelingCommandsCog(bot, engine, leaderboard_size=10)


def test_setup_adds_cog(engine):
    captured = {}
    fake_bot = SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog))
    leveling_cmds.setup(fake_bot, engine, leaderboard_size=3)
    assert isinstance(captured["cog"], leveling_cmds.LevelingCommandsCog)
    assert captured["cog"].leaderboard_size == 3


@pytest.mark.asyncio
async def test_level_shows_own_profile(cog, store):
    record = store.get_or_create(1, 42)
    record.xp, record.level = 2600, 5
    ctx = Ctx()

    await leveling_cmds.LevelingCommandsCog.level.callback(cog, ctx, None)

    embed = ctx.respond.await_args.kwargs["embed"]
    values = {field.name: field.value for field in embed.fields}
    assert values["🌟 Level"] == "`5`"
    assert values["💫 Total XP"] == "`2600`"
    assert values["🎯 Next Rank"] == "`Aesthetic Explorer` (Level 10)"
    assert values["✨ XP Needed"] == "`7400`"


@pytest.mark.asyncio
async def test_level_for_other_member_at_max_rank(cog, store):
    record = store.get_or_create(1, 7)
    record.xp, record.level = 90000, 30
    ctx = Ctx()

    await leveling_cmds.LevelingCommandsCog.level.callback(cog, ctx, make_user(7, "bob"))

    embed = ctx.respond.await_args.kwargs["embed"]
    assert "bob" in embed.title
    assert any(field.value == "`Maximum Level Reached!`" for field in embed.fields)


@pytest.mark.asyncio
async def test_level_requires_guild(cog):
    ctx = Ctx(guild_id=None)

    await leveling_cmds.LevelingCommandsCog.level.callback(cog, ctx, None)

    ctx.respond.assert_awaited_once_with("This command can only be used in a server.", ephemeral=True)


@pytest.mark.asyncio
async def test_leaderboard_empty(cog):
    ctx = Ctx()

    await leveling_cmds.LevelingCommandsCog.leaderboard.callback(cog, ctx)

    ctx.respond.assert_awaited_once_with("No one has earned any XP yet!")


@pytest.mark.asyncio
async def test_leaderboard_orders_and_names_members(cog, store):
    store.get_or_create(1, 100).xp = 500
    store.get_or_create(1, 200).xp = 1000
    store.get_or_create(1, 300).xp = 200
    ctx = Ctx(members={100: make_user(100, "A"), 200: make_user(200, "B")})

    await leveling_cmds.LevelingCommandsCog.leaderboard.callback(cog, ctx)

    ctx.defer.assert_awaited_once()
    description = ctx.respond.await_args.kwargs["embed"].description
    lines = description.splitlines()[2:]
    assert lines[0].startswith("👑 B")
    assert lines[1].startswith("🥈 A")
    assert lines[2].startswith("🥉 Unknown User")


@pytest.mark.asyncio
async def test_leaderboard_fetches_users_outside_cache(cog, bot, store):
    store.get_or_create(1, 300).xp = 200
    bot.fetch_user = AsyncMock(return_value=make_user(300, "carol"))
    ctx = Ctx()

    await leveling_cmds.LevelingCommandsCog.leaderboard.callback(cog, ctx)

    bot.fetch_user.assert_awaited_once_with(300)
    assert "carol" in ctx.respond.await_args.kwargs["embed"].description


@pytest.mark.asyncio
async def test_ranks_lists_every_tier(cog):
    ctx = Ctx()

    await leveling_cmds.LevelingCommandsCog.ranks.callback(cog, ctx)

    description = ctx.respond.await_args.kwargs["embed"].description
    for name in ("Novice Creator", "Apprentice", "Legendary Icon"):
        assert name in description
