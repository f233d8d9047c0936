import asyncio
import gc
import random
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from rankcord.bot.cogs import leveling_listener
from rankcord.datatypes.leveling_datatypes import AwardResult, LevelUpEvent, ProgressRecord, RoleSyncReport
from rankcord.leveling.xp_engine import LevelingEngine


def make_member(member_id=42, bot=False):
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.bot = bot
    member.mention = f"<@{member_id}>"
    member.display_avatar = SimpleNamespace(url="https://cdn.example/avatar.png")
    return member


def make_message(author, guild_id=1, channels=None):
    channels = channels or {}
    guild = SimpleNamespace(id=guild_id, get_channel=lambda channel_id: channels.get(channel_id))
    channel = SimpleNamespace(send=AsyncMock())
    return SimpleNamespace(guild=guild, author=author, channel=channel)


def level_up_result(old=0, new=1):
    event = LevelUpEvent(guild_id="1", member_id="42", old_level=old, new_level=new)
    return AwardResult(awarded=True, xp_gained=20, record=ProgressRecord(xp=120, level=new), level_up=event)


def make_cog(engine, levelup_channel_id=None):
    role_sync = SimpleNamespace(sync_roles=AsyncMock(return_value=RoleSyncReport(member_id="42", level=1)))
    cog = leveling_listener.LevelingListenerCog(
        SimpleNamespace(), engine, role_sync, levelup_channel_id=levelup_channel_id
    )
    return cog, role_sync


def test_setup_adds_cog():
    captured = {}
    fake_bot = SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog))
    leveling_listener.setup(fake_bot, MagicMock(), MagicMock(), levelup_channel_id=5)
    assert isinstance(captured["cog"], leveling_listener.LevelingListenerCog)
    assert captured["cog"].levelup_channel_id == 5


def test_is_ignored_author():
    assert leveling_listener.is_ignored_author(make_member(bot=True))
    assert leveling_listener.is_ignored_author(SimpleNamespace(bot=False))
    assert not leveling_listener.is_ignored_author(make_member())


@pytest.mark.asyncio
async def test_ignores_direct_messages_and_bots():
    engine = MagicMock()
    cog, _ = make_cog(engine)

    dm = make_message(make_member())
    dm.guild = None
    await cog.on_message(dm)
    await cog.on_message(make_message(make_member(bot=True)))

    engine.award_xp.assert_not_called()


@pytest.mark.asyncio
async def test_message_without_level_up_only_awards():
    engine = MagicMock()
    engine.award_xp.return_value = AwardResult(awarded=True, xp_gained=20, record=ProgressRecord(xp=20))
    cog, role_sync = make_cog(engine)
    message = make_message(make_member())

    await cog.on_message(message)

    engine.award_xp.assert_called_once_with(1, 42)
    message.channel.send.assert_not_awaited()
    role_sync.sync_roles.assert_not_awaited()


@pytest.mark.asyncio
async def test_level_up_announces_then_syncs_roles():
    engine = MagicMock()
    engine.award_xp.return_value = level_up_result(0, 1)
    cog, role_sync = make_cog(engine)
    author = make_member()
    message = make_message(author)

    await cog.on_message(message)

    message.channel.send.assert_awaited_once()
    embed = message.channel.send.await_args.kwargs["embed"]
    assert "Level 1" in embed.description
    assert any("Novice Creator" in field.value for field in embed.fields)
    role_sync.sync_roles.assert_awaited_once_with(author, 1)


@pytest.mark.asyncio
async def test_level_up_uses_configured_channel():
    levelup_channel = SimpleNamespace(send=AsyncMock())
    engine = MagicMock()
    engine.award_xp.return_value = level_up_result(4, 5)
    cog, _ = make_cog(engine, levelup_channel_id=777)
    message = make_message(make_member(), channels={777: levelup_channel})

    await cog.on_message(message)

    levelup_channel.send.assert_awaited_once()
    message.channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_levelup_channel_still_syncs_roles():
    engine = MagicMock()
    engine.award_xp.return_value = level_up_result(0, 1)
    cog, role_sync = make_cog(engine, levelup_channel_id=999)
    message = make_message(make_member())

    await cog.on_message(message)

    message.channel.send.assert_not_awaited()
    role_sync.sync_roles.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_announcement_still_syncs_roles():
    engine = MagicMock()
    engine.award_xp.return_value = level_up_result(0, 1)
    cog, role_sync = make_cog(engine)
    message = make_message(make_member())
    message.channel.send.side_effect = discord.Forbidden(MagicMock(), "Missing Access")

    await cog.on_message(message)

    role_sync.sync_roles.assert_awaited_once()


@pytest.mark.asyncio
async def test_real_engine_levels_member_up(store):
    engine = LevelingEngine(store, rng=random.Random(3))
    store.get_or_create(1, 42).xp = 99
    cog, role_sync = make_cog(engine)
    author = make_member()

    await cog.on_message(make_message(author))

    assert store.get(1, 42).level == 1
    role_sync.sync_roles.assert_awaited_once_with(author, 1)


@pytest.mark.asyncio
async def test_level_up_handling_is_serialized_per_member_and_lock_released():
    engine = MagicMock()
    cog, role_sync = make_cog(engine)
    active = []
    overlaps = []

    async def slow_sync(member, level):
        active.append(level)
        if len(active) > 1:
            overlaps.append(level)
        await asyncio.sleep(0)
        active.remove(level)
        return RoleSyncReport(member_id="42", level=level)

    role_sync.sync_roles.side_effect = slow_sync
    message = make_message(make_member())

    await asyncio.gather(
        cog.handle_level_up(message, level_up_result(0, 1).level_up),
        cog.handle_level_up(message, level_up_result(1, 2).level_up),
    )
    gc.collect()

    assert role_sync.sync_roles.await_count == 2
    assert overlaps == []
    assert len(cog._member_locks) == 0
