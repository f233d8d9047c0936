from types import SimpleNamespace

import discord

from rankcord.datatypes.leveling_datatypes import LevelUpEvent, ProgressRecord
from rankcord.leveling import tiers
from rankcord.ui.leveling_embed import (
    build_leaderboard_embed,
    build_level_up_embed,
    build_profile_embed,
    build_ranks_embed,
    progress_bar,
)


def make_user(name="alice"):
    return SimpleNamespace(
        id=42,
        mention="<@42>",
        display_name=name,
        display_avatar=SimpleNamespace(url="https://cdn.example/a.png"),
    )


def test_progress_bar():
    assert progress_bar(0.0) == "░" * 10
    assert progress_bar(0.55) == "▓" * 5 + "░" * 5
    assert progress_bar(1.5) == "▓" * 10
    assert progress_bar(0.3, complete=True) == "▓" * 10 + " MAX"


def test_level_up_embed_with_current_and_next_rank():
    event = LevelUpEvent(guild_id="1", member_id="42", old_level=4, new_level=5)
    embed = build_level_up_embed(make_user(), event, tiers.current_tier(5), tiers.next_tier(5))

    assert embed.title == "✨ Level Up! ✨"
    assert "<@42>" in embed.description and "**Level 5**" in embed.description
    assert [field.name for field in embed.fields] == ["☁️ Current Rank", "🎯 Next Rank"]
    assert embed.fields[1].value == "`Aesthetic Explorer` at Level 10"


def test_level_up_embed_at_max_rank_has_no_next_field():
    event = LevelUpEvent(guild_id="1", member_id="42", old_level=29, new_level=30)
    embed = build_level_up_embed(make_user(), event, tiers.current_tier(30), tiers.next_tier(30))

    assert [field.name for field in embed.fields] == ["🌈 Current Rank"]


def test_profile_embed_without_rank_uses_accent_colour():
    embed = build_profile_embed(make_user(), ProgressRecord(xp=40, level=0))

    values = {field.name: field.value for field in embed.fields}
    assert values["🌱 Current Rank"] == "`No Rank Yet`"
    assert values["✨ XP Needed"] == "`60`"
    assert values["📊 Progress"] == "▓▓▓▓░░░░░░"
    assert embed.color == discord.Color(0xFFB6C1)


def test_profile_embed_uses_tier_colour():
    embed = build_profile_embed(make_user(), ProgressRecord(xp=40000, level=20))
    assert embed.color == discord.Color(0xFFD700)


def test_leaderboard_embed_medals():
    entries = [("B", ProgressRecord(1000, 3)), ("A", ProgressRecord(500, 2)), ("C", ProgressRecord(200, 1)), ("D", ProgressRecord(10, 0))]
    lines = build_leaderboard_embed(entries).description.splitlines()

    assert lines[0] == "🏆 Top 4 most active members!"
    assert lines[2] == "👑 B — Level `3` • `1000 XP`"
    assert lines[5].startswith("**4.** D")


def test_ranks_embed_lists_tiers_in_order():
    description = build_ranks_embed(tiers.list_tiers()).description
    positions = [description.index(tier.name) for tier in tiers.list_tiers()]
    assert positions == sorted(positions)
