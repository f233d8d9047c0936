"""
Type-safe wrappers for Discord snowflake identifiers.

The progress store is keyed by the string form of guild and member snowflakes
so the JSON document stays readable and round-trips without precision loss.
These wrappers give every layer one way to turn an ``int``, ``str`` or Discord
object into that key. Identifiers that are not numeric are kept as given.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Base wrapper for a Discord snowflake, stored as a canonical decimal string.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> str(gid)
        '123456789012345678'
        >>> gid == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Snowflake of a Discord user or guild member."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


def snowflake_key(value: Union[str, int, Snowflake]) -> str:
    """Return the canonical string key used by the progress store.

    Ints, snowflakes and all-digit strings collapse to one decimal form, so
    ``7``, ``"7"`` and ``"007"`` share a key. Any other string is an opaque
    identifier and is only stripped of surrounding whitespace.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Identifier must not be empty")
        if text.isascii() and text.isdigit():
            return str(int(text))
        return text
    return str(Snowflake(value))
