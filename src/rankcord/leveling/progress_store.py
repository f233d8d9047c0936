"""
Persistent per-guild, per-member leveling progress.

Responsibilities:
- Hold every ``ProgressRecord`` in memory, keyed by guild id then member id
- Load the JSON document once at startup and rewrite it in full on save

File format (one JSON object, no schema version)::

    {"<guild_id>": {"<member_id>": {"xp": 120, "level": 1, "lastMessage": 1700000000000}}}

The in-memory mapping is authoritative. A failed save is logged and the next
successful save writes everything again, so nothing is lost unless the process
dies in between.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from rankcord.datatypes.discord_datatypes import Snowflake, snowflake_key
from rankcord.datatypes.leveling_datatypes import ProgressRecord
from rankcord.util.logger import get_logger

logger = get_logger("progress_store")

GuildKey = str | int | Snowflake
MemberKey = str | int | Snowflake


class ProgressStore:
    """Mapping of guild id -> member id -> :class:`ProgressRecord` with JSON persistence."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._guilds: Dict[str, Dict[str, ProgressRecord]] = {}

    # -------- Lookups --------
    def get_or_create(self, guild_id: GuildKey, member_id: MemberKey) -> ProgressRecord:
        """Return the member's record, materializing a zero record when unseen."""
        members = self._guilds.setdefault(snowflake_key(guild_id), {})
        key = snowflake_key(member_id)
        record = members.get(key)
        if record is None:
            record = ProgressRecord()
            members[key] = record
        return record

    def get(self, guild_id: GuildKey, member_id: MemberKey) -> Optional[ProgressRecord]:
        """Return the member's record without creating one."""
        return self._guilds.get(snowflake_key(guild_id), {}).get(snowflake_key(member_id))

    def members(self, guild_id: GuildKey) -> Dict[str, ProgressRecord]:
        """Return a shallow copy of one guild's records."""
        return dict(self._guilds.get(snowflake_key(guild_id), {}))

    def guild_ids(self) -> list[str]:
        return list(self._guilds.keys())

    def items(self) -> Iterator[Tuple[str, str, ProgressRecord]]:
        for guild_id, members in self._guilds.items():
            for member_id, record in members.items():
                yield guild_id, member_id, record

    def __len__(self) -> int:
        return sum(len(members) for members in self._guilds.values())

    def clear(self) -> None:
        self._guilds.clear()

    # -------- Persistence --------
    def to_dict(self) -> Dict[str, Dict[str, Dict[str, int]]]:
        return {
            guild_id: {member_id: record.to_dict() for member_id, record in members.items()}
            for guild_id, members in self._guilds.items()
        }

    def load(self) -> bool:
        """Replace the in-memory state with the contents of ``self.path``.

        A missing file yields an empty store and counts as success. An
        unreadable or malformed document also yields an empty store but
        returns False. Individual malformed records are skipped.
        """
        self._guilds = {}
        if self.path is None:
            return True

        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            logger.info("[PROGRESS STORE] No progress file at %s, starting empty", self.path)
            return True
        except (OSError, ValueError):
            logger.exception("[PROGRESS STORE] Failed to read progress file %s, starting empty", self.path)
            return False

        if not isinstance(payload, dict):
            logger.error("[PROGRESS STORE] Progress file %s is not a JSON object, starting empty", self.path)
            return False

        skipped = 0
        for guild_id, members in payload.items():
            if not isinstance(members, dict) or not guild_id.strip():
                skipped += 1
                continue
            guild_key = snowflake_key(guild_id)
            loaded = self._guilds.setdefault(guild_key, {})
            for member_id, raw in members.items():
                try:
                    member_key = snowflake_key(member_id)
                    record = ProgressRecord.from_dict(raw)
                except (TypeError, ValueError) as exc:
                    skipped += 1
                    logger.warning(
                        "[PROGRESS STORE] Skipping record for member %s in guild %s: %s",
                        member_id, guild_id, exc,
                    )
                    continue
                self._merge_loaded(loaded, guild_key, member_key, record)

        if skipped:
            logger.warning("[PROGRESS STORE] Skipped %d malformed entries in %s", skipped, self.path)
        logger.info(
            "[PROGRESS STORE] Loaded %d records across %d guilds from %s",
            len(self), len(self._guilds), self.path,
        )
        return True

    @staticmethod
    def _merge_loaded(
        members: Dict[str, ProgressRecord], guild_key: str, member_key: str, record: ProgressRecord
    ) -> None:
        """Insert a loaded record; keys that normalize to the same id keep the most XP."""
        existing = members.get(member_key)
        if existing is None:
            members[member_key] = record
            return
        logger.warning(
            "[PROGRESS STORE] Duplicate entries for member %s in guild %s, keeping the one with more XP",
            member_key, guild_key,
        )
        if record.xp > existing.xp:
            members[member_key] = record

    def save(self) -> bool:
        """Write the whole store to ``self.path``.

        The document is written to a temporary sibling file first and swapped
        in with ``os.replace`` so readers never see a truncated file.

        Returns:
            bool: True if the write succeeded, False otherwise.
        """
        if self.path is None:
            return True

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self.to_dict(), handle, indent=2)
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug("[PROGRESS STORE] Saved %d records to %s", len(self), self.path)
            return True
        except (OSError, TypeError, ValueError):
            logger.exception("[PROGRESS STORE] Failed to save progress to %s", self.path)
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
