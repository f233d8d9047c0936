"""
Data structures shared by the leveling engine, the tier resolver and the role
synchronizer.

Overview
--------
- ``ProgressRecord``: per guild, per member XP, level and cooldown state.
- ``TierDefinition``: a named rank unlocked at a minimum level.
- ``LevelUpEvent`` / ``AwardResult``: what a single XP award produced.
- ``RoleSyncResult`` / ``RoleSyncReport``: per-tier outcome of a role sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class ProgressRecord:
    """XP, derived level and last award time of one member in one guild.

    ``level`` always equals ``level_from_xp(xp)`` once an award step has
    finished. ``last_award_ms`` is epoch milliseconds, 0 until the first award.
    """

    xp: int = 0
    level: int = 0
    last_award_ms: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Serialize using the on-disk key names."""
        return {"xp": self.xp, "level": self.level, "lastMessage": self.last_award_ms}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProgressRecord":
        """Build a record from its on-disk form.

        Raises:
            ValueError: If a field is present but not an integer.
            TypeError: If ``payload`` is not a mapping.
        """
        if not isinstance(payload, dict):
            raise TypeError(f"progress record must be an object, got {type(payload).__name__}")
        return cls(
            xp=_as_int(payload.get("xp", 0)),
            level=_as_int(payload.get("level", 0)),
            last_award_ms=_as_int(payload.get("lastMessage", 0)),
        )

    def copy(self) -> "ProgressRecord":
        return ProgressRecord(self.xp, self.level, self.last_award_ms)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    if isinstance(value, int):
        return value
    raise ValueError(f"expected an integer, got {value!r}")


@dataclass(frozen=True, slots=True)
class TierDefinition:
    """A rank tier: unlocked at ``level``, displayed with ``color`` and ``emoji``."""

    level: int
    name: str
    color: int
    emoji: str = ""

    @property
    def label(self) -> str:
        return f"{self.emoji} {self.name}".strip()


@dataclass(frozen=True, slots=True)
class LevelUpEvent:
    """Emitted when an award moves a member from ``old_level`` to ``new_level``.

    ``new_level`` can exceed ``old_level + 1`` when one award crosses several
    thresholds.
    """

    guild_id: str
    member_id: str
    old_level: int
    new_level: int

    @property
    def levels_gained(self) -> int:
        return self.new_level - self.old_level


@dataclass(slots=True)
class AwardResult:
    """Outcome of :meth:`LevelingEngine.award_xp`."""

    awarded: bool
    xp_gained: int
    record: ProgressRecord
    level_up: Optional[LevelUpEvent] = None

    @property
    def leveled_up(self) -> bool:
        return self.level_up is not None


class RoleSyncStep(str, Enum):
    CREATE = "create"
    ATTACH = "attach"


@dataclass(frozen=True, slots=True)
class RoleSyncResult:
    """One attempted remote call of a role sync."""

    tier: TierDefinition
    step: RoleSyncStep
    success: bool
    error: Optional[str] = None


@dataclass(slots=True)
class RoleSyncReport:
    """Aggregated results of :meth:`RoleSynchronizer.sync_roles`.

    Only attempted calls are recorded; a tier whose role already existed and
    was already held contributes nothing.
    """

    member_id: str
    level: int
    results: List[RoleSyncResult] = field(default_factory=list)

    def record(self, tier: TierDefinition, step: RoleSyncStep, success: bool, error: Optional[str] = None) -> None:
        self.results.append(RoleSyncResult(tier=tier, step=step, success=success, error=error))

    @property
    def succeeded(self) -> List[RoleSyncResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[RoleSyncResult]:
        return [r for r in self.results if not r.success]

    @property
    def created(self) -> List[str]:
        return [r.tier.name for r in self.results if r.success and r.step is RoleSyncStep.CREATE]

    @property
    def attached(self) -> List[str]:
        return [r.tier.name for r in self.results if r.success and r.step is RoleSyncStep.ATTACH]

    @property
    def ok(self) -> bool:
        return not self.failed
