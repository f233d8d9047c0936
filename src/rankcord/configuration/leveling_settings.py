from pathlib import Path
from typing import Any, Dict

DEFAULT_LEVELS_FILE = "./data/levels.json"
DEFAULT_ROLE_REASON = "Level system role"


class LevelingSettings:
    """Helper exposing typed accessors for the ``leveling`` config section.

    Values are coerced on every access so a hand-edited YAML file with
    strings where numbers belong still yields usable settings.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def cooldown_seconds(self) -> float:
        return float(self.data.get("cooldown_seconds", 60))

    @property
    def cooldown_ms(self) -> int:
        return int(self.cooldown_seconds * 1000)

    @property
    def xp_min(self) -> int:
        return int(self.data.get("xp_min", 15))

    @property
    def xp_max(self) -> int:
        # A misconfigured range collapses to a fixed award rather than failing randint
        return max(self.xp_min, int(self.data.get("xp_max", 29)))

    @property
    def levels_file(self) -> Path:
        return Path(str(self.data.get("levels_file") or DEFAULT_LEVELS_FILE)).resolve()

    @property
    def levelup_channel_id(self) -> int | None:
        val = self.data.get("levelup_channel_id")
        return int(val) if val else None

    @property
    def leaderboard_size(self) -> int:
        return max(1, int(self.data.get("leaderboard_size", 10)))

    @property
    def role_reason(self) -> str:
        return str(self.data.get("role_reason") or DEFAULT_ROLE_REASON)
