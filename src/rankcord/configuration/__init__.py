"""
Configuration management for Rankcord.

- **app_configuration.py**: YAML configuration loader guarded by a shared
  fcntl lock. Falls back to an empty mapping on missing or malformed files.
- **leveling_settings.py**: Typed accessors for the ``leveling`` section
  (cooldown, XP range, progress file, level-up channel, leaderboard size).
"""
