"""
Discord cogs wiring the leveling engine into Discord's event system.

- **leveling_listener.py**: awards XP on every guild message, announces
  level-ups and synchronizes tier roles
- **leveling_cmds.py**: /level, /leaderboard and /ranks slash commands
"""
