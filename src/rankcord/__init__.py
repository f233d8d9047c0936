"""
Rankcord - Activity Leveling Bot for Discord

Rankcord rewards chat activity with experience points, turns XP into levels
and grants rank roles as members climb the tier table.

Core Components:

- **XP Engine**: Cooldown-gated XP awards with level-up detection
- **Progress Store**: Per-guild, per-member progress persisted as one JSON document
- **Tier Resolver**: Maps a level to the current and next rank tier
- **Role Synchronizer**: Creates missing tier roles and attaches earned ones,
  tolerating per-role API failures

Usage:
    from rankcord.main import main
    main()
"""
