"""
The leveling engine: XP/level math, tiers, progress persistence and role sync.
"""
