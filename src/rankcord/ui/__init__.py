"""
Embed builders for level-up announcements, profiles, the leaderboard and ranks.
"""
