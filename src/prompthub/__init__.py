"""Prompt Hub achievement and leaderboard engine."""
